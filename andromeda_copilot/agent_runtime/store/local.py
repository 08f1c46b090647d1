"""Local filesystem config store.

Stores the workspace registry as a single JSON document::

    {root}/workspaces.json

Uses ``anyio.to_thread.run_sync`` for non-blocking writes.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path.  This prevents a truncated document if the
process crashes mid-write.

The module also hosts the small sync filesystem helpers the workspace manager
runs in the thread pool (directory creation and recursive removal).
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from functools import partial
from pathlib import Path

from anyio import to_thread
from loguru import logger
from pydantic import ValidationError

from andromeda_copilot.agent_runtime.models.workspace import WorkspaceConfig

CONFIG_FILENAME = "workspaces.json"


class LocalConfigStore:
    """Local filesystem implementation of the ConfigStore protocol."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self.path = self._root / CONFIG_FILENAME

    # -- Read ------------------------------------------------------------------

    def load(self) -> WorkspaceConfig | None:
        if not self.path.exists():
            return None
        try:
            raw = _read_file(self.path)
            return WorkspaceConfig.model_validate_json(raw)
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("Could not load workspace config {}: {}", self.path, exc)
            return None

    # -- Write -----------------------------------------------------------------

    async def save(self, config: WorkspaceConfig) -> None:
        data = config.model_dump_json(by_alias=True, indent=2)
        await to_thread.run_sync(partial(_atomic_write, self.path, data))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    Ensures readers never see a partially-written file.  The temp file is
    created in the same directory so ``os.replace`` is atomic on POSIX.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up temp file on any failure.
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_file(path: Path) -> str:
    """Read file contents.  Raises ``FileNotFoundError`` if missing."""
    return path.read_text(encoding="utf-8")


def make_directory(path: Path) -> None:
    """Create a directory and its parents (idempotent)."""
    path.mkdir(parents=True, exist_ok=True)


def remove_tree(path: Path) -> bool:
    """Remove directory tree.  Returns ``False`` if path doesn't exist."""
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True
