"""Workspace registry: create, list, select, rename, delete.

The registry owns the whole ``WorkspaceConfig`` in memory and rewrites the
persisted document in full after every mutation.  Lookups are synchronous;
mutations are coroutines serialised by a per-instance ``asyncio.Lock`` so
that concurrent HTTP requests cannot interleave a load-modify-persist cycle.

The current workspace is stored as an id only.  ``get_current_workspace``
resolves it on every call and returns ``None`` for a dangling id.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from datetime import UTC, datetime
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, TypedDict

from anyio import to_thread
from loguru import logger

from andromeda_copilot.agent_runtime.models.workspace import Workspace, WorkspaceConfig
from andromeda_copilot.agent_runtime.store.local import LocalConfigStore, make_directory, remove_tree

if TYPE_CHECKING:
    from andromeda_copilot.agent_runtime.store.base import ConfigStore

_DISALLOWED_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\-_\s]")
_WHITESPACE = re.compile(r"\s+")


class WorkspaceError(Exception):
    """Base class for workspace registry errors."""


class InvalidWorkspaceNameError(WorkspaceError, ValueError):
    """Raised when a name is empty after sanitisation."""


class DuplicateWorkspaceError(WorkspaceError, ValueError):
    """Raised when a workspace with the same name (any case) already exists."""


class WorkspaceNotFoundError(WorkspaceError, LookupError):
    """Raised when a workspace id is not registered."""


class WorkspaceStats(TypedDict):
    total: int
    current: str | None


def sanitize_name(name: str) -> str:
    """Drop characters outside ``[A-Za-z0-9-_ ]`` and trim."""
    return _DISALLOWED_NAME_CHARS.sub("", name).strip()


def slugify(name: str) -> str:
    """Directory name for a sanitised workspace name."""
    return _WHITESPACE.sub("-", name).lower()


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class WorkspaceManager:
    """Durable registry of named workspaces.

    Instantiated once per process (app lifespan or CLI command).  Loads the
    document at construction; a missing or malformed document yields an
    empty registry.
    """

    def __init__(self, root: str | Path = "./workspaces", *, store: ConfigStore | None = None) -> None:
        self._root = Path(root)
        self._store: ConfigStore = store or LocalConfigStore(self._root)
        self._lock = asyncio.Lock()
        self._config = self._store.load() or WorkspaceConfig(default_workspace_path=str(self._root))

    @property
    def root(self) -> Path:
        return self._root

    # -- Persistence -----------------------------------------------------------

    async def _save(self) -> None:
        """Persist the full document.  Failures are logged, not raised."""
        try:
            await self._store.save(self._config)
        except OSError:
            logger.exception("Error saving workspace config")

    # -- Helpers ---------------------------------------------------------------

    def _validated_name(self, name: str, *, exclude_id: str | None = None) -> str:
        sanitized = sanitize_name(name)
        if not sanitized:
            msg = "Workspace name cannot be empty or contain only special characters"
            raise InvalidWorkspaceNameError(msg)
        lowered = sanitized.lower()
        for workspace in self._config.workspaces:
            if workspace.id != exclude_id and workspace.name.lower() == lowered:
                msg = f'Workspace "{sanitized}" already exists'
                raise DuplicateWorkspaceError(msg)
        return sanitized

    def _new_id(self) -> str:
        existing = {w.id for w in self._config.workspaces}
        while (workspace_id := uuid.uuid4().hex[:12]) in existing:
            continue
        return workspace_id

    # -- Create ----------------------------------------------------------------

    async def create_workspace(
        self,
        name: str,
        description: str | None = None,
        custom_path: str | Path | None = None,
    ) -> Workspace:
        """Register a new workspace and create its directory.

        Raises ``InvalidWorkspaceNameError``, ``DuplicateWorkspaceError``, or
        ``WorkspaceError`` if the directory cannot be created.  Nothing is
        registered when any of these is raised.
        """
        async with self._lock:
            sanitized = self._validated_name(name)
            if custom_path:
                path = Path(custom_path)
            else:
                path = Path(self._config.default_workspace_path) / slugify(sanitized)

            try:
                await to_thread.run_sync(partial(make_directory, path))
            except OSError as exc:
                msg = f"Could not create workspace directory {path}: {exc}"
                raise WorkspaceError(msg) from exc

            now = _utcnow()
            workspace = Workspace(
                id=self._new_id(),
                name=sanitized,
                description=description,
                path=str(path),
                created_at=now,
                last_accessed=now,
            )
            self._config.workspaces.append(workspace)
            await self._save()

        logger.info('Workspace "{}" created at {}', sanitized, path)
        return workspace

    # -- Read ------------------------------------------------------------------

    def list_workspaces(self) -> list[Workspace]:
        """All workspaces, most recently accessed first."""
        return sorted(self._config.workspaces, key=lambda w: w.last_accessed, reverse=True)

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        for workspace in self._config.workspaces:
            if workspace.id == workspace_id:
                return workspace
        return None

    def get_workspace_by_name(self, name: str) -> Workspace | None:
        """Case-insensitive exact name match."""
        lowered = name.lower()
        for workspace in self._config.workspaces:
            if workspace.name.lower() == lowered:
                return workspace
        return None

    def get_current_workspace(self) -> Workspace | None:
        current_id = self._config.current_workspace_id
        if not current_id:
            return None
        return self.get_workspace(current_id)

    def get_workspace_stats(self) -> WorkspaceStats:
        current = self.get_current_workspace()
        return {"total": len(self._config.workspaces), "current": current.name if current else None}

    # -- Update ----------------------------------------------------------------

    async def set_current_workspace(self, workspace_id: str) -> Workspace:
        """Select a workspace and bump its ``last_accessed``.

        Raises ``WorkspaceNotFoundError`` if the id is unknown.
        """
        async with self._lock:
            workspace = self.get_workspace(workspace_id)
            if workspace is None:
                msg = f'Workspace with ID "{workspace_id}" not found'
                raise WorkspaceNotFoundError(msg)
            workspace.last_accessed = _utcnow()
            self._config.current_workspace_id = workspace_id
            await self._save()

        logger.info("Switched to workspace: {}", workspace.name)
        return workspace

    async def rename_workspace(self, workspace_id: str, new_name: str) -> bool:
        async with self._lock:
            workspace = self.get_workspace(workspace_id)
            if workspace is None:
                return False
            sanitized = self._validated_name(new_name, exclude_id=workspace_id)
            workspace.name = sanitized
            await self._save()

        logger.info("Workspace {} renamed to: {}", workspace_id, sanitized)
        return True

    async def update_workspace_description(self, workspace_id: str, description: str) -> bool:
        async with self._lock:
            workspace = self.get_workspace(workspace_id)
            if workspace is None:
                return False
            workspace.description = description
            await self._save()
        return True

    # -- Delete ----------------------------------------------------------------

    async def delete_workspace(self, workspace_id: str, delete_files: bool = False) -> bool:
        """Unregister a workspace, optionally removing its directory.

        File removal is best-effort: a failure is logged and the record is
        removed regardless.  Returns ``False`` if the id is unknown.
        """
        async with self._lock:
            workspace = self.get_workspace(workspace_id)
            if workspace is None:
                return False

            if delete_files:
                try:
                    removed = await to_thread.run_sync(partial(remove_tree, Path(workspace.path)))
                except OSError as exc:
                    logger.warning("Could not delete workspace files at {}: {}", workspace.path, exc)
                else:
                    if removed:
                        logger.info("Deleted workspace files at: {}", workspace.path)

            self._config.workspaces.remove(workspace)
            if self._config.current_workspace_id == workspace_id:
                self._config.current_workspace_id = None
            await self._save()

        logger.info('Workspace "{}" deleted', workspace.name)
        return True
