"""Execution environment: workspace path bounds, shell and runtime commands.

Path Model
----------

Every file tool receives paths relative to the workspace root.  A path is
resolved against the root, canonicalised (symlinks, ``..``), and rejected if
the result lies outside the root.  Absolute paths are accepted only when they
already point inside the root.

Shells
------

``run_shell`` uses the shell named by ``$SHELL``.  PowerShell variants take
the command via ``-Command``; every other shell via ``-c``.  When ``$SHELL``
is unset the platform default is used (``/bin/sh`` on POSIX, ``pwsh.exe`` on
Windows).
"""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path


class PathEscapeError(ValueError):
    """Raised when a tool path resolves outside the workspace root."""


def resolve_workspace_path(root: Path, relative: str) -> Path:
    """Resolve *relative* against *root*, refusing to leave it."""
    base = root.resolve()
    candidate = (base / relative).resolve()
    if not candidate.is_relative_to(base):
        msg = f"Path '{relative}' is outside the workspace"
        raise PathEscapeError(msg)
    return candidate


def default_shell() -> str:
    return "pwsh.exe" if os.name == "nt" else "/bin/sh"


def shell_argv(command: str, shell: str | None = None) -> list[str]:
    """Build the argv that runs *command* through the selected shell."""
    shell = shell or os.environ.get("SHELL") or default_shell()
    flag = "-Command" if "pwsh" in shell.lower() or "powershell" in shell.lower() else "-c"
    return [shell, flag, command]


def split_command(command: str) -> list[str]:
    """Split a configured command line (``"deno check"``) into argv."""
    return shlex.split(command, posix=os.name != "nt")


def runtime_available(command: str) -> bool:
    """Return ``True`` if ``<command> --version`` exits cleanly."""
    try:
        result = subprocess.run(  # noqa: S603
            [*split_command(command), "--version"],
            capture_output=True,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0
