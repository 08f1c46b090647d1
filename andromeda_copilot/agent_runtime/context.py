"""Tool execution context.

``ToolContext`` is the dependency object pydantic-ai passes to every tool as
``RunContext[ToolContext].deps``.  It replaces closures over agent state: the
workspace root is resolved on every call (current workspace if one is
selected, else the session's default path), so a workspace switch takes
effect without rebuilding the agent.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from andromeda_copilot.agent_runtime.execution.environment import resolve_workspace_path

if TYPE_CHECKING:
    from loguru import Logger

    from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager


@dataclass
class ToolContext:
    """Per-session state handed to tool executors at call time."""

    # -- Workspace -------------------------------------------------------------
    default_path: Path
    workspaces: WorkspaceManager | None = None

    # -- External commands -----------------------------------------------------
    runtime_command: str = "andromeda"
    typecheck_command: str = "deno check"
    fetch_timeout: float = 30.0

    # -- Identity --------------------------------------------------------------
    session_id: str | None = None

    @property
    def logger(self) -> Logger:
        return logger.bind(session_id=self.session_id)

    def workspace_root(self) -> Path:
        current = self.workspaces.get_current_workspace() if self.workspaces else None
        root = Path(current.path) if current else self.default_path
        return root.resolve()

    def resolve(self, relative: str) -> Path:
        """Resolve a model-supplied path inside the workspace root."""
        return resolve_workspace_path(self.workspace_root(), relative)
