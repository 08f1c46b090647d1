"""Config store interface for workspace registry persistence.

The registry keeps its whole state in memory and hands a complete
``WorkspaceConfig`` to the store after every mutation.  Loading happens once,
synchronously, while the registry is constructed; saving is async so the
blocking write can be pushed off the event loop.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from andromeda_copilot.agent_runtime.models.workspace import WorkspaceConfig


@runtime_checkable
class ConfigStore(Protocol):
    """Protocol for reading and writing the workspace document.

    Storage layout::

        {root}/workspaces.json
    """

    def load(self) -> WorkspaceConfig | None:
        """Read the document.  Returns ``None`` when missing or unreadable."""
        ...

    async def save(self, config: WorkspaceConfig) -> None:
        """Replace the document with *config*.  Raises ``OSError`` on failure."""
        ...
