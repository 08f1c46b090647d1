"""In-process session registry.

Maps opaque session ids to live ``CopilotAgent`` instances.  Ephemeral --
empty on process restart, never persisted.  A single instance lives on
``app.state`` and is injected into request handlers; there is no module
global.

Sessions are never evicted individually.  ``clear`` drops all of them and is
called whenever the current workspace changes over HTTP, so every later
request rebinds to the new workspace.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from andromeda_copilot.agent_runtime.execution.runtime import CopilotAgent

if TYPE_CHECKING:
    from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
    from andromeda_copilot.agent_runtime.settings import CopilotSettings

AgentFactory = Callable[[Path, str | None, str], CopilotAgent]
"""``(workspace_path, api_key, session_id) -> agent``."""


class SessionRegistry:
    """Registry of live agent sessions."""

    def __init__(
        self,
        settings: CopilotSettings,
        workspaces: WorkspaceManager,
        *,
        agent_factory: AgentFactory | None = None,
    ) -> None:
        self._settings = settings
        self._workspaces = workspaces
        self._agent_factory = agent_factory or self._default_factory
        self._sessions: dict[str, CopilotAgent] = {}

    def _default_factory(self, workspace_path: Path, api_key: str | None, session_id: str) -> CopilotAgent:
        return CopilotAgent.from_settings(
            self._settings,
            workspace_path=workspace_path,
            api_key=api_key,
            workspaces=self._workspaces,
            session_id=session_id,
        )

    # -- Mutation --------------------------------------------------------------

    def put(self, session_id: str, agent: CopilotAgent) -> None:
        logger.debug("Registry: register session {}", session_id)
        self._sessions[session_id] = agent

    def discard(self, session_id: str) -> bool:
        """Drop one session.  Returns ``False`` if it was not live."""
        if self._sessions.pop(session_id, None) is None:
            return False
        logger.debug("Registry: discard session {}", session_id)
        return True

    def clear(self) -> int:
        """Drop every session.  Returns how many were live."""
        count = len(self._sessions)
        self._sessions.clear()
        if count:
            logger.info("Registry: cleared {} sessions", count)
        return count

    # -- Query -----------------------------------------------------------------

    def get(self, session_id: str) -> CopilotAgent | None:
        return self._sessions.get(session_id)

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    # -- Lifecycle -------------------------------------------------------------

    def current_workspace_path(self) -> Path:
        """Current workspace directory, or the configured default."""
        current = self._workspaces.get_current_workspace()
        return Path(current.path) if current else Path(self._settings.default_workspace)

    def get_or_create_agent(
        self,
        session_id: str | None = None,
        api_key: str | None = None,
    ) -> tuple[CopilotAgent, str]:
        """Return the live agent for *session_id* or register a new one.

        A live agent is returned unchanged, even if *api_key* differs.  A new
        session keeps the supplied id when given, else gets a random one.
        """
        if session_id:
            agent = self._sessions.get(session_id)
            if agent is not None:
                return agent, session_id

        new_session_id = session_id or str(uuid.uuid4())
        agent = self._agent_factory(
            self.current_workspace_path(),
            api_key or self._settings.resolve_api_key(),
            new_session_id,
        )
        self.put(new_session_id, agent)
        return agent, new_session_id
