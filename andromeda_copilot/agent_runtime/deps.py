"""FastAPI dependency injection for the process-level singletons.

Usage in route handlers::

    @router.get("/things")
    async def list_things(workspaces: Workspaces, sessions: Sessions) -> ...:
        ...

The singletons are created in the app lifespan and stored on ``app.state``.
Dependencies raise HTTP 503 if the lifespan has not initialised them.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
from andromeda_copilot.agent_runtime.registry import SessionRegistry


def get_workspace_manager(request: Request) -> WorkspaceManager:
    manager: WorkspaceManager | None = getattr(request.app.state, "workspaces", None)
    if manager is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Workspace registry not initialised.")
    return manager


def get_session_registry(request: Request) -> SessionRegistry:
    registry: SessionRegistry | None = getattr(request.app.state, "sessions", None)
    if registry is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session registry not initialised.")
    return registry


# -- Annotated type aliases for concise route signatures ---------------------

Workspaces = Annotated[WorkspaceManager, Depends(get_workspace_manager)]
"""Annotated dependency: the workspace registry."""

Sessions = Annotated[SessionRegistry, Depends(get_session_registry)]
"""Annotated dependency: the live session registry."""
