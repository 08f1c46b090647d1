"""Session endpoints.

Thin HTTP adapter -- reports the live session registry.
"""

from __future__ import annotations

from fastapi import APIRouter

from andromeda_copilot.agent_runtime.deps import Sessions
from andromeda_copilot.agent_runtime.models.api import SessionsResponse

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get("", response_model=SessionsResponse)
async def count_sessions(sessions: Sessions) -> SessionsResponse:
    return SessionsResponse(active_sessions=sessions.active_count)
