"""API request / response schemas.

These thin schemas sit between HTTP and the managers.  Field names are
snake_case in Python and camelCase on the wire, matching the persisted
workspace document and the bundled web client.

- **Request** schemas keep required fields optional where the router must
  answer with a custom ``{error}`` message instead of a validation error.
- **Response** schemas reuse the ``Workspace`` domain model directly.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from andromeda_copilot.agent_runtime.models.workspace import Workspace


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRequest(_CamelModel):
    """Input for ``POST /api/chat``."""

    message: str | None = None
    session_id: str | None = None


class UsageInfo(_CamelModel):
    """Token counters reported by the provider for one turn."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatResponse(_CamelModel):
    response: str
    usage: UsageInfo | None = None
    session_id: str


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class HealthResponse(_CamelModel):
    status: str = "ok"
    timestamp: datetime


class SessionsResponse(_CamelModel):
    active_sessions: int


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(_CamelModel):
    """Input for creating a new workspace."""

    name: str | None = None
    description: str | None = None


class WorkspaceSwitch(_CamelModel):
    """Select the current workspace by id or, failing that, by name."""

    id: str | None = None
    name: str | None = None


class WorkspaceListResponse(_CamelModel):
    workspaces: list[Workspace] = Field(default_factory=list)
    current_workspace: Workspace | None = None


class DeleteResponse(_CamelModel):
    success: bool = True
