"""Data models for the agent runtime."""

from andromeda_copilot.agent_runtime.models.api import (
    ChatRequest,
    ChatResponse,
    DeleteResponse,
    HealthResponse,
    SessionsResponse,
    UsageInfo,
    WorkspaceCreate,
    WorkspaceListResponse,
    WorkspaceSwitch,
)
from andromeda_copilot.agent_runtime.models.tools import ToolResult
from andromeda_copilot.agent_runtime.models.workspace import Workspace, WorkspaceConfig

__all__ = [
    # API schemas
    "ChatRequest",
    "ChatResponse",
    "DeleteResponse",
    "HealthResponse",
    "SessionsResponse",
    # Tools
    "ToolResult",
    "UsageInfo",
    # Workspace
    "Workspace",
    "WorkspaceConfig",
    "WorkspaceCreate",
    "WorkspaceListResponse",
    "WorkspaceSwitch",
]
