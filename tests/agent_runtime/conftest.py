"""Shared fixtures for agent-runtime tests."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic_ai.models.test import TestModel

from andromeda_copilot.agent_runtime.app import app
from andromeda_copilot.agent_runtime.execution.runtime import CopilotAgent
from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
from andromeda_copilot.agent_runtime.registry import SessionRegistry
from andromeda_copilot.agent_runtime.settings import CopilotSettings


@pytest.fixture
def registry_root(tmp_path: Path) -> Path:
    return tmp_path / "workspaces"


@pytest.fixture
def settings(tmp_path: Path, registry_root: Path) -> CopilotSettings:
    return CopilotSettings(
        registry_root=str(registry_root),
        default_workspace=str(tmp_path / "workspace"),
        web_dir=str(tmp_path / "web"),
    )


@pytest.fixture
def workspaces(registry_root: Path) -> WorkspaceManager:
    return WorkspaceManager(registry_root)


@pytest.fixture
def test_model() -> TestModel:
    """Offline model that answers without calling any tool."""
    return TestModel(call_tools=[], custom_output_text="Hello from the copilot")


@pytest.fixture
def sessions(settings: CopilotSettings, workspaces: WorkspaceManager, test_model: TestModel) -> SessionRegistry:
    def factory(workspace_path: Path, api_key: str | None, session_id: str) -> CopilotAgent:
        return CopilotAgent.from_settings(
            settings,
            workspace_path=workspace_path,
            api_key=api_key,
            workspaces=workspaces,
            session_id=session_id,
            model=test_model,
        )

    return SessionRegistry(settings, workspaces, agent_factory=factory)


@pytest.fixture
async def client(
    settings: CopilotSettings,
    workspaces: WorkspaceManager,
    sessions: SessionRegistry,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with test singletons.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set here.
    """
    app.state.settings = settings
    app.state.workspaces = workspaces
    app.state.sessions = sessions
    app.state.web_dir = Path(settings.web_dir)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
