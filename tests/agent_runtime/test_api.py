"""HTTP API tests.

Run against the FastAPI app through ``httpx.ASGITransport`` with the
singletons from ``conftest.py``; the provider is a ``TestModel``.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from httpx import AsyncClient
from pydantic_ai.messages import ModelMessage, ModelResponse
from pydantic_ai.models import Model
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel

from andromeda_copilot.agent_runtime.app import app
from andromeda_copilot.agent_runtime.execution.runtime import DEMO_RESPONSE, CopilotAgent
from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
from andromeda_copilot.agent_runtime.registry import SessionRegistry
from andromeda_copilot.agent_runtime.settings import CopilotSettings

# ---------------------------------------------------------------------------
# Health / sessions
# ---------------------------------------------------------------------------


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert "timestamp" in body


async def test_sessions_count(client: AsyncClient, sessions: SessionRegistry) -> None:
    assert (await client.get("/api/sessions")).json() == {"activeSessions": 0}

    sessions.get_or_create_agent()
    assert (await client.get("/api/sessions")).json() == {"activeSessions": 1}


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


async def test_chat(client: AsyncClient) -> None:
    resp = await client.post("/api/chat", json={"message": "hello"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["response"] == "Hello from the copilot"
    assert body["sessionId"]
    assert set(body["usage"]) == {"promptTokens", "completionTokens", "totalTokens"}


async def test_chat_reuses_session(client: AsyncClient, sessions: SessionRegistry) -> None:
    first = (await client.post("/api/chat", json={"message": "one"})).json()
    second = (await client.post("/api/chat", json={"message": "two", "sessionId": first["sessionId"]})).json()

    assert second["sessionId"] == first["sessionId"]
    assert sessions.active_count == 1


async def test_chat_without_session_creates_new_ones(client: AsyncClient, sessions: SessionRegistry) -> None:
    a = (await client.post("/api/chat", json={"message": "one"})).json()
    b = (await client.post("/api/chat", json={"message": "two"})).json()

    assert a["sessionId"] != b["sessionId"]
    assert sessions.active_count == 2


@pytest.mark.parametrize("payload", [{}, {"message": ""}, {"sessionId": "abc"}])
async def test_chat_requires_message(client: AsyncClient, payload: dict) -> None:
    resp = await client.post("/api/chat", json=payload)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Message is required"}


async def test_chat_invalid_json_uses_error_envelope(client: AsyncClient) -> None:
    resp = await client.post("/api/chat", content=b"{broken", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert "error" in resp.json()


def _registry_with(
    model: Model,
    settings: CopilotSettings,
    workspaces: WorkspaceManager,
) -> tuple[SessionRegistry, list[str | None]]:
    """Registry whose agents use *model*; also returns the credentials they received."""
    keys: list[str | None] = []

    def factory(path: Path, api_key: str | None, session_id: str) -> CopilotAgent:
        keys.append(api_key)
        return CopilotAgent(workspace_path=path, api_key=api_key, session_id=session_id, model=model)

    return SessionRegistry(settings, workspaces, agent_factory=factory), keys


def _raising(exc: Exception) -> FunctionModel:
    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise exc

    return FunctionModel(model)


async def test_chat_credential_failure_returns_demo(
    client: AsyncClient,
    settings: CopilotSettings,
    workspaces: WorkspaceManager,
) -> None:
    registry, _ = _registry_with(_raising(RuntimeError("Incorrect API key provided")), settings, workspaces)
    app.state.sessions = registry

    resp = await client.post("/api/chat", json={"message": "hi", "sessionId": "mine"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["response"] == DEMO_RESPONSE
    assert body["usage"] == {"promptTokens": 50, "completionTokens": 100, "totalTokens": 150}
    assert body["sessionId"] != "mine"
    assert registry.get("mine") is None
    assert registry.active_count == 0


async def test_chat_provider_failure_is_500(
    client: AsyncClient,
    settings: CopilotSettings,
    workspaces: WorkspaceManager,
) -> None:
    app.state.sessions, _ = _registry_with(_raising(RuntimeError("upstream down")), settings, workspaces)

    resp = await client.post("/api/chat", json={"message": "hi"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate AI response: upstream down"}


async def test_chat_bearer_token_is_used_for_new_session(
    client: AsyncClient,
    settings: CopilotSettings,
    workspaces: WorkspaceManager,
) -> None:
    app.state.sessions, keys = _registry_with(TestModel(call_tools=[]), settings, workspaces)

    await client.post("/api/chat", json={"message": "hi"}, headers={"Authorization": "Bearer sk-from-header"})

    assert keys == ["sk-from-header"]


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------


async def test_list_workspaces_empty(client: AsyncClient) -> None:
    resp = await client.get("/api/workspaces")
    assert resp.status_code == 200
    assert resp.json() == {"workspaces": [], "currentWorkspace": None}


async def test_create_workspace(client: AsyncClient, registry_root: Path) -> None:
    resp = await client.post("/api/workspaces", json={"name": "Demo Project", "description": "demo"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Demo Project"
    assert body["description"] == "demo"
    assert Path(body["path"]) == registry_root / "demo-project"
    assert {"id", "createdAt", "lastAccessed"} <= set(body)


async def test_create_workspace_requires_name(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces", json={"description": "no name"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Workspace name is required"}


async def test_create_workspace_duplicate(client: AsyncClient) -> None:
    await client.post("/api/workspaces", json={"name": "Alpha"})
    resp = await client.post("/api/workspaces", json={"name": "alpha"})

    assert resp.status_code == 400
    assert "already exists" in resp.json()["error"]


async def test_create_workspace_invalid_name(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces", json={"name": "!!!"})
    assert resp.status_code == 400
    assert "error" in resp.json()


async def test_switch_by_name_and_id(client: AsyncClient) -> None:
    alpha = (await client.post("/api/workspaces", json={"name": "Alpha"})).json()
    beta = (await client.post("/api/workspaces", json={"name": "Beta"})).json()

    resp = await client.post("/api/workspaces/switch", json={"name": "ALPHA"})
    assert resp.status_code == 200
    assert resp.json()["id"] == alpha["id"]

    resp = await client.post("/api/workspaces/switch", json={"id": beta["id"]})
    assert resp.status_code == 200

    listing = (await client.get("/api/workspaces")).json()
    assert listing["currentWorkspace"]["id"] == beta["id"]
    assert [w["id"] for w in listing["workspaces"]] == [beta["id"], alpha["id"]]


async def test_switch_requires_target(client: AsyncClient) -> None:
    resp = await client.post("/api/workspaces/switch", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Workspace ID or name is required"}


@pytest.mark.parametrize("payload", [{"name": "Nope"}, {"id": "missing"}])
async def test_switch_unknown(client: AsyncClient, payload: dict) -> None:
    resp = await client.post("/api/workspaces/switch", json=payload)
    assert resp.status_code == 404
    assert "not found" in resp.json()["error"]


async def test_switch_clears_sessions(client: AsyncClient, sessions: SessionRegistry) -> None:
    ws = (await client.post("/api/workspaces", json={"name": "Alpha"})).json()
    chat = (await client.post("/api/chat", json={"message": "hi"})).json()
    assert sessions.active_count == 1

    await client.post("/api/workspaces/switch", json={"id": ws["id"]})

    assert sessions.active_count == 0
    assert sessions.get(chat["sessionId"]) is None

    # The next chat rebinds to the new current workspace.
    await client.post("/api/chat", json={"message": "again", "sessionId": chat["sessionId"]})
    assert sessions.get(chat["sessionId"]).workspace_path == Path(ws["path"])


async def test_create_does_not_clear_sessions(client: AsyncClient, sessions: SessionRegistry) -> None:
    await client.post("/api/chat", json={"message": "hi"})
    await client.post("/api/workspaces", json={"name": "Alpha"})
    assert sessions.active_count == 1


async def test_delete_workspace(client: AsyncClient, sessions: SessionRegistry) -> None:
    ws = (await client.post("/api/workspaces", json={"name": "Alpha"})).json()
    await client.post("/api/workspaces/switch", json={"id": ws["id"]})
    await client.post("/api/chat", json={"message": "hi"})

    resp = await client.delete("/api/workspaces", params={"id": ws["id"], "deleteFiles": "true"})

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert sessions.active_count == 0
    assert not Path(ws["path"]).exists()
    assert (await client.get("/api/workspaces")).json() == {"workspaces": [], "currentWorkspace": None}


async def test_delete_keeps_files_by_default(client: AsyncClient) -> None:
    ws = (await client.post("/api/workspaces", json={"name": "Alpha"})).json()
    await client.delete("/api/workspaces", params={"id": ws["id"]})
    assert Path(ws["path"]).is_dir()


async def test_delete_requires_id(client: AsyncClient) -> None:
    resp = await client.delete("/api/workspaces")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Workspace ID is required"}


async def test_delete_unknown(client: AsyncClient) -> None:
    resp = await client.delete("/api/workspaces", params={"id": "missing"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Workspace not found"}


# ---------------------------------------------------------------------------
# Static client
# ---------------------------------------------------------------------------


@pytest.fixture
def web_dir(settings: CopilotSettings) -> Path:
    root = Path(settings.web_dir)
    root.mkdir(parents=True)
    (root / "index.html").write_text("<h1>copilot</h1>")
    (root / "app.js").write_text("console.log('ok')")
    return root


async def test_root_serves_index(client: AsyncClient, web_dir: Path) -> None:
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.text == "<h1>copilot</h1>"


async def test_static_file(client: AsyncClient, web_dir: Path) -> None:
    resp = await client.get("/app.js")
    assert resp.status_code == 200
    assert "console.log" in resp.text


async def test_static_missing_is_404(client: AsyncClient, web_dir: Path) -> None:
    resp = await client.get("/nope.css")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not found"}


async def test_static_traversal_is_404(client: AsyncClient, web_dir: Path) -> None:
    (web_dir.parent / "secret.txt").write_text("secret")
    resp = await client.get("/%2e%2e/secret.txt")
    assert resp.status_code == 404


async def test_cors_is_open(client: AsyncClient) -> None:
    resp = await client.get("/api/health", headers={"Origin": "http://elsewhere.example"})
    assert resp.headers["access-control-allow-origin"] == "*"
