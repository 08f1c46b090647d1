"""Tests for the conversation loop (CopilotAgent).

The provider is replaced by pydantic-ai's ``TestModel`` / ``FunctionModel``;
no network access is needed.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    RetryPromptPart,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.test import TestModel

from andromeda_copilot.agent_runtime.execution.runtime import (
    STEP_LIMIT_MESSAGE,
    CopilotAgent,
    CredentialError,
    ProviderError,
    is_credential_error,
)
from andromeda_copilot.agent_runtime.settings import CopilotSettings


def _parts(messages: list[ModelMessage], kind: type) -> list:
    return [part for message in messages if isinstance(message, ModelRequest) for part in message.parts if isinstance(part, kind)]


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "ws"
    path.mkdir()
    return path


async def test_plain_answer_with_usage(root: Path) -> None:
    agent = CopilotAgent(workspace_path=root, model=TestModel(call_tools=[], custom_output_text="Hi there"))

    result = await agent.chat("hello")

    assert result.content == "Hi there"
    assert result.usage is not None
    assert result.usage.total_tokens == result.usage.prompt_tokens + result.usage.completion_tokens
    assert result.usage.total_tokens > 0


async def test_system_prompt_names_workspace(root: Path) -> None:
    captured: list[list[ModelMessage]] = []

    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        captured.append(messages)
        return ModelResponse(parts=[TextPart("ok")])

    agent = CopilotAgent(workspace_path=root, model=FunctionModel(model))
    await agent.chat("hello")

    system = " ".join(part.content for part in _parts(captured[0], SystemPromptPart))
    assert str(root.resolve()) in system
    assert "write_file" in system


async def test_every_tool_is_offered(root: Path) -> None:
    offered: list[str] = []

    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        offered.extend(tool.name for tool in info.function_tools)
        return ModelResponse(parts=[TextPart("ok")])

    agent = CopilotAgent(workspace_path=root, model=FunctionModel(model))
    await agent.chat("hello")

    assert "execute_file" in offered
    assert len(offered) == 17


async def test_tool_round_trip(root: Path) -> None:
    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        returns = _parts(messages, ToolReturnPart)
        if not returns:
            return ModelResponse(parts=[ToolCallPart("write_file", {"path": "hello.ts", "content": "console.log(1)"})])
        return ModelResponse(parts=[TextPart(f"wrote it: {returns[0].model_response_str()}")])

    agent = CopilotAgent(workspace_path=root, model=FunctionModel(model))
    result = await agent.chat("write hello.ts")

    assert (root / "hello.ts").read_text() == "console.log(1)"
    assert "File written successfully: hello.ts" in result.content


async def test_failing_tool_does_not_abort_turn(root: Path) -> None:
    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        returns = _parts(messages, ToolReturnPart)
        if not returns:
            return ModelResponse(parts=[ToolCallPart("delete_file", {"path": "missing.txt"})])
        return ModelResponse(parts=[TextPart(returns[0].model_response_str())])

    agent = CopilotAgent(workspace_path=root, model=FunctionModel(model))
    result = await agent.chat("delete missing.txt")

    assert '"success":false' in result.content.replace(" ", "")
    assert "Failed to execute delete operation" in result.content


async def test_malformed_arguments_become_retry_prompt(root: Path) -> None:
    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        if not _parts(messages, RetryPromptPart):
            # ``content`` is missing.
            return ModelResponse(parts=[ToolCallPart("write_file", {"path": "x.ts"})])
        return ModelResponse(parts=[TextPart("recovered")])

    agent = CopilotAgent(workspace_path=root, model=FunctionModel(model))
    result = await agent.chat("write x.ts")

    assert result.content == "recovered"
    assert not (root / "x.ts").exists()


async def test_step_limit_ends_turn_with_message(root: Path) -> None:
    calls = 0

    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        nonlocal calls
        calls += 1
        return ModelResponse(parts=[ToolCallPart("think", {"thought": f"step {calls}"})])

    agent = CopilotAgent(workspace_path=root, max_steps=3, model=FunctionModel(model))
    result = await agent.chat("loop forever")

    assert calls == 3
    assert result.content == STEP_LIMIT_MESSAGE.format(steps=3)
    assert result.usage is None


async def test_turns_are_independent(root: Path) -> None:
    seen: list[int] = []

    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen.append(len(_parts(messages, UserPromptPart)))
        return ModelResponse(parts=[TextPart("ok")])

    agent = CopilotAgent(workspace_path=root, model=FunctionModel(model))
    await agent.chat("first")
    await agent.chat("second")

    assert seen == [1, 1]


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


def _raising(exc: Exception) -> FunctionModel:
    def model(messages: list[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise exc

    return FunctionModel(model)


async def test_unauthorized_is_credential_error(root: Path) -> None:
    agent = CopilotAgent(workspace_path=root, model=_raising(ModelHTTPError(401, "gpt-4o", {"error": "nope"})))
    with pytest.raises(CredentialError):
        await agent.chat("hi")


async def test_key_message_is_credential_error(root: Path) -> None:
    agent = CopilotAgent(workspace_path=root, model=_raising(RuntimeError("Incorrect API key provided: sk-***")))
    with pytest.raises(CredentialError):
        await agent.chat("hi")


async def test_other_failures_are_provider_errors(root: Path) -> None:
    agent = CopilotAgent(workspace_path=root, model=_raising(RuntimeError("upstream timeout")))
    with pytest.raises(ProviderError, match="Failed to generate AI response: upstream timeout"):
        await agent.chat("hi")


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (RuntimeError("API_KEY_ERROR"), True),
        (RuntimeError("invalid_api_key"), True),
        (RuntimeError("The OPENAI_API_KEY environment variable is not set"), True),
        (ModelHTTPError(401, "gpt-4o"), True),
        (ModelHTTPError(500, "gpt-4o"), False),
        (RuntimeError("rate limited"), False),
    ],
)
def test_is_credential_error(exc: Exception, expected: bool) -> None:
    assert is_credential_error(exc) is expected


async def test_missing_key_without_model_is_credential_error(root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    agent = CopilotAgent(workspace_path=root, api_key=None)
    with pytest.raises(CredentialError):
        await agent.chat("hi")


def test_from_settings(root: Path) -> None:
    settings = CopilotSettings(model="gpt-4o-mini", max_steps=4, runtime_command="deno", openai_api_key="sk-test")

    agent = CopilotAgent.from_settings(settings, workspace_path=root, session_id="s1")

    assert agent.model_name == "gpt-4o-mini"
    assert agent.max_steps == 4
    assert agent.context.runtime_command == "deno"
    assert agent.context.session_id == "s1"
    assert agent.workspace_path == root
