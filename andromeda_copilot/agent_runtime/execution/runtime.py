"""Conversation loop -- one pydantic-ai run per user turn.

``CopilotAgent`` binds a pydantic-ai ``Agent`` to a ``ToolContext``.  Each
call to ``chat`` is an independent provider run: system prompt, user message
and the full tool catalog, capped at ``max_steps`` model requests.  No
transcript is carried between turns.

Provider failures are classified so front-ends can react:

- ``CredentialError`` -- the key was rejected or is missing; front-ends
  answer with a demonstration response instead of failing.
- ``ProviderError``   -- anything else; surfaced as a generic failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic_ai import Agent, ModelSettings, RunContext
from pydantic_ai.exceptions import ModelHTTPError, UsageLimitExceeded
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.usage import UsageLimits

from andromeda_copilot.agent_runtime.context import ToolContext
from andromeda_copilot.agent_runtime.execution.prompt import render_system_prompt
from andromeda_copilot.agent_runtime.execution.tools import build_tools
from andromeda_copilot.agent_runtime.models.api import UsageInfo

if TYPE_CHECKING:
    from pydantic_ai.models import Model

    from andromeda_copilot.agent_runtime.managers.workspaces import WorkspaceManager
    from andromeda_copilot.agent_runtime.settings import CopilotSettings

logger = logging.getLogger(__name__)

CREDENTIAL_MARKERS = (
    "API_KEY_ERROR",
    "API key",
    "Incorrect API key",
    "invalid_api_key",
    "api_key",
    "OPENAI_API_KEY",
)

STEP_LIMIT_MESSAGE = (
    "I stopped after {steps} steps without reaching a final answer. "
    "Please narrow the request or ask me to continue."
)

DEMO_RESPONSE = (
    "⚠️ **Demo Mode**: Invalid OpenAI API key detected. Please set a valid OPENAI_API_KEY "
    "in your .env file to use the full functionality.\n\n"
    "For now, this is a mock response. The agent would normally:\n"
    "- Write and execute TypeScript files\n"
    "- Use the code-execution runtime\n"
    "- Access file system operations\n"
    "- Provide real AI assistance"
)
DEMO_USAGE = UsageInfo(prompt_tokens=50, completion_tokens=100, total_tokens=150)


class CredentialError(RuntimeError):
    """The provider rejected (or never received) the API key."""


class ProviderError(RuntimeError):
    """Any other failure while generating a response."""


def is_credential_error(exc: BaseException) -> bool:
    if isinstance(exc, ModelHTTPError) and exc.status_code == 401:
        return True
    message = str(exc)
    return any(marker in message for marker in CREDENTIAL_MARKERS)


@dataclass
class ChatResult:
    """Final text of one turn plus provider token counters."""

    content: str
    usage: UsageInfo | None = None


def _render_prompt(ctx: RunContext[ToolContext]) -> str:
    deps = ctx.deps
    current = deps.workspaces.get_current_workspace() if deps.workspaces else None
    return render_system_prompt(
        workspace_dir=str(deps.workspace_root()),
        workspace_name=current.name if current else None,
        runtime_command=deps.runtime_command,
    )


class CopilotAgent:
    """Language-model agent bound to a workspace path and a credential.

    Parameters
    ----------
    workspace_path:
        Default root for file tools when no workspace is current.
    api_key:
        Provider credential; ``None`` falls back to ``OPENAI_API_KEY``.
    workspaces:
        Registry consulted on every tool call for the current workspace.
    model:
        Pre-built pydantic-ai model.  When omitted an OpenAI chat model named
        ``model_name`` is built lazily for each turn, so a bad credential
        surfaces as ``CredentialError`` from ``chat`` rather than here.
    """

    def __init__(
        self,
        *,
        workspace_path: str | Path,
        api_key: str | None = None,
        model_name: str = "gpt-4o",
        temperature: float = 0.7,
        max_tokens: int = 2000,
        max_steps: int = 10,
        workspaces: WorkspaceManager | None = None,
        runtime_command: str = "andromeda",
        typecheck_command: str = "deno check",
        fetch_timeout: float = 30.0,
        session_id: str | None = None,
        model: Model | None = None,
    ) -> None:
        self.workspace_path = Path(workspace_path)
        self.model_name = model_name
        self.max_steps = max_steps
        self._api_key = api_key
        self._model = model

        self.context = ToolContext(
            default_path=self.workspace_path,
            workspaces=workspaces,
            runtime_command=runtime_command,
            typecheck_command=typecheck_command,
            fetch_timeout=fetch_timeout,
            session_id=session_id,
        )

        self._agent: Agent[ToolContext, str] = Agent(
            deps_type=ToolContext,
            output_type=str,
            tools=build_tools(),
            model_settings=ModelSettings(temperature=temperature, max_tokens=max_tokens),
            retries=3,
            name="andromeda",
        )
        self._agent.system_prompt(_render_prompt)

    @classmethod
    def from_settings(
        cls,
        settings: CopilotSettings,
        *,
        workspace_path: str | Path,
        api_key: str | None = None,
        workspaces: WorkspaceManager | None = None,
        session_id: str | None = None,
        model: Model | None = None,
    ) -> CopilotAgent:
        return cls(
            workspace_path=workspace_path,
            api_key=api_key or settings.resolve_api_key(),
            model_name=settings.model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            max_steps=settings.max_steps,
            workspaces=workspaces,
            runtime_command=settings.runtime_command,
            typecheck_command=settings.typecheck_command,
            fetch_timeout=settings.fetch_timeout,
            session_id=session_id,
            model=model,
        )

    def _resolve_model(self) -> Model:
        if self._model is not None:
            return self._model
        return OpenAIChatModel(self.model_name, provider=OpenAIProvider(api_key=self._api_key))

    async def chat(self, message: str) -> ChatResult:
        """Run one turn and return the model's final text.

        Raises ``CredentialError`` or ``ProviderError``.  Reaching the step
        limit is not an error: the turn ends with an explanatory message.
        """
        try:
            result = await self._agent.run(
                message,
                deps=self.context,
                model=self._resolve_model(),
                usage_limits=UsageLimits(request_limit=self.max_steps),
            )
            usage = result.usage
            return ChatResult(
                content=result.output,
                usage=UsageInfo(
                    prompt_tokens=usage.input_tokens,
                    completion_tokens=usage.output_tokens,
                    total_tokens=usage.input_tokens + usage.output_tokens,
                ),
            )
        except UsageLimitExceeded:
            logger.warning("Step limit of %d reached (session=%s)", self.max_steps, self.context.session_id)
            return ChatResult(content=STEP_LIMIT_MESSAGE.format(steps=self.max_steps))
        except Exception as exc:
            if is_credential_error(exc):
                raise CredentialError(str(exc)) from exc
            logger.exception("Error generating response")
            msg = f"Failed to generate AI response: {exc}"
            raise ProviderError(msg) from exc
