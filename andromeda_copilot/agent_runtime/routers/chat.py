"""Chat endpoint.

Resolves (or creates) the caller's session and runs one conversation turn.
A bearer token, when present, is used as the provider credential for a new
session.  A rejected credential is answered with a demonstration response
under a fresh session id instead of an error.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Header, HTTPException, status
from loguru import logger

from andromeda_copilot.agent_runtime.deps import Sessions
from andromeda_copilot.agent_runtime.execution.runtime import (
    DEMO_RESPONSE,
    DEMO_USAGE,
    CredentialError,
    ProviderError,
)
from andromeda_copilot.agent_runtime.models.api import ChatRequest, ChatResponse

router = APIRouter(tags=["chat"])


def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer ") :] or None
    return None


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(
    body: ChatRequest,
    sessions: Sessions,
    authorization: str | None = Header(None),
) -> ChatResponse:
    if not body.message:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Message is required")

    agent, session_id = sessions.get_or_create_agent(body.session_id, _bearer_token(authorization))
    logger.info("Processing request for session: {}", session_id)
    logger.debug("Message: {}", body.message)

    try:
        result = await agent.chat(body.message)
    except CredentialError:
        logger.warning("Invalid API key detected, providing demo response")
        # The agent is bound to the rejected key; the client gets a fresh id instead.
        sessions.discard(session_id)
        return ChatResponse(response=DEMO_RESPONSE, usage=DEMO_USAGE, session_id=str(uuid.uuid4()))
    except ProviderError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from None

    return ChatResponse(response=result.content, usage=result.usage, session_id=session_id)
