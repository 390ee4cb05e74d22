"""Proxy API router: registry, execution stream and session history."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from intent_proxy.core.models import (
    AgentDescriptor,
    ConversationSession,
    ExecuteRequest,
    RegisterAgentRequest,
)
from intent_proxy.core.orchestrator import Orchestrator
from intent_proxy.interfaces.http.dependencies import (
    get_directory,
    get_orchestrator,
    get_sessions,
)
from intent_proxy.stores.base import IAgentDirectory, IConversationStore

LOGGER = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"

router = APIRouter()


@router.post("/registry/register")
async def register_agent(
    request: RegisterAgentRequest,
    directory: IAgentDirectory = Depends(get_directory),
) -> dict[str, Any]:
    agent = await directory.register(request.name, request.url, request.description)
    LOGGER.info("Registered agent %s at %s", agent.name, agent.url)
    return {"success": True, "agent": agent.model_dump(mode="json")}


@router.get("/registry/agents", response_model=list[AgentDescriptor])
async def list_agents(
    directory: IAgentDirectory = Depends(get_directory),
) -> list[AgentDescriptor]:
    return await directory.list_agents()


@router.post("/proxy/execute")
async def execute(
    request: ExecuteRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Stream progress events for one intent as newline-delimited JSON."""

    async def _lines() -> AsyncIterator[str]:
        async for event in orchestrator.handle(
            request.intent,
            target_url=request.target_url,
            session_id=request.session_id,
        ):
            yield event.to_line()

    return StreamingResponse(
        _lines(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/sessions/{session_id}/history", response_model=ConversationSession)
async def session_history(
    session_id: str,
    sessions: IConversationStore = Depends(get_sessions),
) -> ConversationSession:
    session = await sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


__all__ = ["router"]
