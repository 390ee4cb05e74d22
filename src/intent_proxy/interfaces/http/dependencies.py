"""FastAPI dependency injection functions for the proxy endpoints."""

from __future__ import annotations

from fastapi import Request

from intent_proxy.core.orchestrator import Orchestrator
from intent_proxy.stores.base import IAgentDirectory, IConversationStore


def get_orchestrator(request: Request) -> Orchestrator:
    """Return the orchestrator from app state."""
    return request.app.state.orchestrator


def get_directory(request: Request) -> IAgentDirectory:
    """Return the agent directory from app state."""
    return request.app.state.stores.directory


def get_sessions(request: Request) -> IConversationStore:
    """Return the conversation store from app state."""
    return request.app.state.stores.sessions


__all__ = ["get_directory", "get_orchestrator", "get_sessions"]
