"""Protocols implemented by the proxy's stores.

The orchestrator and executor only depend on these interfaces; the concrete
backend (in-memory or SQLite) is chosen at startup from the settings.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from intent_proxy.core.models import (
    AgentDescriptor,
    CallMapping,
    CallSpec,
    ConversationSession,
)


@runtime_checkable
class IAgentDirectory(Protocol):
    """Mapping from agent name to base URL and capability description."""

    async def register(self, name: str, url: str, description: str) -> AgentDescriptor:
        """Create or refresh the agent identified by ``url``.

        Registering a ``name`` currently bound to another URL moves the name
        to the new URL.
        """
        ...

    async def list_agents(self) -> list[AgentDescriptor]:
        """Return every registered agent."""
        ...

    async def get(self, name: str) -> AgentDescriptor | None:
        """Return the agent registered under ``name``."""
        ...


@runtime_checkable
class ICallSpecCache(Protocol):
    """Cache of resolved call specifications keyed by (target URL, intent)."""

    async def lookup(self, target_url: str, intent: str) -> CallSpec | None:
        """Return the live specification for the key, ignoring expired entries."""
        ...

    async def store(self, target_url: str, intent: str, call_spec: CallSpec) -> CallMapping:
        """Replace any entry for the key with ``call_spec``."""
        ...

    async def invalidate(self, target_url: str, intent: str) -> None:
        """Delete the entry for the key if present."""
        ...

    async def mappings(self) -> list[CallMapping]:
        """Return all live mappings."""
        ...


@runtime_checkable
class IConversationStore(Protocol):
    """Per-session turn history with inactivity expiry."""

    async def get(self, session_id: str) -> ConversationSession | None:
        """Return the session unless it is unknown or expired."""
        ...

    async def save(self, session: ConversationSession) -> None:
        """Persist ``session`` and refresh its ``last_updated_at``."""
        ...


def normalise_url(url: str) -> str:
    """Normalise a base URL used as a directory or cache key."""

    return url.strip().rstrip("/")


__all__ = ["IAgentDirectory", "ICallSpecCache", "IConversationStore", "normalise_url"]
