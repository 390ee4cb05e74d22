"""In-process store implementations."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from intent_proxy.core.fingerprint import intent_fingerprint
from intent_proxy.core.models import (
    AgentDescriptor,
    CallMapping,
    CallSpec,
    ConversationSession,
    utcnow,
)

from .base import normalise_url

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class InMemoryAgentDirectory:
    """Agent directory kept in a dictionary keyed by base URL."""

    def __init__(self, *, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._agents: dict[str, AgentDescriptor] = {}
        self._lock = threading.Lock()

    async def register(self, name: str, url: str, description: str) -> AgentDescriptor:
        key = normalise_url(url)
        descriptor = AgentDescriptor(
            name=name, url=key, description=description, last_seen_at=self._clock()
        )
        with self._lock:
            stale = [
                other_url
                for other_url, agent in self._agents.items()
                if agent.name == name and other_url != key
            ]
            for other_url in stale:
                LOGGER.info("Agent %s moved from %s to %s", name, other_url, key)
                del self._agents[other_url]
            self._agents[key] = descriptor
        return descriptor

    async def list_agents(self) -> list[AgentDescriptor]:
        with self._lock:
            return list(self._agents.values())

    async def get(self, name: str) -> AgentDescriptor | None:
        with self._lock:
            for agent in self._agents.values():
                if agent.name == name:
                    return agent
        return None


class InMemoryCallSpecCache:
    """Call-spec cache with read-time TTL filtering."""

    def __init__(self, *, ttl_seconds: float = 3600.0, clock: Clock = utcnow) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._entries: dict[tuple[str, str], CallMapping] = {}
        self._lock = threading.Lock()

    def _key(self, target_url: str, intent: str) -> tuple[str, str]:
        return normalise_url(target_url), intent_fingerprint(intent)

    def _expired(self, mapping: CallMapping) -> bool:
        return self._clock() - mapping.created_at >= self._ttl

    async def lookup(self, target_url: str, intent: str) -> CallSpec | None:
        key = self._key(target_url, intent)
        with self._lock:
            mapping = self._entries.get(key)
            if mapping is None:
                return None
            if self._expired(mapping):
                del self._entries[key]
                return None
            return mapping.call_spec

    async def store(self, target_url: str, intent: str, call_spec: CallSpec) -> CallMapping:
        target, fingerprint = self._key(target_url, intent)
        mapping = CallMapping(
            target_url=target,
            intent_fingerprint=fingerprint,
            call_spec=call_spec,
            created_at=self._clock(),
        )
        with self._lock:
            self._entries[(target, fingerprint)] = mapping
        return mapping

    async def invalidate(self, target_url: str, intent: str) -> None:
        with self._lock:
            self._entries.pop(self._key(target_url, intent), None)

    async def mappings(self) -> list[CallMapping]:
        with self._lock:
            return [mapping for mapping in self._entries.values() if not self._expired(mapping)]


class InMemoryConversationStore:
    """Session histories with an inactivity timeout."""

    def __init__(self, *, ttl_seconds: float = 3600.0, clock: Clock = utcnow) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.Lock()

    async def get(self, session_id: str) -> ConversationSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._clock() - session.last_updated_at >= self._ttl:
                del self._sessions[session_id]
                return None
            # Callers mutate the returned history; hand out a copy.
            return session.model_copy(deep=True)

    async def save(self, session: ConversationSession) -> None:
        stored = session.model_copy(deep=True, update={"last_updated_at": self._clock()})
        with self._lock:
            self._sessions[session.session_id] = stored


__all__ = ["InMemoryAgentDirectory", "InMemoryCallSpecCache", "InMemoryConversationStore"]
