"""Storage backends for agents, call mappings and sessions."""

from __future__ import annotations

from dataclasses import dataclass

from intent_proxy.core.config import Settings

from .base import IAgentDirectory, ICallSpecCache, IConversationStore, normalise_url
from .memory import InMemoryAgentDirectory, InMemoryCallSpecCache, InMemoryConversationStore
from .sqlite import SQLiteAgentDirectory, SQLiteCallSpecCache, SQLiteConversationStore


@dataclass(slots=True)
class Stores:
    """The three stores used by one proxy instance."""

    directory: IAgentDirectory
    cache: ICallSpecCache
    sessions: IConversationStore


def build_stores(settings: Settings) -> Stores:
    """Instantiate the backend selected by ``settings.storage_backend``."""

    if settings.storage_backend == "sqlite":
        path = settings.sqlite_state_path
        return Stores(
            directory=SQLiteAgentDirectory(path),
            cache=SQLiteCallSpecCache(path, ttl_seconds=settings.cache_ttl_seconds),
            sessions=SQLiteConversationStore(path, ttl_seconds=settings.session_ttl_seconds),
        )
    return Stores(
        directory=InMemoryAgentDirectory(),
        cache=InMemoryCallSpecCache(ttl_seconds=settings.cache_ttl_seconds),
        sessions=InMemoryConversationStore(ttl_seconds=settings.session_ttl_seconds),
    )


__all__ = [
    "IAgentDirectory",
    "ICallSpecCache",
    "IConversationStore",
    "InMemoryAgentDirectory",
    "InMemoryCallSpecCache",
    "InMemoryConversationStore",
    "SQLiteAgentDirectory",
    "SQLiteCallSpecCache",
    "SQLiteConversationStore",
    "Stores",
    "build_stores",
    "normalise_url",
]
