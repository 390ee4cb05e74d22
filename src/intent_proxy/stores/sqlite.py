"""SQLite backed stores.

All three stores share one database file. Each operation opens its own
connection and runs in a worker thread so the event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path

from intent_proxy.core.fingerprint import intent_fingerprint
from intent_proxy.core.models import (
    AgentDescriptor,
    CallMapping,
    CallSpec,
    ConversationSession,
    ConversationTurn,
    utcnow,
)

from .base import normalise_url

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS agents (
        url TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT NOT NULL,
        last_seen_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS call_mappings (
        target_url TEXT NOT NULL,
        intent_fingerprint TEXT NOT NULL,
        call_spec TEXT NOT NULL,
        created_at TEXT NOT NULL,
        PRIMARY KEY (target_url, intent_fingerprint)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        session_id TEXT PRIMARY KEY,
        history TEXT NOT NULL,
        last_updated_at TEXT NOT NULL
    )
    """,
)


class _SQLiteStore:
    """Shared connection handling for the SQLite stores."""

    def __init__(self, database_path: Path, *, clock: Clock = utcnow) -> None:
        self._database_path = database_path
        self._clock = clock
        self._initialise()

    def _initialise(self) -> None:
        self._database_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as connection:
            for statement in _SCHEMA:
                connection.execute(statement)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        connection = sqlite3.connect(self._database_path)
        try:
            with connection:
                yield connection
        finally:
            connection.close()


class SQLiteAgentDirectory(_SQLiteStore):
    """Agent directory persisted in the ``agents`` table."""

    async def register(self, name: str, url: str, description: str) -> AgentDescriptor:
        descriptor = AgentDescriptor(
            name=name, url=normalise_url(url), description=description, last_seen_at=self._clock()
        )
        await asyncio.to_thread(self._upsert, descriptor)
        return descriptor

    def _upsert(self, descriptor: AgentDescriptor) -> None:
        with self._connect() as connection:
            removed = connection.execute(
                "DELETE FROM agents WHERE name = ? AND url != ?",
                (descriptor.name, descriptor.url),
            ).rowcount
            if removed:
                LOGGER.info("Agent %s moved to %s", descriptor.name, descriptor.url)
            connection.execute(
                """
                INSERT INTO agents (url, name, description, last_seen_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(url) DO UPDATE SET
                    name = excluded.name,
                    description = excluded.description,
                    last_seen_at = excluded.last_seen_at
                """,
                (
                    descriptor.url,
                    descriptor.name,
                    descriptor.description,
                    descriptor.last_seen_at.isoformat(),
                ),
            )

    async def list_agents(self) -> list[AgentDescriptor]:
        return await asyncio.to_thread(self._select, None)

    async def get(self, name: str) -> AgentDescriptor | None:
        rows = await asyncio.to_thread(self._select, name)
        return rows[0] if rows else None

    def _select(self, name: str | None) -> list[AgentDescriptor]:
        query = "SELECT name, url, description, last_seen_at FROM agents"
        params: tuple[str, ...] = ()
        if name is not None:
            query += " WHERE name = ?"
            params = (name,)
        with self._connect() as connection:
            rows = connection.execute(query + " ORDER BY rowid", params).fetchall()
        return [
            AgentDescriptor(
                name=row[0],
                url=row[1],
                description=row[2],
                last_seen_at=datetime.fromisoformat(row[3]),
            )
            for row in rows
        ]


class SQLiteCallSpecCache(_SQLiteStore):
    """Call-spec cache persisted in the ``call_mappings`` table."""

    def __init__(
        self, database_path: Path, *, ttl_seconds: float = 3600.0, clock: Clock = utcnow
    ) -> None:
        super().__init__(database_path, clock=clock)
        self._ttl = timedelta(seconds=ttl_seconds)

    async def lookup(self, target_url: str, intent: str) -> CallSpec | None:
        mapping = await asyncio.to_thread(
            self._fetch, normalise_url(target_url), intent_fingerprint(intent)
        )
        if mapping is None:
            return None
        if self._clock() - mapping.created_at >= self._ttl:
            await asyncio.to_thread(
                self._delete, mapping.target_url, mapping.intent_fingerprint
            )
            return None
        return mapping.call_spec

    async def store(self, target_url: str, intent: str, call_spec: CallSpec) -> CallMapping:
        mapping = CallMapping(
            target_url=normalise_url(target_url),
            intent_fingerprint=intent_fingerprint(intent),
            call_spec=call_spec,
            created_at=self._clock(),
        )
        await asyncio.to_thread(self._replace, mapping)
        return mapping

    async def invalidate(self, target_url: str, intent: str) -> None:
        await asyncio.to_thread(
            self._delete, normalise_url(target_url), intent_fingerprint(intent)
        )

    async def mappings(self) -> list[CallMapping]:
        rows = await asyncio.to_thread(self._fetch_all)
        now = self._clock()
        return [mapping for mapping in rows if now - mapping.created_at < self._ttl]

    @staticmethod
    def _row_to_mapping(row: tuple[str, str, str, str]) -> CallMapping:
        return CallMapping(
            target_url=row[0],
            intent_fingerprint=row[1],
            call_spec=CallSpec.model_validate_json(row[2]),
            created_at=datetime.fromisoformat(row[3]),
        )

    def _fetch(self, target_url: str, fingerprint: str) -> CallMapping | None:
        with self._connect() as connection:
            row = connection.execute(
                """
                SELECT target_url, intent_fingerprint, call_spec, created_at
                FROM call_mappings
                WHERE target_url = ? AND intent_fingerprint = ?
                """,
                (target_url, fingerprint),
            ).fetchone()
        return self._row_to_mapping(row) if row else None

    def _fetch_all(self) -> list[CallMapping]:
        with self._connect() as connection:
            rows = connection.execute(
                "SELECT target_url, intent_fingerprint, call_spec, created_at FROM call_mappings"
            ).fetchall()
        return [self._row_to_mapping(row) for row in rows]

    def _replace(self, mapping: CallMapping) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                INSERT OR REPLACE INTO call_mappings
                    (target_url, intent_fingerprint, call_spec, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (
                    mapping.target_url,
                    mapping.intent_fingerprint,
                    mapping.call_spec.model_dump_json(),
                    mapping.created_at.isoformat(),
                ),
            )

    def _delete(self, target_url: str, fingerprint: str) -> None:
        with self._connect() as connection:
            connection.execute(
                "DELETE FROM call_mappings WHERE target_url = ? AND intent_fingerprint = ?",
                (target_url, fingerprint),
            )


class SQLiteConversationStore(_SQLiteStore):
    """Session histories persisted in the ``sessions`` table."""

    def __init__(
        self, database_path: Path, *, ttl_seconds: float = 3600.0, clock: Clock = utcnow
    ) -> None:
        super().__init__(database_path, clock=clock)
        self._ttl = timedelta(seconds=ttl_seconds)

    async def get(self, session_id: str) -> ConversationSession | None:
        session = await asyncio.to_thread(self._fetch, session_id)
        if session is None:
            return None
        if self._clock() - session.last_updated_at >= self._ttl:
            await asyncio.to_thread(self._delete, session_id)
            return None
        return session

    async def save(self, session: ConversationSession) -> None:
        await asyncio.to_thread(self._replace, session, self._clock())

    def _fetch(self, session_id: str) -> ConversationSession | None:
        with self._connect() as connection:
            row = connection.execute(
                "SELECT history, last_updated_at FROM sessions WHERE session_id = ?",
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        return ConversationSession(
            session_id=session_id,
            history=[ConversationTurn.model_validate(turn) for turn in json.loads(row[0])],
            last_updated_at=datetime.fromisoformat(row[1]),
        )

    def _replace(self, session: ConversationSession, updated_at: datetime) -> None:
        history = json.dumps([turn.model_dump() for turn in session.history])
        with self._connect() as connection:
            connection.execute(
                """
                INSERT OR REPLACE INTO sessions (session_id, history, last_updated_at)
                VALUES (?, ?, ?)
                """,
                (session.session_id, history, updated_at.isoformat()),
            )

    def _delete(self, session_id: str) -> None:
        with self._connect() as connection:
            connection.execute("DELETE FROM sessions WHERE session_id = ?", (session_id,))


__all__ = ["SQLiteAgentDirectory", "SQLiteCallSpecCache", "SQLiteConversationStore"]
