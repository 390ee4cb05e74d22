"""Push-based progress stream shared by the orchestrator and executor."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from intent_proxy.observability.logging import log_progress_event

from .models import ProgressEvent

LOGGER = logging.getLogger(__name__)


class ProgressStream:
    """Unbounded queue of :class:`ProgressEvent` with a single consumer.

    Producers call :meth:`emit` and never block. Once the consumer has gone
    away (:meth:`detach`) further events are dropped instead of raising, so
    the producer can finish its work regardless of the caller.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
        self._closed = False
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    def emit(self, event: ProgressEvent) -> None:
        log_progress_event(event)
        if self._closed or self._detached:
            LOGGER.debug("Dropping %s event; stream is no longer consumed", event.type)
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Signal the consumer that no more events follow."""

        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    def detach(self) -> None:
        """Mark the consumer as gone."""

        self._detached = True

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            yield event


__all__ = ["ProgressStream"]
