from __future__ import annotations

import pytest

from intent_proxy.core.models import ProgressEvent
from intent_proxy.core.streaming import ProgressStream


@pytest.mark.asyncio
async def test_stream_yields_in_order_until_closed() -> None:
    stream = ProgressStream()
    stream.emit(ProgressEvent(type="status", message="one"))
    stream.emit(ProgressEvent(type="status", message="two"))
    stream.close()
    stream.emit(ProgressEvent(type="status", message="late"))
    stream.close()

    messages = [event.message async for event in stream]

    assert messages == ["one", "two"]


@pytest.mark.asyncio
async def test_detached_stream_drops_events() -> None:
    stream = ProgressStream()
    stream.detach()
    stream.emit(ProgressEvent(type="status", message="ignored"))
    stream.close()

    assert stream.detached
    assert [event async for event in stream] == []
