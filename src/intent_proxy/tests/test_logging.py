from __future__ import annotations

import json
import logging

import pytest

from intent_proxy.core.models import ProgressEvent
from intent_proxy.observability.logging import (
    EVENT_LOGGER_NAME,
    CustomJsonFormatter,
    log_progress_event,
)


def test_json_formatter_stamps_service_and_level() -> None:
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s", service_name="proxy-test"
    )
    record = logging.LogRecord(
        name="intent_proxy.core",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Cache MISS for %s",
        args=("http://a",),
        exc_info=None,
    )

    payload = json.loads(formatter.format(record))

    assert payload["service"] == "proxy-test"
    assert payload["level"] == "WARNING"
    assert payload["message"] == "Cache MISS for http://a"
    assert payload["timestamp"]
    assert "trace_id" not in payload


def test_progress_events_are_logged_without_raw_result(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=EVENT_LOGGER_NAME)

    log_progress_event(
        ProgressEvent(type="result", agent="SalonBot", summary="Booked.", result={"id": "A1"})
    )
    log_progress_event(ProgressEvent(type="healing", message="retrying", agent="http://a"))

    first, second = caplog.records
    assert first.levelno == logging.INFO
    assert first.event_type == "result"
    assert first.event_data == {"type": "result", "agent": "SalonBot", "summary": "Booked."}
    assert second.levelno == logging.WARNING
