"""Logging configuration and progress event logging."""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from pythonjsonlogger.json import JsonFormatter

if TYPE_CHECKING:
    from intent_proxy.core.models import ProgressEvent

EVENT_LOGGER_NAME = "intent_proxy.events"


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter stamping service name and the active trace context."""

    def __init__(self, *args: Any, service_name: str = "intent-proxy", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._service_name = service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["service"] = self._service_name

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            log_record["trace_id"] = format(span_context.trace_id, "032x")
            log_record["span_id"] = format(span_context.span_id, "016x")


def setup_logging(level: str = "INFO", service_name: str = "intent-proxy") -> None:
    """Configure the root logger.

    JSON lines on stdout by default; ``LOG_FORMAT=text`` switches to Rich
    console output for local development.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    if os.environ.get("LOG_FORMAT", "json").lower() == "json":
        json_handler = logging.StreamHandler(sys.stdout)
        json_handler.setFormatter(
            CustomJsonFormatter(
                "%(timestamp)s %(level)s %(name)s %(message)s",
                json_ensure_ascii=False,
                service_name=service_name,
            )
        )
        root_logger.addHandler(json_handler)
    else:
        from rich.logging import RichHandler

        root_logger.addHandler(
            RichHandler(rich_tracebacks=True, markup=False, show_time=True, show_path=False)
        )

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def log_progress_event(event: ProgressEvent) -> None:
    """Log one progress event with its payload as structured extras.

    Raw agent responses are left out; they can be large and may carry user
    data.
    """

    payload = event.model_dump(mode="json", by_alias=True, exclude_none=True)
    payload.pop("result", None)
    level = logging.WARNING if event.type in ("error", "healing") else logging.INFO
    logging.getLogger(EVENT_LOGGER_NAME).log(
        level,
        "Progress event: %s",
        event.type,
        extra={"event_type": event.type, "event_data": payload},
    )


__all__ = ["CustomJsonFormatter", "log_progress_event", "setup_logging"]
