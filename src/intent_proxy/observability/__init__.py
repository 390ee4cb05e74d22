"""Logging and tracing helpers."""

from .logging import log_progress_event, setup_logging
from .tracing import configure_tracing

__all__ = ["configure_tracing", "log_progress_event", "setup_logging"]
