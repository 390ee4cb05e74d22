"""OpenTelemetry tracing setup for the proxy."""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

logger = logging.getLogger(__name__)


def configure_tracing(service_name: str, *, enabled: bool = False) -> TracerProvider | None:
    """Install a tracer provider exporting spans to the console.

    When disabled the OpenTelemetry API keeps its default no-op provider and
    the spans opened by the executor and orchestrator cost nothing.
    """

    if not enabled:
        logger.debug("Tracing disabled; spans are not exported")
        return None

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info("Console span exporter configured for %s", service_name)
    return provider


__all__ = ["configure_tracing"]
