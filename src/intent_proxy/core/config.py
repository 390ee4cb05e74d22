"""Configuration management for the intent proxy service."""

from __future__ import annotations

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, HttpUrl

# A local .env file fills in variables the process environment lacks.
load_dotenv(override=False)

DEFAULT_GATEWAY_URL: HttpUrl = cast(HttpUrl, "http://litellm:4000")


class Settings(BaseModel):
    """Runtime configuration of the proxy.

    Every field can be overridden by an environment variable named
    ``PROXY_<FIELD_NAME>``; keyword arguments win over the environment.
    """

    ENV_PREFIX: ClassVar[str] = "PROXY_"

    model_config = ConfigDict(extra="ignore")

    app_name: str = Field(default="Intent Proxy", description="Human friendly service name.")
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Runtime environment used for logging and diagnostics.",
    )
    host: str = Field(default="0.0.0.0", description="Host interface for the FastAPI server.")
    port: int = Field(default=3000, description="Listening port for the FastAPI server.")
    log_level: str = Field(default="INFO", description="Python logging level for the service.")

    litellm_api_base: HttpUrl = Field(
        default=DEFAULT_GATEWAY_URL,
        description="Base URL of the LiteLLM gateway serving every translator call.",
    )
    litellm_api_key: str | None = Field(default=None, description="Optional LiteLLM API key.")
    litellm_model: str = Field(
        default="planner",
        description="Model used for intent decomposition and call-spec translation.",
    )
    litellm_summary_model: str = Field(
        default="summarizer",
        description="Faster model used to summarize agent responses.",
    )
    litellm_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds when calling LiteLLM's `/v1/chat/completions` endpoint.",
    )

    agent_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for documentation and dispatch calls to target agents.",
    )
    docs_path: str = Field(
        default="/docs", description="Well-known documentation path requested from agents."
    )
    capabilities_path: str = Field(
        default="/capabilities",
        description="Fallback path returning a structured capability description.",
    )

    cache_ttl_seconds: float = Field(
        default=3600.0, description="Lifetime of a cached call specification."
    )
    session_ttl_seconds: float = Field(
        default=3600.0, description="Inactivity period after which a session is discarded."
    )
    session_history_limit: int = Field(
        default=20, description="Maximum number of turns retained per session."
    )
    summary_fallback: str = Field(
        default="Action completed.",
        description="Text used when the response summary cannot be produced.",
    )

    storage_backend: Literal["memory", "sqlite"] = Field(
        default="memory",
        description="Where agents, call mappings and sessions are stored.",
    )
    sqlite_state_path: Path = Field(
        default=Path("data/intent_proxy.sqlite"),
        description="Path to the SQLite database used when storage_backend is 'sqlite'.",
    )

    tracing_enabled: bool = Field(
        default=False, description="Export OpenTelemetry spans to the console."
    )

    def __init__(self, **overrides: Any) -> None:
        super().__init__(**{**type(self).environment_overrides(), **overrides})

    @classmethod
    def environment_overrides(cls, environ: Mapping[str, str] | None = None) -> dict[str, str]:
        """Collect raw ``PROXY_*`` values; pydantic coerces them on validation."""

        source = os.environ if environ is None else environ
        return {
            name: source[f"{cls.ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{cls.ENV_PREFIX}{name.upper()}" in source
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, read once."""

    return Settings()


__all__ = ["Settings", "get_settings"]
