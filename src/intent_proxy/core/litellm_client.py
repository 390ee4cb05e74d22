"""Async client for the LiteLLM gateway."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import httpx

from .config import Settings
from .models import AgentMessage

LOGGER = logging.getLogger(__name__)

COMPLETIONS_PATH = "/v1/chat/completions"


class LiteLLMError(RuntimeError):
    """Raised when a completion could not be obtained from the gateway."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LiteLLMClient:
    """OpenAI-compatible chat completions against the LiteLLM gateway.

    One pooled ``httpx.AsyncClient`` serves every call; the caller picks the
    model and temperature per call so the planning and summary models can
    share the connection.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(
            base_url=str(settings.litellm_api_base),
            timeout=settings.litellm_timeout if timeout is None else timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(
        self,
        messages: Iterable[AgentMessage],
        *,
        model: str | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ) -> str:
        """Return the stripped content of the first completion choice."""

        chosen_model = model or self._settings.litellm_model
        payload: dict[str, Any] = {
            "model": chosen_model,
            "messages": [message.model_dump() for message in messages],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        started = time.perf_counter()
        data = await self._post(payload)
        LOGGER.debug(
            "Completion from %s in %.2fs", chosen_model, time.perf_counter() - started
        )
        return self._first_choice(data)

    async def _post(self, payload: dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self._settings.litellm_api_key:
            headers["Authorization"] = f"Bearer {self._settings.litellm_api_key}"

        try:
            response = await self._client.post(COMPLETIONS_PATH, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise LiteLLMError(f"LiteLLM gateway unreachable: {exc}") from exc

        if response.is_error:
            LOGGER.error(
                "LiteLLM returned %s for model %s: %s",
                response.status_code,
                payload["model"],
                response.text[:512],
            )
            raise LiteLLMError(
                f"LiteLLM returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise LiteLLMError("LiteLLM returned a non-JSON body") from exc

    @staticmethod
    def _first_choice(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LiteLLMError("LiteLLM response has no completion choice") from exc
        if not isinstance(content, str):
            raise LiteLLMError("LiteLLM completion content is not text")
        return content.strip()


__all__ = ["COMPLETIONS_PATH", "LiteLLMClient", "LiteLLMError"]
