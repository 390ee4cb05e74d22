"""Single-request execution with call-spec caching and self-healing."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from opentelemetry import trace

from intent_proxy.stores.base import ICallSpecCache, normalise_url

from .config import Settings
from .errors import DispatchFailure, DocumentationUnavailable
from .models import CallSource, CallSpec, ExecutionResult, ProgressEvent
from .streaming import ProgressStream
from .translator import ITranslator

LOGGER = logging.getLogger(__name__)
TRACER = trace.get_tracer(__name__)

HEALING_MESSAGE = "[RETRY] Cached mapping failed. Triggering AI introspection..."
CACHED_REASONING = "Cached from previous execution."


class RequestExecutor:
    """Turn (target URL, intent) into one executed HTTP call.

    A cache hit is dispatched directly. A miss fetches the agent's
    documentation, asks the translator for a call specification and stores
    it before dispatching. When a dispatch built from a cached specification
    fails, the entry is invalidated and the call is translated afresh exactly
    once; a second failure propagates.
    """

    def __init__(
        self,
        settings: Settings,
        cache: ICallSpecCache,
        translator: ITranslator,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._translator = translator
        self._client = http_client or httpx.AsyncClient(timeout=settings.agent_timeout)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def execute(
        self,
        target_url: str,
        intent: str,
        *,
        stream: ProgressStream | None = None,
    ) -> ExecutionResult:
        """Execute ``intent`` against the agent at ``target_url``."""

        with TRACER.start_as_current_span("executor.execute") as span:
            span.set_attribute("proxy.target_url", target_url)
            retried = False
            while True:
                if retried:
                    call_spec = await self._translate(target_url, intent)
                    source = CallSource.TRANSLATED
                else:
                    call_spec, source = await self._resolve(target_url, intent)

                try:
                    response = await self._dispatch(target_url, call_spec)
                    break
                except DispatchFailure as exc:
                    if source is not CallSource.CACHE or retried:
                        raise
                    retried = True
                    LOGGER.warning(
                        "Outdated mapping detected for %s (%s); invalidating and retrying",
                        target_url,
                        exc,
                    )
                    if stream is not None:
                        stream.emit(
                            ProgressEvent(
                                type="healing", message=HEALING_MESSAGE, agent=target_url
                            )
                        )
                    await self._cache.invalidate(target_url, intent)

            span.set_attribute("proxy.source", source.value)
            span.set_attribute("proxy.retried", retried)
            reasoning = call_spec.reasoning
            if source is CallSource.CACHE and not reasoning:
                reasoning = CACHED_REASONING
            return ExecutionResult(
                source=source,
                reasoning=reasoning,
                summary=await self._summarize(intent, response),
                raw_response=response,
            )

    async def _resolve(self, target_url: str, intent: str) -> tuple[CallSpec, CallSource]:
        cached = await self._cache.lookup(target_url, intent)
        if cached is not None:
            LOGGER.info("Cache HIT for %s", target_url)
            return cached, CallSource.CACHE
        LOGGER.info("Cache MISS for %s; introspecting", target_url)
        return await self._translate(target_url, intent), CallSource.TRANSLATED

    async def _translate(self, target_url: str, intent: str) -> CallSpec:
        documentation = await self._introspect(target_url)
        call_spec = await self._translator.translate(intent, documentation)
        await self._cache.store(target_url, intent, call_spec)
        return call_spec

    async def _introspect(self, target_url: str) -> str:
        base = normalise_url(target_url)
        for path in (self._settings.docs_path, self._settings.capabilities_path):
            url = f"{base}{path}"
            try:
                response = await self._client.get(url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                LOGGER.info("Documentation request to %s failed: %s", url, exc)
                continue
            if response.status_code >= 400:
                LOGGER.info("Documentation request to %s returned %s", url, response.status_code)
                continue
            return self._documentation_text(response)
        raise DocumentationUnavailable("Could not fetch documentation from target agent.")

    async def _dispatch(self, target_url: str, call_spec: CallSpec) -> Any:
        url = f"{normalise_url(target_url)}{call_spec.endpoint}"
        LOGGER.info("Executing %s %s", call_spec.method, url)
        kwargs: dict[str, Any] = {}
        if call_spec.body is not None:
            kwargs["json"] = call_spec.body
        try:
            response = await self._client.request(call_spec.method, url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DispatchFailure(f"{call_spec.method} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise DispatchFailure(
                f"{call_spec.method} {url} responded with {response.status_code}: "
                f"{response.text[:256]}",
                status_code=response.status_code,
            )
        return self._decode(response)

    async def _summarize(self, intent: str, response: Any) -> str:
        try:
            return await self._translator.summarize(intent, response)
        except Exception:
            LOGGER.warning("Summarization failed; using fallback text", exc_info=True)
            return self._settings.summary_fallback

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _documentation_text(response: httpx.Response) -> str:
        if "json" in response.headers.get("content-type", ""):
            try:
                return json.dumps(response.json())
            except ValueError:
                pass
        return response.text


__all__ = ["RequestExecutor", "HEALING_MESSAGE", "CACHED_REASONING"]
