"""FastAPI application factory for the intent proxy."""

from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intent_proxy.interfaces.http.proxy_api import router as proxy_router
from intent_proxy.observability import configure_tracing, setup_logging
from intent_proxy.stores import Stores, build_stores

from .config import Settings, get_settings
from .errors import ErrorCode, get_error_info
from .executor import RequestExecutor
from .models import HealthStatus
from .orchestrator import Orchestrator
from .translator import ITranslator, LiteLLMTranslator

LOGGER = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    fields: list[str] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        name = ".".join(location) or "body"
        if name not in fields:
            fields.append(name)
    return ", ".join(fields)


def create_app(
    settings: Settings | None = None,
    *,
    stores: Stores | None = None,
    translator: ITranslator | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Initialise the FastAPI application.

    Tests inject ``stores``, ``translator`` and ``http_client``; production
    builds them from ``settings``.
    """

    settings = settings or get_settings()
    if settings.environment != "test":
        setup_logging(settings.log_level, service_name=settings.app_name)
    configure_tracing(settings.app_name, enabled=settings.tracing_enabled)

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.tracing_enabled:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app)

    stores = stores or build_stores(settings)
    owns_translator = translator is None
    translator_instance: ITranslator = translator or LiteLLMTranslator(settings)
    executor = RequestExecutor(
        settings, stores.cache, translator_instance, http_client=http_client
    )
    orchestrator = Orchestrator(
        settings, stores.directory, stores.sessions, executor, translator_instance
    )

    app.state.settings = settings
    app.state.stores = stores
    app.state.executor = executor
    app.state.orchestrator = orchestrator

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        info = get_error_info(ErrorCode.VALIDATION_ERROR)
        fields = _describe_validation_error(exc)
        LOGGER.info("Rejected %s %s: %s", request.method, request.url.path, fields)
        return JSONResponse(
            status_code=400,
            content={
                "error": f"Missing or invalid fields: {fields}",
                "code": info.code,
                "hint": info.recovery_hint,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error", "code": ErrorCode.INTERNAL_ERROR.value},
        )

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await orchestrator.join()
        await executor.aclose()
        if owns_translator and isinstance(translator_instance, LiteLLMTranslator):
            await translator_instance.aclose()

    @app.get("/healthz", response_model=HealthStatus)
    async def health() -> HealthStatus:  # pragma: no cover - trivial endpoint
        return HealthStatus(status="ok")

    app.include_router(proxy_router)
    return app


def run() -> None:  # pragma: no cover - used by the console script
    """Run the application via ``intent-proxy``."""

    settings = get_settings()
    import uvicorn

    uvicorn.run(
        "intent_proxy.core.app:create_app",
        host=settings.host,
        port=settings.port,
        factory=True,
        reload=settings.environment == "development",
    )


__all__ = ["create_app", "run"]
