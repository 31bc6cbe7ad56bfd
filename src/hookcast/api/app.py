"""FastAPI application for Hookcast.

The app owns one WebhookService for its lifetime: it is started before the
first request is served and stopped (dropping undelivered retries) on
shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from hookcast import __version__
from hookcast.config import Settings
from hookcast.exceptions import (
    ConfigurationError,
    HookcastError,
    NotFoundError,
    ValidationError,
)
from hookcast.logging import bind_context, configure_from_settings, get_logger, unbind_context
from hookcast.models import generate_id
from hookcast.service import WebhookService

from .router import router, set_service

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Most specific class wins; anything else is a 500
ERROR_STATUS: dict[type[HookcastError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ConfigurationError: 409,
}


def status_for(exc: HookcastError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the WebhookService on startup and stop it on shutdown."""
    settings: Settings = app.state.settings

    configure_from_settings(settings)
    logger.info("Starting Hookcast API", env=settings.env, store=settings.store_backend)

    service = WebhookService.create(settings)
    await service.start()
    set_service(app, service)
    try:
        yield
    finally:
        set_service(app, None)
        await service.stop()


async def hookcast_error_handler(request: Request, exc: HookcastError) -> JSONResponse:
    """Render a HookcastError as ``{"error": {...}}`` with a mapped status."""
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.info
    log(
        "Request failed",
        code=exc.code,
        error=exc.message,
        status_code=status_code,
        method=request.method,
        path=request.url.path,
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """Map Hookcast errors to HTTP responses."""
    app.exception_handler(HookcastError)(hookcast_error_handler)


async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every log line emitted while handling a request with its id."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or generate_id("req")
    bind_context(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        unbind_context("request_id")
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the Hookcast FastAPI application.

    Args:
        settings: Optional settings. Uses environment if None.

    Example:
        ```python
        from hookcast.api import create_app

        app = create_app(Settings(store_backend="file", store_path="/var/lib/hookcast"))
        # Run with: uvicorn hookcast.api:app
        ```
    """
    app = FastAPI(
        title="Hookcast",
        description="Outbound webhook dispatch with signing, retries and endpoint health.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()

    register_exception_handlers(app)
    app.middleware("http")(request_context)
    app.include_router(router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
