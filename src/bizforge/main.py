"""bizforge API - FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from . import __version__, routers
from .config import get_settings
from .dependencies import AppContainer, build_container
from .errors import BizforgeError
from .logging_config import (
    CORRELATION_HEADER,
    bind_request,
    clear_request,
    new_correlation_id,
    setup_logging,
)


def create_app(container: AppContainer | None = None) -> FastAPI:
    """Create the application.

    When ``container`` is omitted it is built from settings at startup and
    closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        owns_container = app.state.container is None
        if owns_container:
            settings = get_settings()
            setup_logging(
                service_name=settings.service_name,
                log_format=settings.log_format,
                log_level=settings.log_level,
            )
            app.state.container = build_container(settings)
        yield
        if owns_container:
            await app.state.container.aclose()

    app = FastAPI(
        title="bizforge API",
        description="Business idea generation pipeline with build and deploy tracking",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or new_correlation_id()
        bind_request(correlation_id, request.method, request.url.path)

        start = time.time()
        logger = structlog.get_logger()

        try:
            response = await call_next(request)
            duration_ms = round((time.time() - start) * 1000, 2)

            if response.status_code >= 500:  # noqa: PLR2004
                logger.error(
                    "http_request_failed", status_code=response.status_code, duration_ms=duration_ms
                )
            else:
                logger.info(
                    "http_request", status_code=response.status_code, duration_ms=duration_ms
                )

            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        except Exception as e:
            logger.error(
                "http_request_exception",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.time() - start) * 1000, 2),
                exc_info=True,
            )
            raise
        finally:
            clear_request()

    @app.exception_handler(BizforgeError)
    async def bizforge_error_handler(request: Request, exc: BizforgeError) -> JSONResponse:
        return JSONResponse(status_code=int(exc.status_code), content=exc.to_dict())

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {"name": "bizforge API", "version": __version__}

    app.include_router(routers.health.router)
    app.include_router(routers.workspaces.router, prefix="/api")
    app.include_router(routers.projects.router, prefix="/api")
    app.include_router(routers.versions.router, prefix="/api")
    app.include_router(routers.deployments.router, prefix="/api")

    return app


app = create_app()
