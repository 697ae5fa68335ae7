"""Application factory for the FastAPI backend."""

from __future__ import annotations

import os
import re
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .. import load_environment
from .. import logging_manager as log_mgr
from ..errors import StudioError, user_friendly_message
from .dependencies import get_services
from .routers.pipeline import router as pipeline_router
from .routers.projects import router as projects_router
from .routers.pronunciation import router as pronunciation_router
from .routers.storage import router as storage_router
from .routers.storyboard import router as storyboard_router
from .routers.system import router as system_router

load_environment()

LOGGER = log_mgr.get_logger().getChild("webapi")

# Default origins considered safe for local development convenience.
DEFAULT_LOCAL_ORIGINS = (
    "http://localhost",
    "http://127.0.0.1",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)
CORS_ENV = "STUDIO_CORS_ORIGINS"


def _parse_cors_origins(raw_value: str | None) -> tuple[list[str], bool]:
    """Return the allowed origins and whether credentials are supported."""

    if raw_value is None:
        return list(DEFAULT_LOCAL_ORIGINS), True

    tokens = [token.strip() for token in re.split(r"[\s,]+", raw_value) if token.strip()]
    if not tokens:
        return [], False
    if "*" in tokens:
        return ["*"], False
    return tokens, True


def _configure_cors(app: FastAPI) -> None:
    allowed_origins, allow_credentials = _parse_cors_origins(os.environ.get(CORS_ENV))
    if not allowed_origins:
        LOGGER.info("CORS middleware disabled; no allowed origins configured.")
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )


async def _handle_studio_error(request: Request, exc: StudioError) -> JSONResponse:
    level = LOGGER.error if exc.status_code >= 500 else LOGGER.info
    level(
        "Request failed: %s",
        exc,
        extra={
            "event": "webapi.request.error",
            "attributes": {
                "path": request.url.path,
                "status_code": exc.status_code,
                "error_type": type(exc).__name__,
            },
        },
    )
    return JSONResponse(status_code=exc.status_code, content={"error": user_friendly_message(exc)})


async def _handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    LOGGER.error(
        "Database error while handling request",
        extra={"event": "webapi.request.database_error", "attributes": {"path": request.url.path}},
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": user_friendly_message(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Translate service exceptions into ``{"error": ...}`` responses."""

    app.add_exception_handler(StudioError, _handle_studio_error)
    app.add_exception_handler(SQLAlchemyError, _handle_database_error)


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""

    app = FastAPI(title="Audiobook Studio API", version="0.1.0")

    register_exception_handlers(app)

    @app.middleware("http")
    async def _correlation_context(request: Request, call_next):
        correlation_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-correlation-id")
            or uuid4().hex
        )
        with log_mgr.log_context(
            correlation_id=correlation_id,
            user_id=request.headers.get("x-user-id"),
        ):
            response = await call_next(request)
        response.headers["x-correlation-id"] = correlation_id
        return response

    def _resolve_services():
        return app.dependency_overrides.get(get_services, get_services)()

    @app.on_event("startup")
    async def _start_background_services() -> None:
        services = _resolve_services()
        if services.settings.health_monitor_enabled:
            services.health.start()

    @app.on_event("shutdown")
    async def _stop_background_services() -> None:
        _resolve_services().shutdown()

    _configure_cors(app)

    @app.get("/_health", tags=["health"])
    def healthcheck() -> dict[str, str]:
        """Simple healthcheck endpoint for smoke-testing the server."""

        return {"status": "ok"}

    app.include_router(projects_router)
    app.include_router(storyboard_router)
    app.include_router(pipeline_router)
    app.include_router(pronunciation_router)
    app.include_router(storage_router)
    app.include_router(system_router)

    return app
