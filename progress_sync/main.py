"""FastAPI application factory and entrypoint."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from progress_sync.api.cors import ALLOWED_HEADERS, ALLOWED_METHODS
from progress_sync.api.routers import api_router, root_router
from progress_sync.core.config import Settings, get_settings
from progress_sync.core.errors import register_exception_handlers
from progress_sync.core.logging import configure_logging
from progress_sync.core.metrics import setup_metrics
from progress_sync.core.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    RequestSizeLimitMiddleware,
)
from progress_sync.core.version import APP_VERSION


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        version=APP_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    register_exception_handlers(application)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allow_origin],
        allow_credentials=False,
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=[RequestIDMiddleware.header_name],
        max_age=86400,
    )

    setup_metrics(application)

    application.add_middleware(AccessLogMiddleware)
    application.add_middleware(
        RequestSizeLimitMiddleware,
        max_request_bytes=settings.max_request_bytes,
    )
    application.add_middleware(RequestIDMiddleware)

    application.include_router(root_router)
    application.include_router(api_router)

    return application


app = create_app()

__all__ = ["app", "create_app"]
