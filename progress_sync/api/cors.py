"""CORS constants shared by the middleware and the explicit OPTIONS handlers."""

from __future__ import annotations

from fastapi import Response, status

from progress_sync.core.config import Settings

ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "x-telegram-init-data", "X-Dev-User", "X-Request-ID"]


def cors_headers(settings: Settings) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.allow_origin,
        "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
        "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
        "Vary": "Origin",
    }


def preflight_response(settings: Settings) -> Response:
    """Answer a bare OPTIONS request (no CORS request headers) with 204."""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers(settings))


__all__ = ["ALLOWED_HEADERS", "ALLOWED_METHODS", "cors_headers", "preflight_response"]
