"""Shared error primitives and FastAPI exception handlers."""

from __future__ import annotations

import logging
from enum import StrEnum
from http import HTTPStatus
from typing import Awaitable, Callable, Mapping, cast

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

ExceptionHandlerCallable = Callable[[Request, Exception], Awaitable[Response]]

logger = logging.getLogger("progress_sync.errors")


class ErrorCode(StrEnum):
    """Canonical error codes rendered in the public ``code`` field."""

    AUTH_FAILED = "AUTH_FAILED"
    INVALID_INPUT = "INVALID_INPUT"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DOWNSTREAM_ERROR = "DOWNSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ApplicationError(Exception):
    """Error that should be rendered in the public API."""

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        *,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        extra: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = str(code)
        self.message = message
        self.status_code = status_code
        self.extra = dict(extra or {})


class ConfigurationError(ApplicationError):
    """A required environment value is missing; fatal for the request."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code=ErrorCode.CONFIGURATION_ERROR,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


class AuthenticationError(ApplicationError):
    """Credential verification failed; only the reason tag is exposed."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.AUTH_FAILED,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            extra={"reason": reason} if reason else None,
        )
        self.reason = reason


class MalformedInputError(ApplicationError):
    """Unparseable body or unknown operation discriminator."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_INPUT,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class MethodNotAllowedError(ApplicationError):
    def __init__(self, message: str) -> None:
        super().__init__(
            code=ErrorCode.METHOD_NOT_ALLOWED,
            message=message,
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        )


class DownstreamError(ApplicationError):
    """The remote store call failed. The message is meant for operators."""

    def __init__(self, message: str, *, upstream_status: int | None = None) -> None:
        super().__init__(
            code=ErrorCode.DOWNSTREAM_ERROR,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.upstream_status = upstream_status


def register_exception_handlers(app: FastAPI) -> None:
    """Attach global exception handlers to the FastAPI app."""

    app.add_exception_handler(
        ApplicationError,
        cast(ExceptionHandlerCallable, application_error_handler),
    )
    app.add_exception_handler(
        RequestValidationError,
        cast(ExceptionHandlerCallable, request_validation_exception_handler),
    )
    app.add_exception_handler(
        StarletteHTTPException,
        cast(ExceptionHandlerCallable, http_exception_handler),
    )
    app.add_exception_handler(
        Exception,
        cast(ExceptionHandlerCallable, unexpected_exception_handler),
    )


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "Request failed: %s",
            exc.message,
            extra={"error_code": exc.code, "http_path": request.url.path},
        )
    return error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        extra=exc.extra,
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return error_response(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=ErrorCode.INVALID_INPUT,
        message="Invalid request",
        extra={"details": _format_validation_errors(exc.errors())},
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    detail = exc.detail
    message = str(detail or HTTPStatus(exc.status_code).phrase)
    response = error_response(
        status_code=exc.status_code,
        code=_default_code_for_status(exc.status_code),
        message=message,
    )
    for header, value in (exc.headers or {}).items():
        response.headers[header] = value
    return response


async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception during request",
        exc_info=(exc.__class__, exc, exc.__traceback__),
    )
    return error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL_ERROR,
        message="Internal server error",
    )


def error_response(
    *,
    status_code: int,
    code: ErrorCode | str,
    message: str,
    extra: Mapping[str, object] | None = None,
) -> JSONResponse:
    """Return JSONResponse adhering to the public ``{ok, error}`` contract."""
    body = build_error_payload(code=code, message=message, extra=extra)
    return JSONResponse(content=jsonable_encoder(body), status_code=status_code)


def build_error_payload(
    *,
    code: ErrorCode | str,
    message: str,
    extra: Mapping[str, object] | None = None,
) -> dict[str, object]:
    payload: dict[str, object] = {"ok": False, "error": message, "code": str(code)}
    if extra:
        for key, value in extra.items():
            if value is not None:
                payload.setdefault(key, value)
    return payload


def _format_validation_errors(errors: object) -> dict[str, str]:
    formatted: dict[str, str] = {}
    if not isinstance(errors, (list, tuple)):
        return formatted
    for error in errors:
        loc = error.get("loc") or ()
        parts = [str(part) for part in loc if part not in {"body", "query", "path", "header"}]
        field = ".".join(parts) if parts else "_schema"
        message = error.get("msg", "Invalid value")
        if field in formatted:
            formatted[field] = f"{formatted[field]}; {message}"
        else:
            formatted[field] = message
    return formatted


def _default_code_for_status(status_code: int) -> str:
    mapping: dict[int, ErrorCode] = {
        status.HTTP_400_BAD_REQUEST: ErrorCode.INVALID_INPUT,
        status.HTTP_401_UNAUTHORIZED: ErrorCode.AUTH_FAILED,
        status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
        status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: ErrorCode.PAYLOAD_TOO_LARGE,
    }
    return str(mapping.get(status_code, ErrorCode.INTERNAL_ERROR))


__all__ = [
    "ApplicationError",
    "AuthenticationError",
    "ConfigurationError",
    "DownstreamError",
    "ErrorCode",
    "MalformedInputError",
    "MethodNotAllowedError",
    "application_error_handler",
    "build_error_payload",
    "error_response",
    "http_exception_handler",
    "register_exception_handlers",
    "request_validation_exception_handler",
    "unexpected_exception_handler",
]
