"""Typed application errors and their translation into response envelopes."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Mapping, Sequence

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.context import REQUEST_ID_HEADER
from .schemas.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base class for business-rule failures carrying an HTTP status."""

    default_message = "Request could not be processed."
    default_code = "application_error"
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        errors: Sequence[ErrorDetail] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        self.errors = list(errors) if errors else None
        self.headers = dict(headers) if headers else None


class ValidationError(ApplicationError):
    default_message = "Validation error"
    default_code = "validation_error"
    default_status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ApplicationError):
    default_message = "Authentication required."
    default_code = "unauthorized"
    default_status_code = status.HTTP_401_UNAUTHORIZED


class InvalidTokenError(UnauthorizedError):
    default_message = "Invalid token."
    default_code = "invalid_token"


class ExpiredTokenError(UnauthorizedError):
    default_message = "Token has expired."
    default_code = "token_expired"


class ForbiddenError(ApplicationError):
    default_message = "You do not have permission to perform this action."
    default_code = "forbidden"
    default_status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ApplicationError):
    default_message = "Resource not found."
    default_code = "not_found"
    default_status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ApplicationError):
    default_message = "Resource already exists."
    default_code = "conflict"
    default_status_code = status.HTTP_409_CONFLICT


class LockedError(ApplicationError):
    default_message = "Account is locked due to too many failed login attempts. Please try again later."
    default_code = "account_locked"
    default_status_code = status.HTTP_423_LOCKED


class TooManyRequestsError(ApplicationError):
    default_message = "Too many requests, please try again later."
    default_code = "rate_limited"
    default_status_code = status.HTTP_429_TOO_MANY_REQUESTS


class ServerError(ApplicationError):
    default_message = "Internal server error."
    default_code = "server_error"
    default_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


_HTTP_STATUS_CODE_MAP: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_429_TOO_MANY_REQUESTS: "rate_limited",
}


def _error_response(
    request: Request,
    *,
    status_code: int,
    message: str,
    errors: Sequence[ErrorDetail] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    payload = ErrorResponse(message=message, errors=list(errors) if errors else None)
    response = JSONResponse(
        status_code=status_code,
        content=payload.model_dump(mode="json", exclude_none=True),
    )
    if headers:
        response.headers.update(headers)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def _validation_details(raw_errors: Sequence[Mapping[str, Any]]) -> list[ErrorDetail]:
    details: list[ErrorDetail] = []
    for item in raw_errors:
        location = [str(part) for part in item.get("loc", ())]
        if location and location[0] in {"body", "query", "path"}:
            location = location[1:] or location
        message = str(item.get("msg", "Invalid value"))
        # pydantic prefixes messages raised from custom validators
        message = message.removeprefix("Value error, ")
        details.append(ErrorDetail(field=".".join(location) or None, message=message))
    return details


def _http_exception_message(status_code: int, detail: Any) -> str:
    if isinstance(detail, str) and detail:
        return detail
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def register_exception_handlers(app: FastAPI, *, expose_internal_errors: bool = False) -> None:
    """Translate raised errors into the shared response envelope."""

    @app.exception_handler(ApplicationError)
    async def _handle_application_error(request: Request, exc: ApplicationError) -> JSONResponse:
        log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
        log(
            "Application error: %s",
            exc.message,
            extra={"code": exc.code, "status_code": exc.status_code, "path": request.url.path},
        )
        return _error_response(
            request,
            status_code=exc.status_code,
            message=exc.message,
            errors=exc.errors,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = _validation_details(exc.errors())
        logger.warning(
            "Request validation failed",
            extra={"errors": [error.model_dump() for error in errors], "path": request.url.path},
        )
        return _error_response(
            request,
            status_code=status.HTTP_400_BAD_REQUEST,
            message="Validation error",
            errors=errors,
        )

    @app.exception_handler(IntegrityError)
    async def _handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.error("Database integrity error encountered.", exc_info=exc)
        return _error_response(
            request,
            status_code=status.HTTP_409_CONFLICT,
            message="Resource conflicts with existing data.",
        )

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _HTTP_STATUS_CODE_MAP.get(exc.status_code, "http_error")
        message = _http_exception_message(exc.status_code, exc.detail)
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = f"Route {request.url.path} not found"
        log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
        log(
            "HTTP exception raised",
            extra={"code": code, "status_code": exc.status_code, "path": request.url.path},
        )
        return _error_response(
            request,
            status_code=exc.status_code,
            message=message,
            headers=exc.headers or None,
        )

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled application error.", extra={"path": request.url.path})
        errors = None
        if expose_internal_errors:
            errors = [ErrorDetail(message=f"{type(exc).__name__}: {exc}")]
        return _error_response(
            request,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=ServerError.default_message,
            errors=errors,
        )


__all__ = [
    "ApplicationError",
    "ConflictError",
    "ExpiredTokenError",
    "ForbiddenError",
    "InvalidTokenError",
    "LockedError",
    "NotFoundError",
    "ServerError",
    "TooManyRequestsError",
    "UnauthorizedError",
    "ValidationError",
    "register_exception_handlers",
]
