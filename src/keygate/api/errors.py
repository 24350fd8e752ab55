"""Uniform JSON error bodies: ``{"error": {"code": ..., "message": ...}}``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException

from keygate.core.errors import (
    AuthError,
    ConflictError,
    KeygateError,
    NotFoundError,
    StorageError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Invalid or missing credentials"

_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "BAD_REQUEST",
    429: "RATE_LIMITED",
    500: "INTERNAL_ERROR",
}


class ApiErrorDetail(BaseModel):
    code: str
    message: str


class ApiErrorResponse(BaseModel):
    error: ApiErrorDetail


def error_response(
    status_code: int,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build a JSON error response with the standard body shape."""
    code = _STATUS_CODES.get(status_code, "INTERNAL_ERROR")
    body = ApiErrorResponse(error=ApiErrorDetail(code=code, message=message))
    return JSONResponse(
        status_code=status_code, content=body.model_dump(), headers=headers
    )


def unauthorized_response(realm: str) -> JSONResponse:
    """The single 401 returned for every authentication failure."""
    return error_response(
        401,
        UNAUTHORIZED_MESSAGE,
        headers={"WWW-Authenticate": f'Basic realm="{realm}"'},
    )


async def _keygate_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, AuthError):
        return unauthorized_response(request.app.state.config.auth.realm)
    if isinstance(exc, NotFoundError):
        return error_response(404, str(exc))
    if isinstance(exc, ConflictError):
        return error_response(409, str(exc))
    if isinstance(exc, StorageError):
        logger.error("Storage failure: %s", exc)
        return error_response(500, "Storage failure")
    logger.error("Unhandled keygate error: %s", exc)
    return error_response(500, "Internal error")


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = getattr(exc, "status_code", 500)
    detail = getattr(exc, "detail", "Internal error")
    return error_response(
        status_code, str(detail), headers=getattr(exc, "headers", None)
    )


async def _validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return error_response(400, "Invalid request body")


def register_error_handlers(app: FastAPI) -> None:
    """Install the handlers that turn exceptions into error bodies."""
    app.add_exception_handler(KeygateError, _keygate_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
