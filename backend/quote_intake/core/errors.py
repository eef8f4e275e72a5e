"""
Error taxonomy shared by every route.

Routes raise ApiError with a coarse public kind and an optional internal
detail. Only the public message leaves the process; the detail is logged.
"""
from __future__ import annotations

import logging
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.SERVER: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_DEFAULT_MESSAGE = {
    ErrorKind.VALIDATION: "Invalid payload",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.UNAUTHORIZED: "Unauthorized",
    ErrorKind.RATE_LIMITED: "Too many requests",
    ErrorKind.SERVER: "Server error",
}


class ApiError(Exception):
    def __init__(self, kind: ErrorKind, message: str | None = None, internal: str | None = None):
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGE[kind]
        self.internal = internal
        super().__init__(internal or self.message)

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self.kind]

    @classmethod
    def validation(cls, message: str | None = None, internal: str | None = None) -> "ApiError":
        return cls(ErrorKind.VALIDATION, message, internal)

    @classmethod
    def not_found(cls, internal: str | None = None) -> "ApiError":
        # Every not-found cause shares one public message
        return cls(ErrorKind.NOT_FOUND, None, internal)

    @classmethod
    def unauthorized(cls, message: str | None = None, internal: str | None = None) -> "ApiError":
        return cls(ErrorKind.UNAUTHORIZED, message, internal)

    @classmethod
    def server(cls, internal: str | None = None) -> "ApiError":
        return cls(ErrorKind.SERVER, None, internal)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.kind is ErrorKind.SERVER:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.internal)
    elif exc.internal:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind.value, exc.internal)

    headers = {"WWW-Authenticate": "Bearer"} if exc.kind is ErrorKind.UNAUTHORIZED else None
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s rejected: %d validation error(s)", request.method, request.url.path, len(exc.errors()))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid payload"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
