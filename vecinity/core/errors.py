# vecinity/core/errors.py
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto a client-facing response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list[dict]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"

    @classmethod
    def from_pydantic(cls, exc: ValidationError, message: Optional[str] = None) -> "ValidationFailed":
        return cls(message, errors=format_validation_errors(exc.errors()))

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailed":
        return cls(message, errors=[{"field": field, "message": message}])


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class PermissionDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict with the current state of the resource"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"

    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_ACCOUNT = "inactive_account"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"

    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        super().__init__(message)


class UploadError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "File upload error"


def format_validation_errors(raw: list[dict[str, Any]]) -> list[dict]:
    out = []
    for err in raw:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        out.append({"field": ".".join(loc) or None, "message": err.get("msg", "invalid value")})
    return out


def _payload(message: str, errors: Optional[list] = None) -> dict:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def _integrity_response(request: Request, exc: IntegrityError) -> JSONResponse:
    text = str(getattr(exc, "orig", exc)).lower()
    if "unique" in text or "duplicate" in text:
        return JSONResponse(status_code=409, content=_payload("A record with that value already exists"))
    if "foreign key" in text:
        if request.method == "DELETE":
            return JSONResponse(status_code=409, content=_payload("Cannot delete: dependent records exist"))
        return JSONResponse(status_code=400, content=_payload("Invalid reference: the related resource does not exist"))
    return JSONResponse(status_code=400, content=_payload("Database constraint violated"))


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaving a handler is funnelled through here."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=_payload(exc.message, exc.errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route not found - {request.url.path}"
        return JSONResponse(status_code=exc.status_code, content=_payload(message), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_payload("Validation error", format_validation_errors(exc.errors())),
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_payload("Validation error", format_validation_errors(exc.errors())),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return _integrity_response(request, exc)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=_payload("Too many requests, please try again later"),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error on %s %s from %s",
            request.method,
            request.url.path,
            request.client.host if request.client else "unknown",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_payload("Internal server error"),
        )
