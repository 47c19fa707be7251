"""API error type, error codes and the exception handlers that render the response envelope."""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from smart_city.core.config import get_settings

logger = logging.getLogger(__name__)


class ErrorCodes:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    NO_TOKEN = "NO_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    ACCIDENT_NOT_FOUND = "ACCIDENT_NOT_FOUND"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    REGISTRATION_ERROR = "REGISTRATION_ERROR"
    LOGIN_ERROR = "LOGIN_ERROR"
    REFRESH_ERROR = "REFRESH_ERROR"
    LOGOUT_ERROR = "LOGOUT_ERROR"
    LOGOUT_ALL_ERROR = "LOGOUT_ALL_ERROR"
    PASSWORD_CHANGE_ERROR = "PASSWORD_CHANGE_ERROR"


class ApiError(Exception):
    """Raised by routes and dependencies; rendered as {success: false, message, error}."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details
        self.headers = headers
        super().__init__(message)


def error_body(
    message: str, error: str, details: list[dict[str, Any]] | None = None, **extra: Any
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message, "error": error}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return body


def validation_details(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts into {field, message, value} entries."""
    details = []
    for err in errors:
        # Drop the "body"/"query"/"path" location prefix FastAPI adds.
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        value = err.get("input")
        details.append(
            {
                "field": ".".join(loc),
                "message": err.get("msg", "Invalid value"),
                "value": value if isinstance(value, (str, int, float, bool)) else None,
            }
        )
    return details


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.error, exc.details),
        headers=exc.headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(
            "Validation failed",
            ErrorCodes.VALIDATION_ERROR,
            validation_details(list(exc.errors())),
        ),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("Endpoint not found", ErrorCodes.NOT_FOUND, path=request.url.path),
        )
    code = ErrorCodes.INTERNAL_ERROR if exc.status_code >= 500 else "HTTP_ERROR"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={"method": request.method, "path": request.url.path},
    )
    settings = get_settings()
    message = str(exc) if settings.is_development and settings.DEBUG else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(message, ErrorCodes.INTERNAL_ERROR),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
