"""API error types and their HTTP rendering.

Learn: Services raise these instead of HTTPException so the business
logic stays free of FastAPI. install_error_handlers() maps each one to
a status code and a uniform {"error": message} body. Anything else that
escapes a handler becomes a generic 500. Stack traces go to the log,
never to the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger()

INTERNAL_ERROR = "Internal server error"


class ApiError(Exception):
    """Base class for errors that map to an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Malformed or missing input. Raised before any database access."""

    status_code = 400


class AuthenticationError(ApiError):
    """Missing, invalid, or expired credentials or token."""

    status_code = 401


class NotFoundError(ApiError):
    """Resource absent, or present but not owned by the caller."""

    status_code = 404


class PersistenceError(ApiError):
    """Unexpected database failure. The message is always generic."""

    status_code = 500

    def __init__(self):
        super().__init__(INTERNAL_ERROR)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code, content={"error": message, **extra}, headers=headers
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request.failed", path=request.url.path, error=exc.message)
    return error_response(exc.status_code, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Body/query/path validation failures are 400s, not FastAPI's 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(loc) for loc in first.get("loc", ["unknown"]))
        detail = f"Field '{field}': {first.get('msg', 'invalid')}"
    else:
        detail = "Request validation failed"
    logger.info("request.invalid", path=request.url.path, detail=detail)
    return error_response(400, "Invalid request", detail=detail)


async def database_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.exception("db.error", path=request.url.path)
    return error_response(500, INTERNAL_ERROR)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled", path=request.url.path)
    return error_response(500, INTERNAL_ERROR)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
