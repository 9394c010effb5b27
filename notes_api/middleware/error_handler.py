import logging
import traceback
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError
from notes_api.middleware.request_id import get_request_id
from notes_api.utils.exceptions import AppException, ErrorCode

logger = logging.getLogger(__name__)


def error_body(request: Request, code: str, message: str, details: list | None = None) -> dict:
    """Standard error envelope: {error: {code, message, details?}, request_id}."""
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"error": error, "request_id": get_request_id(request)}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle all AppException subclasses (our custom exceptions)."""
    detail = exc.detail
    if exc.status_code >= 500:
        logger.warning(f"{detail.get('code')} on {request.method} {request.url.path}: {detail.get('message')}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            request,
            detail.get("code", ErrorCode.INTERNAL_SERVER_ERROR),
            detail.get("message", "An error occurred"),
            detail.get("details"),
        ),
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors (422).
    Converts FastAPI's default validation error format into our standardized format.
    """
    details = []
    for error in exc.errors():
        # loc is a tuple like ("body", "note", "status")
        loc = error.get("loc", [])
        field = ".".join(str(l) for l in loc if l not in ("body", "note", "blob")) if loc else "unknown"
        details.append({
            "field": field or "unknown",
            "code": error.get("type", "invalid"),
            "message": error.get("msg", "Invalid value"),
        })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(request, ErrorCode.VALIDATION_FAILED, "Validation failed", details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    Handle SQLAlchemy IntegrityError (unique constraint violations, FK violations).
    Prevents raw DB errors from leaking to the client.
    """
    logger.warning(f"IntegrityError on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body(request, ErrorCode.DUPLICATE_ENTRY, "A record with this data already exists."),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unexpected exceptions.
    Logs the full traceback, returns a safe 500 response.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}\n"
        f"{traceback.format_exc()}"
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            request,
            ErrorCode.INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        ),
    )
