"""
Exception handlers.

Every failure leaves the API as ``{"success": false, "error": "..."}``.
Validation problems are 400s, as controllers expect.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.core.exceptions import (
    CacheError,
    DuplicateOccurrenceError,
    GroupConsistencyError,
    InvalidEventTypeError,
    OutageStoreError,
    RequestRejectedError,
)
from backend.app.schemas.outages import OutageEventType

logger = logging.getLogger(__name__)

_ENUM_FIELDS = {"event_type", "outage_type"}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def describe_validation_error(error: dict) -> str:
    """Turn the first pydantic error into the short message controllers expect."""
    loc = error.get("loc") or ()
    field = str(loc[-1]) if loc else "request"
    err_type = error.get("type", "")

    if err_type == "missing":
        return f"{field} is required"
    if err_type == "value_error":
        ctx_error = (error.get("ctx") or {}).get("error")
        return str(ctx_error) if ctx_error else error.get("msg", "invalid value")
    if err_type == "string_type":
        return f"{field} must be a string"
    if err_type == "enum" or field in _ENUM_FIELDS:
        return f"{field} must be one of: {OutageEventType.allowed()}"
    if err_type == "int_parsing":
        return f"{field} must be a valid number"
    if err_type in ("int_from_float", "int_type"):
        return f"{field} must be a valid unix timestamp (positive integer)"
    return f"{field}: {error.get('msg', 'invalid value')}"


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def _http(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = describe_validation_error(errors[0]) if errors else "invalid request"
        logger.warning(f"Invalid request to {request.url.path}: {message}")
        return _error(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(RequestRejectedError)
    async def _rejected(request: Request, exc: RequestRejectedError):
        logger.warning(f"Invalid request to {request.url.path}: {exc}")
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(InvalidEventTypeError)
    async def _invalid_event_type(request: Request, exc: InvalidEventTypeError):
        logger.error(f"Unknown event type reached the engine: {exc}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(DuplicateOccurrenceError)
    async def _duplicate(request: Request, exc: DuplicateOccurrenceError):
        logger.warning(f"Duplicate outage occurrence rejected: {exc}")
        return _error(status.HTTP_409_CONFLICT, "Occurrence already recorded for this outage group")

    @app.exception_handler(OutageStoreError)
    async def _store(request: Request, exc: OutageStoreError):
        logger.error(f"Outage store failure: {exc}", exc_info=exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Outage store unavailable")

    @app.exception_handler(CacheError)
    async def _cache(request: Request, exc: CacheError):
        logger.error(f"Active-group cache write failed after commit: {exc}")
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Event stored but the active-group cache could not be updated",
        )

    @app.exception_handler(GroupConsistencyError)
    async def _consistency(request: Request, exc: GroupConsistencyError):
        logger.error(f"Outage group invariant violated: {exc}", exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal consistency error")
