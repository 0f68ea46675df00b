"""
Exception handlers translating failures into the response envelope:

    {"success": false, "message": "..."}

Internal error detail never crosses the boundary.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from eventthreads.utils.exceptions import EventThreadsError
from eventthreads.utils.logger import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong!"


def envelope_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid data provided"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = loc[-1] if loc else None
    if first.get("type") == "missing" and field:
        return f"{field} is required"
    if field:
        return f"Invalid {field}: {first.get('msg', 'invalid value')}"
    return "Invalid data provided"


async def handle_app_error(request: Request, exc: EventThreadsError) -> JSONResponse:
    logger.info(
        "Request failed",
        path=request.url.path,
        status_code=exc.status_code,
        error_type=type(exc).__name__,
        message=exc.message,
    )
    return envelope_error(exc.status_code, exc.message)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _describe_validation_error(exc)
    logger.info("Request validation failed", path=request.url.path, message=message)
    return envelope_error(400, message)


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "Route not found", "path": request.url.path},
        )
    return envelope_error(exc.status_code, str(exc.detail))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error=str(exc))
    return envelope_error(500, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EventThreadsError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
