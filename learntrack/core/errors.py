"""JSON error envelope shared by every failing response.

All errors leave the API as::

    {"error": true, "message": ..., "status_code": ..., "request_id": ...}

with an optional ``details`` list for request validation failures. Server
errors never echo internal messages back to the caller.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learntrack.core.context import get_request_id
from learntrack.core.logging import get_logger


logger = get_logger(__name__)

GENERIC_SERVER_ERROR = "An unexpected error occurred. Please try again later."


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: list[dict[str, Any]] | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    body: dict[str, Any] = {
        "error": True,
        "message": message,
        "status_code": status_code,
        "request_id": getattr(request.state, "request_id", None) or get_request_id(),
    }
    if details is not None:
        body["details"] = details
    return ORJSONResponse(status_code=status_code, content=body, headers=headers)


def _field_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]


async def _on_http_error(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=str(exc.detail),
        path=request.url.path,
        method=request.method,
    )
    message = (
        str(exc.detail)
        if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
        else "Internal server error"
    )
    return error_response(
        request, exc.status_code, message, headers=getattr(exc, "headers", None)
    )


async def _on_validation_error(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    details = _field_errors(exc)
    logger.warning("validation_error", errors=details, path=request.url.path)
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        details=details,
    )


async def _on_unhandled(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )
    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_SERVER_ERROR
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _on_http_error)
    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(Exception, _on_unhandled)
