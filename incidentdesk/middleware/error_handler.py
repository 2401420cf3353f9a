"""Standard error handler: consistent error responses across all routes."""

from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import IncidentDeskError, NotFoundError, StorageError, Unauthenticated, ValidationError
from ..utils.logging import get_logger

logger = get_logger("middleware.error_handler")

# Domain error -> HTTP status
ERROR_STATUS = {
    ValidationError: 422,
    NotFoundError: 404,
    Unauthenticated: 401,
    StorageError: 503,
}


def _envelope(request: Request, status_code: int, detail, **extra) -> dict:
    return {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        **extra,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": getattr(request.state, "request_id", None),
    }


def status_for(exc: IncidentDeskError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Register standard error handlers on the app."""

    @app.exception_handler(IncidentDeskError)
    async def domain_exception_handler(request: Request, exc: IncidentDeskError):
        status_code = status_for(exc)
        extra = {}
        if isinstance(exc, ValidationError) and exc.field:
            extra["field"] = exc.field
        if isinstance(exc, StorageError):
            logger.error("storage_failure", error=exc.message, path=str(request.url.path))
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return JSONResponse(
            status_code=status_code,
            content=_envelope(request, status_code, exc.message, **extra),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(request, exc.status_code, exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_envelope(request, 422, "Validation error", errors=jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logger.error(
            "unhandled_exception",
            error=str(exc),
            request_id=request_id,
            path=str(request.url.path),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=_envelope(request, 500, "Internal server error"),
        )
