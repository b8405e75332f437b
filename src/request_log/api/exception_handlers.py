"""Exception handlers that put the request id into error responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.request_log.api.context import get_request_context
from src.request_log.core.logging import get_logger

logger = get_logger(__name__)


def request_id_of(request: Request) -> str | None:
    """Request id assigned by RequestIdContextMiddleware, if it ran."""
    ctx = get_request_context(request.scope)
    return ctx.correlation_id if ctx is not None else None


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses.

    The unhandled error handler runs after the request logger has written the
    completion record and detached the request logger, so it logs through the
    module logger with the id as a field.
    """

    # fastapi.HTTPException subclasses the Starlette one
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "request_id": request_id_of(request)},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = request_id_of(request)
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request_id},
        )
