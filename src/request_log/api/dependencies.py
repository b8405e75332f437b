"""FastAPI dependency injection definitions for the request logging context."""

from typing import Annotated

from fastapi import Depends, Request

from src.request_log.api.context import RequestContext, require_request_context
from src.request_log.core.logging import LoggingBackend


async def get_request_context(request: Request) -> RequestContext:
    """Get the logging context of the current request.

    Raises ConfigurationError if LoggerMiddleware is not installed.
    """
    return require_request_context(request.scope)


async def get_request_logger(
    ctx: Annotated[RequestContext, Depends(get_request_context)],
) -> LoggingBackend:
    """Get the request scoped logger (with request id and other bound fields)."""
    return ctx.require_logger()


RequestContextDep = Annotated[RequestContext, Depends(get_request_context)]
RequestLoggerDep = Annotated[LoggingBackend, Depends(get_request_logger)]
