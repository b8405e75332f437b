"""Logger attachment middleware."""

from starlette.types import ASGIApp, Receive, Scope, Send

from src.request_log.api.context import RequestContext, set_request_context
from src.request_log.core.logging import LoggerConfig, LoggingBackend, get_default_logger


def resolve_logger(logger: LoggingBackend | LoggerConfig | None) -> LoggingBackend:
    """Use an injected backend as is, or build the default one for a config."""
    if logger is None or isinstance(logger, LoggerConfig):
        return get_default_logger(logger)
    if not isinstance(logger, LoggingBackend):
        raise TypeError(f"Expected a LoggingBackend or LoggerConfig, got {type(logger).__name__}")
    return logger


class LoggerMiddleware:
    """Creates the request context and binds the logger to it.

    The backend is shared by every request; middleware further down only ever
    replaces ``ctx.logger`` with child backends.
    """

    def __init__(self, app: ASGIApp, logger: LoggingBackend | LoggerConfig | None = None):
        self.app = app
        self.logger = resolve_logger(logger)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        set_request_context(scope, RequestContext(logger=self.logger))
        await self.app(scope, receive, send)
