"""Timing middleware exposing ctx.time() / ctx.time_end() to handlers."""

from starlette.types import ASGIApp, Receive, Scope, Send

from src.request_log.api.context import SpanTimer, require_request_context
from src.request_log.core.enrichment import FieldUpdater
from src.request_log.core.logging import LEVELS, Level


class TimeContextMiddleware:
    """Gives each request its own span map and timer.

    Durations are logged at ``log_level``; ``update_fields`` may rewrite the
    ``{label, duration, message}`` fields before they are logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_level: Level = "trace",
        update_fields: FieldUpdater | None = None,
    ):
        if log_level not in LEVELS:
            raise ValueError(f"Unknown log level: {log_level!r}")
        self.app = app
        self.log_level = log_level
        self.update_fields = update_fields

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        ctx = require_request_context(scope)
        ctx.timing_spans = {}
        ctx.timer = SpanTimer(ctx, log_level=self.log_level, update_fields=self.update_fields)
        await self.app(scope, receive, send)
