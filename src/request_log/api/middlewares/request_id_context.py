"""Correlation id middleware.

Reads the request id from a header (or generates one) and derives a child
logger carrying it, so every record logged for the request has the id.
"""

from collections.abc import Callable
from uuid import uuid4

from asgi_correlation_id import correlation_id
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send
from structlog.contextvars import bound_contextvars

from src.request_log.api.context import require_request_context


def generate_request_id() -> str:
    return str(uuid4())


class RequestIdContextMiddleware:
    """Adds the request id to the request context, request state and logger.

    Must run after LoggerMiddleware; otherwise ConfigurationError is raised
    before the downstream app is called.
    """

    def __init__(
        self,
        app: ASGIApp,
        header: str = "X-Request-Id",
        context_property: str = "request_id",
        request_property: str = "request_id",
        log_field: str = "req_id",
        generator: Callable[[], str] = generate_request_id,
        response_header: str | None = None,
        bind_contextvars: bool = False,
    ):
        self.app = app
        self.header = header
        self.context_property = context_property
        self.request_property = request_property
        self.log_field = log_field
        self.generator = generator
        self.response_header = response_header
        self.bind_contextvars = bind_contextvars

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        ctx = require_request_context(scope)
        request_id = Headers(scope=scope).get(self.header) or self.generator()

        ctx.correlation_id = request_id
        ctx.properties[self.context_property] = request_id
        scope.setdefault("state", {})[self.request_property] = request_id
        ctx.logger = ctx.require_logger().child({self.log_field: request_id})

        if self.response_header:
            send = self._echo_header(send, request_id)

        # Visible to code that reads asgi-correlation-id, for this request only
        token = correlation_id.set(request_id)
        try:
            if self.bind_contextvars:
                with bound_contextvars(**{self.log_field: request_id}):
                    await self.app(scope, receive, send)
            else:
                await self.app(scope, receive, send)
        finally:
            correlation_id.reset(token)

    def _echo_header(self, send: Send, request_id: str) -> Send:
        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers.setdefault(self.response_header, request_id)
            await send(message)

        return send_with_header
