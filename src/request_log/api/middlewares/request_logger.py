"""Request/response logging middleware.

Logs one record when a request comes in and one when its response is over.
The completion record is written exactly once, when the downstream app returns,
raises or is cancelled. Its duration runs up to the last body chunk if one was
sent. Downstream exceptions are logged with the completion record and then
re-raised unchanged, even when an inner layer already sent an error response.

If nothing was sent the status is taken from the exception's ``status_code``
or assumed to be 500. An ``Exception`` handler installed on the app runs in
ServerErrorMiddleware, outside this middleware, so a different code chosen
there is not seen and the record may disagree with the client.
"""

import time
from collections.abc import Callable, Collection
from typing import Any

from starlette.datastructures import URL, Headers
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.request_log.api.context import RequestContext, ResponseInfo, require_request_context
from src.request_log.core.enrichment import FieldUpdater, apply_field_update, call_isolated
from src.request_log.core.logging import LEVELS, Level

LevelSelector = Callable[[int, BaseException | None], Level]
MessageFormatter = Callable[[dict[str, Any]], str]


def default_level(status: int, err: BaseException | None) -> Level:
    if status >= 500:
        return "error"
    if status >= 400:
        return "warn"
    return "info"


def request_target(url: URL) -> str:
    """Path plus query string, as sent in the request line."""
    return f"{url.path}?{url.query}" if url.query else url.path


class ResponseFinished:
    """Runs ``callback`` once, however many times the response is reported over."""

    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self.fired = False

    def __call__(self) -> None:
        if self.fired:
            return
        self.fired = True
        self._callback()


class RequestLoggerMiddleware:
    """Logs requests and responses through the request context logger."""

    def __init__(
        self,
        app: ASGIApp,
        duration_field: str = "duration",
        level_selector: LevelSelector = default_level,
        update_fields: FieldUpdater | None = None,
        update_request_fields: FieldUpdater | None = None,
        update_response_fields: FieldUpdater | None = None,
        format_request_message: MessageFormatter | None = None,
        format_response_message: MessageFormatter | None = None,
        ignore_paths: Collection[str] = (),
    ):
        self.app = app
        self.duration_field = duration_field
        self.level_selector = level_selector
        self.update_fields = update_fields
        self.update_request_fields = update_request_fields
        self.update_response_fields = update_response_fields
        self.format_request_message = format_request_message
        self.format_response_message = format_response_message
        self.ignore_paths = frozenset(ignore_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        if request.url.path in self.ignore_paths:
            await self.app(scope, receive, send)
            return

        ctx = require_request_context(scope)
        self._log_request(ctx, request)

        start = time.perf_counter()
        end: float | None = None
        response = ResponseInfo()
        err: BaseException | None = None

        def on_finished() -> None:
            stop = end if end is not None else time.perf_counter()
            self._log_response(ctx, request, response, err, (stop - start) * 1000)

        finished = ResponseFinished(on_finished)

        async def send_wrapper(message: Message) -> None:
            nonlocal end
            if message["type"] == "http.response.start":
                response.status_code = message["status"]
                response.headers = dict(Headers(raw=message.get("headers", [])))
            await send(message)
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                end = time.perf_counter()

        try:
            await self.app(scope, receive, send_wrapper)
        except BaseException as exc:
            err = exc
            raise
        finally:
            finished()

    def _log_request(self, ctx: RequestContext, request: Request) -> None:
        data: dict[str, Any] = {"req": request}
        data = apply_field_update(ctx, self.update_fields, data)
        data = apply_field_update(ctx, self.update_request_fields, data)

        default_message = f"  <-- {request.method} {request_target(request.url)}"
        message = default_message
        if self.format_request_message is not None:
            message = call_isolated(
                ctx, self.format_request_message, lambda: default_message, data
            )
        ctx.require_logger().log("info", data, message)

    def _log_response(
        self,
        ctx: RequestContext,
        request: Request,
        response: ResponseInfo,
        err: BaseException | None,
        elapsed_ms: float,
    ) -> None:
        if response.status_code is None:
            # Nothing was sent; the outer error responder answers with a 500
            status_code = getattr(err, "status_code", None)
            response.status_code = status_code if isinstance(status_code, int) else 500
        status = response.status_code
        duration = round(elapsed_ms, 3)

        data: dict[str, Any] = {"req": request, "res": response}
        if err is not None:
            data["err"] = err
        data[self.duration_field] = duration

        data = apply_field_update(ctx, self.update_fields, data)
        data = apply_field_update(ctx, self.update_response_fields, data, err)
        if err is not None:
            data["err"] = err

        level = call_isolated(
            ctx, self._select_level, lambda: default_level(status, err), status, err
        )

        # Fields rewritten by the update callbacks show up in the message
        default_message = (
            f"  --> {request.method} {request_target(request.url)} "
            f"{getattr(data.get('res'), 'status_code', status)} "
            f"{data.get(self.duration_field, duration)}ms"
        )
        message = default_message
        if self.format_response_message is not None:
            message = call_isolated(
                ctx, self.format_response_message, lambda: default_message, data
            )

        ctx.require_logger().log(level, data, message)

        # The enriched logger must not outlive the request
        ctx.logger = None

    def _select_level(self, status: int, err: BaseException | None) -> Level:
        level = self.level_selector(status, err)
        if level not in LEVELS:
            raise ValueError(f"level_selector returned unknown level {level!r}")
        return level
