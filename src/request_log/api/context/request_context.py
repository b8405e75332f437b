"""Per-request logging context carried in the ASGI scope.

The context lives in the scope's ``state`` dict, which Starlette exposes as
``request.state``. One context exists per request and it is never shared.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from starlette.types import Scope

from src.request_log.core.exceptions import ConfigurationError
from src.request_log.core.logging import LoggingBackend

if TYPE_CHECKING:
    from src.request_log.api.context.span_timer import SpanTimer

STATE_KEY = "request_context"

MISSING_LOGGER_MESSAGE = "must attach logger before this middleware"


@dataclass
class ResponseInfo:
    """Response status and headers as seen on the wire."""

    status_code: int | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class RequestContext:
    """Mutable logging state for a single in-flight request."""

    logger: LoggingBackend | None = None
    correlation_id: str | None = None
    timing_spans: dict[str, float | None] = field(default_factory=dict)
    timer: "SpanTimer | None" = None
    properties: dict[str, Any] = field(default_factory=dict)

    def require_logger(self) -> LoggingBackend:
        if self.logger is None:
            raise ConfigurationError(MISSING_LOGGER_MESSAGE)
        return self.logger

    def time(self, label: str) -> None:
        """Open a timing span for ``label``."""
        self._require_timer().start(label)

    def time_end(self, label: str) -> float | None:
        """Close the span for ``label`` and log its duration in milliseconds."""
        return self._require_timer().stop(label)

    def _require_timer(self) -> "SpanTimer":
        if self.timer is None:
            raise ConfigurationError("must use TimeContextMiddleware before timing spans")
        return self.timer


def get_request_context(scope: Scope) -> RequestContext | None:
    """Get the logging context of the request ``scope`` belongs to."""
    state = scope.get("state") or {}
    return state.get(STATE_KEY)


def set_request_context(scope: Scope, ctx: RequestContext) -> None:
    scope.setdefault("state", {})[STATE_KEY] = ctx


def require_request_context(scope: Scope) -> RequestContext:
    """Get the request context with a bound logger, or raise ConfigurationError."""
    ctx = get_request_context(scope)
    if ctx is None or ctx.logger is None:
        raise ConfigurationError(MISSING_LOGGER_MESSAGE)
    return ctx
