"""Request context management for API layer.

Provides the per-request logging context:
- RequestContext: logger, correlation id and timing spans of one request
- SpanTimer: start/stop timing operations bound to a RequestContext
"""

from src.request_log.api.context.request_context import (
    MISSING_LOGGER_MESSAGE,
    RequestContext,
    ResponseInfo,
    get_request_context,
    require_request_context,
    set_request_context,
)
from src.request_log.api.context.span_timer import SpanTimer

__all__ = [
    # Request context
    "MISSING_LOGGER_MESSAGE",
    "RequestContext",
    "ResponseInfo",
    "get_request_context",
    "require_request_context",
    "set_request_context",
    # Timing
    "SpanTimer",
]
