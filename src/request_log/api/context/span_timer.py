"""Named timing spans scoped to one request context."""

import time
from typing import TYPE_CHECKING

from src.request_log.core.enrichment import FieldUpdater, apply_field_update
from src.request_log.core.logging import Level

if TYPE_CHECKING:
    from src.request_log.api.context.request_context import RequestContext


class SpanTimer:
    """Tracks start times by label in ``ctx.timing_spans`` and logs durations.

    Labels are independent, so spans may nest or overlap freely. Every record
    goes through ``ctx.logger`` as it is at call time, so fields added by later
    middleware (e.g. the request id) are included.
    """

    def __init__(
        self,
        ctx: "RequestContext",
        log_level: Level = "trace",
        update_fields: FieldUpdater | None = None,
    ):
        self._ctx = ctx
        self._log_level = log_level
        self._update_fields = update_fields

    def start(self, label: str) -> None:
        spans = self._ctx.timing_spans
        if spans.get(label) is not None:
            self._ctx.require_logger().log(
                "warn", {}, f"time() called for previously used label {label}"
            )
        spans[label] = time.perf_counter()

    def stop(self, label: str) -> float | None:
        now = time.perf_counter()
        spans = self._ctx.timing_spans
        started = spans.get(label)
        if started is None:
            self._ctx.require_logger().log(
                "warn", {}, f"timeEnd() called without time() for label {label}"
            )
            return None

        spans[label] = None
        duration = (now - started) * 1000
        message = f"{label}: {duration:.3f}ms"
        fields = {"label": label, "duration": duration, "message": message}
        fields = apply_field_update(self._ctx, self._update_fields, fields)
        self._ctx.require_logger().log(self._log_level, fields, message)
        return duration
