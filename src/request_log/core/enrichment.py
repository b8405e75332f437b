"""Failure isolation for user supplied enrichment callbacks.

Field update callbacks take the record fields (plus, for response updates, the
downstream error) and either return a replacement mapping or mutate the given
mapping in place and return None. A raising callback is logged at error level
through the request logger and the record falls back to the data it had before
the callback ran.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from src.request_log.core.exceptions import EnrichmentCallbackError

if TYPE_CHECKING:
    from src.request_log.api.context import RequestContext

Fields = dict[str, Any]
FieldUpdater = Callable[..., Fields | None]

T = TypeVar("T")


def callback_name(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


def log_callback_failure(ctx: "RequestContext", func: Callable[..., Any], exc: Exception) -> None:
    failure = EnrichmentCallbackError(callback_name(func), exc)
    ctx.require_logger().log(
        "error",
        {"err": exc, "callback": failure.callback},
        str(exc) or type(exc).__name__,
    )


def apply_field_update(
    ctx: "RequestContext",
    func: FieldUpdater | None,
    data: Fields,
    *args: Any,
) -> Fields:
    """Run ``func`` on a copy of ``data``, returning the updated fields."""
    if func is None:
        return data

    candidate = dict(data)
    try:
        result = func(candidate, *args)
        if result is not None:
            result = dict(result)
    except Exception as exc:
        log_callback_failure(ctx, func, exc)
        return data
    return candidate if result is None else result


def call_isolated(
    ctx: "RequestContext",
    func: Callable[..., T],
    fallback: Callable[[], T],
    *args: Any,
) -> T:
    """Call ``func``; on failure log it and return ``fallback()`` instead."""
    try:
        return func(*args)
    except Exception as exc:
        log_callback_failure(ctx, func, exc)
        return fallback()
