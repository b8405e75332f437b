"""Standard field serializers for request, response and error log fields."""

import traceback
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from starlette.requests import HTTPConnection
from structlog.typing import EventDict, WrappedLogger

Serializer = Callable[[Any], Any]


def serialize_request(req: Any) -> Any:
    """Render an inbound request as a plain dict.

    Values that are not requests are returned unchanged so the serializer can
    safely run on fields a callback already replaced.
    """
    if not isinstance(req, HTTPConnection):
        return req
    client = req.client
    return {
        "method": req.scope.get("method"),
        "url": str(req.url),
        "headers": dict(req.headers),
        "remote_address": client.host if client else None,
        "remote_port": client.port if client else None,
    }


def serialize_response(res: Any) -> Any:
    """Render a response (anything with status_code and headers) as a plain dict."""
    if not hasattr(res, "status_code") or not hasattr(res, "headers"):
        return res
    return {
        "status_code": res.status_code,
        "headers": dict(res.headers),
    }


def serialize_error(err: Any) -> Any:
    if not isinstance(err, BaseException):
        return err
    return {
        "message": str(err),
        "name": type(err).__name__,
        "stack": "".join(traceback.format_exception(type(err), err, err.__traceback__)),
    }


STD_SERIALIZERS: Mapping[str, Serializer] = MappingProxyType(
    {
        "req": serialize_request,
        "res": serialize_response,
        "err": serialize_error,
    }
)


class FieldSerializer:
    """structlog processor applying a serializer to each matching event key.

    A serializer that raises replaces the value with a placeholder; logging a
    record must never fail because of one field.
    """

    def __init__(self, serializers: Mapping[str, Serializer]):
        self._serializers = dict(serializers)

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, serializer in self._serializers.items():
            if key not in event_dict:
                continue
            try:
                event_dict[key] = serializer(event_dict[key])
            except Exception as exc:
                event_dict[key] = f"(Unable to serialize {key!r}: {type(exc).__name__})"
        return event_dict
