"""Tests for the timing middleware in a FastAPI application."""

import pytest
from fastapi import Request
from fastapi.responses import PlainTextResponse

from src.request_log.api.context import get_request_context
from src.request_log.api.middlewares import (
    LoggerMiddleware,
    RequestIdContextMiddleware,
    TimeContextMiddleware,
)
from src.request_log.core.exceptions import ConfigurationError
from tests.helpers import build_app, make_client, records

pytestmark = pytest.mark.integration


def timing_app(backend, handler, **options):
    app = build_app(
        (LoggerMiddleware, {"logger": backend}),
        (TimeContextMiddleware, options),
    )

    @app.get("/")
    async def route(request: Request) -> PlainTextResponse:
        handler(get_request_context(request.scope))
        return PlainTextResponse("")

    return app


async def test_records_time_between_time_and_time_end(backend, cap_logger):
    def handler(ctx):
        ctx.time("foo")
        ctx.time_end("foo")

    async with make_client(timing_app(backend, handler)) as client:
        response = await client.get("/")

    assert response.status_code == 200
    entry = records(cap_logger)[0]
    assert entry["label"] == "foo"
    assert isinstance(entry["duration"], float)
    assert entry["level"] == "trace"


async def test_handles_nested_calls(backend, cap_logger):
    def handler(ctx):
        ctx.time("foo")
        ctx.time("bar")
        ctx.time_end("bar")
        ctx.time_end("foo")

    async with make_client(timing_app(backend, handler)) as client:
        await client.get("/")

    bar, foo = records(cap_logger)
    assert bar["label"] == "bar"
    assert foo["label"] == "foo"
    assert bar["duration"] > 0
    assert foo["duration"] > 0
    assert foo["duration"] >= bar["duration"]


async def test_warns_if_time_called_twice(backend, cap_logger):
    def handler(ctx):
        ctx.time("x")
        ctx.time("x")

    async with make_client(timing_app(backend, handler)) as client:
        await client.get("/")

    entry = records(cap_logger)[0]
    assert entry["level"] == "warn"
    assert "called for previously" in entry["event"]


async def test_warns_if_time_end_called_without_time(backend, cap_logger):
    def handler(ctx):
        ctx.time_end("blam")

    async with make_client(timing_app(backend, handler)) as client:
        await client.get("/")

    entries = records(cap_logger)
    assert len(entries) == 1
    assert entries[0]["level"] == "warn"
    assert "called without" in entries[0]["event"]


async def test_allows_returning_custom_log_fields(backend, cap_logger):
    def handler(ctx):
        ctx.time("foo")
        ctx.time_end("foo")

    def update_fields(fields):
        return {"request_trace": {"name": fields["label"], "time": fields["duration"]}}

    app = timing_app(backend, handler, update_fields=update_fields)
    async with make_client(app) as client:
        await client.get("/")

    entry = records(cap_logger)[0]
    assert entry["request_trace"]["name"] == "foo"
    assert isinstance(entry["request_trace"]["time"], float)


async def test_custom_log_level(backend, cap_logger):
    def handler(ctx):
        ctx.time("foo")
        ctx.time_end("foo")

    async with make_client(timing_app(backend, handler, log_level="info")) as client:
        await client.get("/")

    assert records(cap_logger)[0]["level"] == "info"


def test_rejects_unknown_log_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        TimeContextMiddleware(app=None, log_level="loud")  # type: ignore[arg-type]


async def test_spans_do_not_leak_between_requests(backend, cap_logger):
    def handler(ctx):
        ctx.time("once")

    app = timing_app(backend, handler)
    async with make_client(app) as client:
        await client.get("/")
        await client.get("/")

    # Each request starts with an empty span map, so no "previously used" warning
    assert records(cap_logger) == []


async def test_timing_records_carry_req_id(backend, cap_logger):
    app = build_app(
        (LoggerMiddleware, {"logger": backend}),
        (TimeContextMiddleware, {}),
        (RequestIdContextMiddleware, {}),
    )

    @app.get("/")
    async def route(request: Request) -> PlainTextResponse:
        ctx = get_request_context(request.scope)
        ctx.time("foo")
        ctx.time_end("foo")
        return PlainTextResponse("")

    async with make_client(app) as client:
        await client.get("/", headers={"X-Request-Id": "1234"})

    assert records(cap_logger)[0]["req_id"] == "1234"


async def test_requires_logger_middleware():
    app = build_app((TimeContextMiddleware, {}))

    async with make_client(app, raise_app_exceptions=True) as client:
        with pytest.raises(ConfigurationError):
            await client.get("/")
