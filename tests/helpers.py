"""Test helper functions for building apps and reading captured records."""

import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from structlog.testing import CapturingLogger

REQ_MESSAGE = re.compile(r"^  <-- GET /")
RES_MESSAGE = re.compile(r"^  --> GET /\S* \d+ [\d.]+ms$")


def records(cap_logger: CapturingLogger) -> list[dict[str, Any]]:
    """Event dicts of every captured record, in emission order."""
    return [call.kwargs for call in cap_logger.calls]


def build_app(*middleware: tuple[type, dict[str, Any]]) -> FastAPI:
    """Create a FastAPI app with ``middleware`` listed outermost first.

    Starlette wraps the last added middleware around the others, so they are
    added in reverse.
    """
    app = FastAPI()
    for cls, options in reversed(middleware):
        app.add_middleware(cls, **options)
    return app


@asynccontextmanager
async def make_client(
    app: FastAPI, raise_app_exceptions: bool = False
) -> AsyncGenerator[AsyncClient]:
    """httpx client talking to ``app`` in-process.

    Unhandled exceptions are turned into 500 responses by Starlette's server
    error middleware; pass ``raise_app_exceptions=True`` to see them re-raised.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def http_scope(path: str = "/", method: str = "GET", headers: list[tuple[bytes, bytes]] | None = None) -> dict[str, Any]:
    """Minimal ASGI HTTP scope for driving middleware without a client."""
    path, _, query = path.partition("?")
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "root_path": "",
        "headers": headers or [],
        "client": ("127.0.0.1", 50000),
        "server": ("test", 80),
        "state": {},
    }


async def empty_receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}
