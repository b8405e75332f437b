"""Demo application wiring the request logging middlewares.

Run: uvicorn src.request_log.main:app --port 8000
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import PlainTextResponse

from src.request_log.api.dependencies import RequestContextDep
from src.request_log.api.exception_handlers import setup_exception_handlers
from src.request_log.api.middlewares import setup_middlewares
from src.request_log.core.config import get_settings
from src.request_log.core.logging import LoggerConfig, LoggingBackend, get_logger, setup_logging

logger = get_logger(__name__)

USERS_BY_TOKEN = {
    "token123": {"id": 1, "name": "alice"},
    "token345": {"id": 2, "name": "bob"},
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    logger.info(f"Starting {settings.app_name}")
    yield
    logger.info("Shutdown complete")


def create_app(logger_backend: LoggingBackend | LoggerConfig | None = None) -> FastAPI:
    settings = get_settings()

    # Default backends snapshot the structlog configuration when built
    setup_logging(settings.debug, settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Request scoped structured logging demo",
        version="0.1.0",
        lifespan=lifespan,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings, logger=logger_backend)

    @app.get("/", response_class=PlainTextResponse)
    async def hello(ctx: RequestContextDep) -> str:
        ctx.require_logger().log("info", {}, "Got a request")
        return "Hello world\r\n"

    @app.get("/wait", response_class=PlainTextResponse)
    async def wait(ctx: RequestContextDep, short_ms: int = 100, long_ms: int = 500) -> str:
        """Nested timing spans."""
        ctx.time("sitting around")

        ctx.time("short wait")
        await asyncio.sleep(short_ms / 1000)
        ctx.time_end("short wait")

        ctx.time("longer wait")
        await asyncio.sleep(long_ms / 1000)
        ctx.time_end("longer wait")

        ctx.time_end("sitting around")
        return "Hello world\r\n"

    @app.get("/me", response_class=PlainTextResponse)
    async def me(ctx: RequestContextDep, token: str | None = None) -> str:
        """Token lookup; records after it carry the authorized user."""
        if not token:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="expected token")

        ctx.require_logger().log("trace", {}, f'looking up user with token "{token}"')
        user = USERS_BY_TOKEN.get(token)
        if not user:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid user token")

        ctx.logger = ctx.require_logger().child({"authorized_user": user["id"]})
        ctx.logger.log("info", {}, "doing stuff")
        return "OK\r\n"

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("oh no")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
