"""Request logging middlewares."""

from starlette.applications import Starlette

from src.request_log.core.config import Settings
from src.request_log.core.logging import LoggerConfig, LoggingBackend

from .logger import LoggerMiddleware, resolve_logger
from .request_id_context import RequestIdContextMiddleware, generate_request_id
from .request_logger import RequestLoggerMiddleware, ResponseFinished, default_level
from .time_context import TimeContextMiddleware

__all__ = [
    "setup_middlewares",
    "LoggerMiddleware",
    "RequestIdContextMiddleware",
    "RequestLoggerMiddleware",
    "ResponseFinished",
    "TimeContextMiddleware",
    "default_level",
    "generate_request_id",
    "resolve_logger",
]


def setup_middlewares(
    app: Starlette,
    settings: Settings,
    logger: LoggingBackend | LoggerConfig | None = None,
) -> None:
    """Configure the request logging middlewares.

    Middleware order matters - the last one added is the outermost, so they
    are added innermost first. On the way in a request passes the logger
    attachment, then the request id, then timing, then request logging.
    """
    # Request/response records - innermost, sees the fully enriched logger
    app.add_middleware(
        RequestLoggerMiddleware,
        ignore_paths=settings.ignore_paths,
    )

    # Timing spans - ctx.time() / ctx.time_end()
    app.add_middleware(TimeContextMiddleware, log_level=settings.timing_log_level)

    # Request id - child logger with req_id
    app.add_middleware(
        RequestIdContextMiddleware,
        header=settings.request_id_header,
        log_field=settings.request_id_log_field,
        response_header=settings.response_request_id_header,
    )

    # Logger attachment - outermost, creates the request context
    if logger is None:
        logger = LoggerConfig(name=settings.logger_name)
    app.add_middleware(LoggerMiddleware, logger=logger)
