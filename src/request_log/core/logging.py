"""Logging configuration and the logging backend used by the middlewares."""

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

import structlog
from structlog.typing import EventDict, WrappedLogger

from src.request_log.core.serializers import STD_SERIALIZERS, FieldSerializer, Serializer

Level = Literal["trace", "debug", "info", "warn", "error", "fatal"]

LEVELS: tuple[Level, ...] = ("trace", "debug", "info", "warn", "error", "fatal")

# stdlib has no trace level; trace records go out as DEBUG but keep their label.
_METHOD_FOR_LEVEL: dict[str, str] = {
    "trace": "debug",
    "debug": "debug",
    "info": "info",
    "warn": "warning",
    "error": "error",
    "fatal": "critical",
}

_LEVEL_FOR_METHOD: dict[str, str] = {
    "debug": "debug",
    "info": "info",
    "warning": "warn",
    "warn": "warn",
    "error": "error",
    "exception": "error",
    "critical": "fatal",
    "fatal": "fatal",
}

_STDLIB_LEVELS: dict[str, int] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

RECORD_LEVEL_KEY = "_record_level"


def add_record_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Set ``level`` using the trace/debug/info/warn/error/fatal vocabulary."""
    level = event_dict.pop(RECORD_LEVEL_KEY, None)
    event_dict["level"] = level or _LEVEL_FOR_METHOD.get(method_name, method_name)
    return event_dict


def setup_logging(debug: bool = False, level: str | None = None) -> None:
    """Configure structlog for structured logging.

    Args:
        debug: If True, use colored console output. If False, use JSON for production.
        level: Optional level name overriding the debug/info default.
    """
    # Set up standard library logging
    log_level = logging.DEBUG if debug else logging.INFO
    if level:
        log_level = _STDLIB_LEVELS.get(level.lower(), log_level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_record_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        # Human-readable colored output for development
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        # JSON output for production
        processors = shared_processors + [structlog.processors.JSONRenderer(default=repr)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Requests are logged by RequestLoggerMiddleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


@runtime_checkable
class LoggingBackend(Protocol):
    """Structured logger the middlewares write to.

    ``child`` returns a new backend carrying extra fields on every record; the
    parent is left untouched.
    """

    def log(self, level: Level, fields: Mapping[str, Any], message: str) -> None: ...

    def child(self, fields: Mapping[str, Any]) -> "LoggingBackend": ...


class StructlogBackend:
    """LoggingBackend on top of a bound structlog logger."""

    def __init__(self, logger: Any):
        self._logger = logger

    @property
    def bound_logger(self) -> Any:
        return self._logger

    def log(self, level: Level, fields: Mapping[str, Any], message: str) -> None:
        try:
            method_name = _METHOD_FOR_LEVEL[level]
        except KeyError:
            raise ValueError(f"Unknown log level: {level!r}") from None
        event_kw = dict(fields)
        # structlog reserves "event" for the message
        if "event" in event_kw:
            event_kw["event_field"] = event_kw.pop("event")
        event_kw[RECORD_LEVEL_KEY] = level
        getattr(self._logger, method_name)(message, **event_kw)

    def child(self, fields: Mapping[str, Any]) -> "StructlogBackend":
        return StructlogBackend(self._logger.bind(**fields))

    def trace(self, message: str, **fields: Any) -> None:
        self.log("trace", fields, message)

    def debug(self, message: str, **fields: Any) -> None:
        self.log("debug", fields, message)

    def info(self, message: str, **fields: Any) -> None:
        self.log("info", fields, message)

    def warn(self, message: str, **fields: Any) -> None:
        self.log("warn", fields, message)

    def error(self, message: str, **fields: Any) -> None:
        self.log("error", fields, message)

    def fatal(self, message: str, **fields: Any) -> None:
        self.log("fatal", fields, message)


@dataclass(frozen=True)
class LoggerConfig:
    """Settings for building a default backend when none is injected."""

    name: str = "service"
    serializers: Mapping[str, Serializer] = field(
        default_factory=lambda: STD_SERIALIZERS, hash=False
    )


def create_logger(config: LoggerConfig) -> StructlogBackend:
    """Build a backend from the current structlog configuration plus serializers.

    The record level processor always runs first in the configured chain, so
    records carry the trace..fatal vocabulary whether or not ``setup_logging``
    configured structlog.
    """
    configured = [p for p in structlog.get_config()["processors"] if p is not add_record_level]
    processors = [FieldSerializer(config.serializers), add_record_level, *configured]
    logger = structlog.wrap_logger(
        None,
        processors=processors,
        logger_factory_args=(config.name,),
    ).bind(name=config.name)
    return StructlogBackend(logger)


_default_loggers: dict[LoggerConfig, LoggingBackend] = {}


def get_default_logger(config: LoggerConfig | None = None) -> LoggingBackend:
    """Return the process-wide backend for ``config``, creating it once."""
    config = config or LoggerConfig()
    backend = _default_loggers.get(config)
    if backend is None:
        backend = _default_loggers[config] = create_logger(config)
    return backend


def reset_default_loggers() -> None:
    """Forget cached default backends. For testing only."""
    _default_loggers.clear()
