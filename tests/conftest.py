"""Root test fixtures shared across all test types.

The ``backend`` fixture is a real StructlogBackend whose records end up in a
structlog CapturingLogger, so tests can inspect every emitted event dict.
"""

import os

# Keep tests independent of a developer's .env / environment
os.environ.setdefault("REQUEST_LOG_DEBUG", "false")

# ruff: noqa: E402 - Imports must be after env var setup
import pytest
import structlog
from structlog.testing import CapturingLogger

from src.request_log.core.config import get_settings
from src.request_log.core.logging import StructlogBackend, add_record_level, reset_default_loggers

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
def cap_logger() -> CapturingLogger:
    """Collects every record logged through ``backend``."""
    return CapturingLogger()


@pytest.fixture
def backend(cap_logger: CapturingLogger) -> StructlogBackend:
    """Backend writing to the capturing logger with the record level processor."""
    return StructlogBackend(
        structlog.wrap_logger(
            cap_logger,
            processors=[add_record_level],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
        )
    )


@pytest.fixture
def restore_structlog_config():
    """Restore structlog configuration and default backends after a test."""
    old_config = structlog.get_config()
    reset_default_loggers()
    yield
    reset_default_loggers()
    structlog.configure(**old_config)


@pytest.fixture
def configured_capture(restore_structlog_config) -> CapturingLogger:
    """Configure structlog so default backends write to a capturing logger."""
    cap_logger = CapturingLogger()
    structlog.configure(
        processors=[add_record_level],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )
    return cap_logger
