from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.request_log.core.logging import LEVELS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REQUEST_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Request Log Demo"
    debug: bool = False  # Colored console output instead of JSON
    log_level: str = "info"

    # Logger attachment
    logger_name: str = "service"

    # Request id
    request_id_header: str = "X-Request-Id"
    request_id_log_field: str = "req_id"
    response_request_id_header: str | None = None  # e.g. "X-Request-Id" to echo the id back

    # Timing
    timing_log_level: Literal["trace", "debug", "info", "warn", "error", "fatal"] = "trace"

    # Request logging
    ignore_paths: list[str] = ["/health"]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.lower()
        if v not in LEVELS and v not in ("warning", "critical"):
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LEVELS)}")
        return v

    @field_validator("ignore_paths")
    @classmethod
    def validate_ignore_paths(cls, v: list[str]) -> list[str]:
        """Ignore paths are matched against the URL path, so they must be absolute."""
        for path in v:
            if not path.startswith("/"):
                raise ValueError(f"Ignore path '{path}' must start with '/'")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
