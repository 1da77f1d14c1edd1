"""Configuration loading from environment variables."""

import json
import logging
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from typed_http.ports.logger import LogLevel
from typed_http.ports.settings import SettingsPort

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Runtime configuration for the request pipeline.

    Attributes:
        max_attempts: Attempts per logical request (1 disables retries).
        retry_base_delay_sec: First backoff delay in seconds.
        timeout_sec: Per-attempt transport timeout in seconds.
        log_level: Network logger verbosity.
        default_headers: Headers added to every request.
    """

    max_attempts: int = Field(default=3, ge=1, description="Attempts per logical request.")
    retry_base_delay_sec: float = Field(default=0.5, ge=0, description="First backoff delay in seconds.")
    timeout_sec: float = Field(default=30.0, gt=0, description="Per-attempt transport timeout.")
    log_level: LogLevel = Field(default=LogLevel.MINIMAL, description="Network logger verbosity.")
    default_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Headers added to every request.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept log levels in any letter case.

        Args:
            v: Raw log level.

        Returns:
            Lower-cased level name, or the value unchanged.
        """
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("default_headers")
    @classmethod
    def validate_default_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Reject empty header names.

        Raises:
            ValueError: If a header name is blank.
        """
        if any(not name.strip() for name in v):
            raise ValueError("Header names must not be empty")
        return v

    def to_port(self) -> SettingsPort:
        """Wrap settings into the port consumed by the core."""
        return SettingsPort(
            max_attempts=self.max_attempts,
            retry_base_delay_sec=self.retry_base_delay_sec,
            timeout_sec=self.timeout_sec,
            log_level=self.log_level,
            default_headers=dict(self.default_headers),
        )


def _parse_number(name: str, kind: type[int] | type[float]) -> int | float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return kind(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be a number (got: {raw})") from e


def _parse_headers(name: str) -> dict[str, str] | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"{name} contains invalid JSON") from e
    if not isinstance(data, dict):
        raise RuntimeError(f"{name} must be a JSON object")
    return data


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Optional environment variables:
    - HTTP_MAX_ATTEMPTS: Positive integer (default 3).
    - HTTP_RETRY_BASE_DELAY: Non-negative seconds (default 0.5).
    - HTTP_TIMEOUT_SECONDS: Positive seconds (default 30).
    - HTTP_LOG_LEVEL: none, minimal or verbose (default minimal).
    - HTTP_DEFAULT_HEADERS: JSON object of header name to value.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If a variable cannot be parsed.
        ValueError: If a parsed value is invalid.
    """
    values: dict[str, Any] = {
        "max_attempts": _parse_number("HTTP_MAX_ATTEMPTS", int),
        "retry_base_delay_sec": _parse_number("HTTP_RETRY_BASE_DELAY", float),
        "timeout_sec": _parse_number("HTTP_TIMEOUT_SECONDS", float),
        "log_level": os.getenv("HTTP_LOG_LEVEL") or None,
        "default_headers": _parse_headers("HTTP_DEFAULT_HEADERS"),
    }
    settings = Settings(**{k: v for k, v in values.items() if v is not None})

    logger.info(
        f"HTTP pipeline configured: attempts={settings.max_attempts}, "
        f"base_delay={settings.retry_base_delay_sec}s, "
        f"timeout={settings.timeout_sec}s, "
        f"log_level={settings.log_level.value}, "
        f"default_headers={sorted(settings.default_headers) or '<none>'}"
    )

    return settings
