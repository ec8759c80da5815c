"""Settings loaded from the environment, .env files and TOML files."""

import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from httptap.core.errors import ConfigurationError
from httptap.core.logging import get_logger
from httptap.observer.filters import DEFAULT_IGNORE_PATTERNS


logger = get_logger(__name__)

__all__ = ["TapSettings", "load_settings"]


def _default_ignore_patterns() -> list[str]:
    return [p.pattern for p in DEFAULT_IGNORE_PATTERNS]


class TapSettings(BaseSettings):
    """
    HTTP tracing settings.

    Read once when tracing is attached; changes afterwards have no effect.
    Environment variables use the ``HTTPTAP_`` prefix, for example
    ``HTTPTAP_LOG_RESPONSE_BODY=false``.
    """

    model_config = SettingsConfigDict(
        env_prefix="HTTPTAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_response_body: bool = Field(
        default=True,
        description="Trace the response body (truncated) after each request",
    )

    ignore_patterns: list[str] = Field(
        default_factory=_default_ignore_patterns,
        description="Regular expressions of URLs that are never traced",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    json_logs: bool = Field(
        default=False,
        description="Render log records as JSON instead of console output",
    )

    @field_validator("ignore_patterns")
    @classmethod
    def validate_ignore_patterns(cls, v: list[str]) -> list[str]:
        """Reject patterns that are not valid regular expressions."""
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid ignore pattern {pattern!r}: {e}") from e
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return level


def _load_toml(config_path: Path) -> dict[str, Any]:
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

    section = data.get("httptap", {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[httptap] in {config_path} must be a table")
    return section


def load_settings(config_path: Path | None = None, **overrides: Any) -> TapSettings:
    """Load settings, optionally from the ``[httptap]`` table of a TOML file.

    Environment variables take precedence over values from the file, and
    explicit keyword overrides take precedence over both.

    Raises:
        ConfigurationError: If the file cannot be read or values are invalid
    """
    file_values: dict[str, Any] = {}
    if config_path is not None:
        file_values = _load_toml(config_path)
        logger.debug("config_file_loaded", path=str(config_path))

    try:
        env_settings = TapSettings()
        values = {
            **file_values,
            **env_settings.model_dump(exclude_unset=True),
            **overrides,
        }
        return TapSettings.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid httptap settings: {e}") from e
