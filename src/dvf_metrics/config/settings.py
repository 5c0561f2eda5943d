"""Configuration management for dvf-metrics."""

from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_BROADCAST_BUFFER_SIZE,
    DEFAULT_CSV_SEPARATOR,
    DEFAULT_HTTP_TIMEOUT_S,
    DEFAULT_URL_LAYOUT,
    DEFAULT_YEAR,
)
from ..utils.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Runtime configuration, read from the environment and a ``.env`` file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # Data source
    data_url: str = Field(..., alias="DATA_URL")
    start_year: int = Field(..., alias="START_YEAR")
    end_year: int = Field(..., alias="END_YEAR")
    csv_separator: str = Field(DEFAULT_CSV_SEPARATOR, alias="CSV_SEPARATOR")

    # Query policy: the dataset year used when a query names no year
    default_year: int = Field(DEFAULT_YEAR, alias="DEFAULT_YEAR")

    # Performance settings
    broadcast_buffer_size: int = Field(DEFAULT_BROADCAST_BUFFER_SIZE, alias="BROADCAST_BUFFER_SIZE")
    http_timeout_s: float = Field(DEFAULT_HTTP_TIMEOUT_S, alias="HTTP_TIMEOUT_S")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    @model_validator(mode="after")
    def _validate(self) -> "Settings":
        if self.start_year > self.end_year:
            raise ValueError("START_YEAR must not be after END_YEAR")
        if not self.csv_separator:
            raise ValueError("CSV_SEPARATOR must not be empty")
        if self.broadcast_buffer_size <= 0:
            raise ValueError("BROADCAST_BUFFER_SIZE must be positive")
        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown LOG_LEVEL: {self.log_level}")
        return self

    @property
    def years(self) -> range:
        return range(self.start_year, self.end_year + 1)

    def url_for_year(self, year: int) -> str:
        """Build the archive URL of one dataset year.

        ``DATA_URL`` may be a template with a ``{year}`` placeholder or the
        base of the public geo-DVF layout (``<base>/<year>/full.csv.gz``).
        """
        return url_for_year(self.data_url, year)


def url_for_year(url_template: str, year: int) -> str:
    if "{year}" in url_template:
        return url_template.format(year=year)
    return DEFAULT_URL_LAYOUT.format(base=url_template.rstrip("/"), year=year)


def load_settings(env_file: Optional[Union[str, Path]] = ".env", **overrides) -> Settings:
    """Load settings from the environment and an optional ``.env`` file.

    Args:
        env_file: dotenv file to read (``None`` reads the environment only)
        **overrides: explicit values, keyed by field name, taking precedence

    Returns:
        Validated settings

    Raises:
        ConfigurationError: If a required value is missing or invalid
    """
    try:
        return Settings(_env_file=env_file, **_by_alias(overrides))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e


def _by_alias(overrides: dict) -> dict:
    aliases = {name: field.alias for name, field in Settings.model_fields.items()}
    return {aliases.get(key, key): value for key, value in overrides.items()}
