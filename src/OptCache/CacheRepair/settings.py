"""Configuration models for cache repair, with ``OPTCACHE_*`` environment overrides.

Example:
    >>> settings = load_settings(cache_dir="/data/app/code_cache/secondary-dexes")
    >>> settings.optimized_suffix
    '.dex'

Nested logging options use a double underscore in environment variables,
e.g. ``OPTCACHE_LOGGING__LEVEL=DEBUG``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .diagnostics import HEADER_SIZE, normalize_digest_algorithm
from .errors import ConfigurationError
from .paths import OPTIMIZED_SUFFIX

__all__ = ["LoggingConfiguration", "CacheRepairSettings", "load_settings"]


class LoggingConfiguration(BaseModel):
    """Logging-related configuration for cache repair."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    json_logs: bool = Field(default=False, description="Emit JSON lines instead of plain text")
    log_dir: Optional[Path] = Field(
        default=None, description="Directory for rotated JSON log files; disabled when unset"
    )
    max_log_size_mb: int = Field(default=10, gt=0, description="Maximum size of rotated log files")
    backup_count: int = Field(default=3, ge=0, description="Rotated log files to keep")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class CacheRepairSettings(BaseSettings):
    """Settings shared by the validator, sweeper and CLI."""

    cache_dir: Optional[Path] = Field(
        default=None, description="Directory holding archives and their optimized artifacts"
    )
    optimized_suffix: str = Field(default=OPTIMIZED_SUFFIX, description="Optimized-artifact suffix")
    archive_suffixes: List[str] = Field(
        default_factory=lambda: [".zip"],
        description="File-name suffixes that identify candidate archives during a sweep",
    )
    header_size: int = Field(default=HEADER_SIZE, ge=0, description="Header bytes excluded from digests")
    digest_algorithm: str = Field(default="md5", description="Digest used for diagnostic signatures")
    load_flags: int = Field(default=0, ge=0, description="Flags passed through to the loader")
    loader: str = Field(
        default="default",
        description="Loader name, 'module:attr' import path, or optcache.loader entry point",
    )
    purge_archives: bool = Field(
        default=False, description="Also delete source archives whose artifact is invalid"
    )
    dry_run: bool = Field(default=False, description="Report corrupt artifacts without deleting")
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    model_config = SettingsConfigDict(
        env_prefix="OPTCACHE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("optimized_suffix")
    @classmethod
    def validate_suffix(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError("optimized_suffix must start with '.' and name an extension")
        return value

    @field_validator("archive_suffixes")
    @classmethod
    def validate_archive_suffixes(cls, value: List[str]) -> List[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        if not cleaned:
            raise ValueError("archive_suffixes must name at least one suffix")
        return cleaned

    @field_validator("digest_algorithm")
    @classmethod
    def validate_digest_algorithm(cls, value: str) -> str:
        try:
            return normalize_digest_algorithm(value)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc


def load_settings(**overrides: Any) -> CacheRepairSettings:
    """Build settings from the environment, applying ``overrides`` on top.

    ``None`` overrides are ignored so CLI options left unset fall through to
    the environment and defaults.

    Raises:
        ConfigurationError: If the resulting settings fail validation.
    """

    provided = {key: value for key, value in overrides.items() if value is not None}
    try:
        return CacheRepairSettings(**provided)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid cache repair settings: {exc}") from exc
