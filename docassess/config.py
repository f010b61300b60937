"""Application configuration via Pydantic Settings.

All configuration is driven by environment variables prefixed with
``DOCASSESS_``.  Every field has a working default so the pipeline can be
constructed in development without any environment at all.

Usage::

    from docassess.config import get_settings

    settings = get_settings()
    print(settings.clamav_host)

The ``get_settings`` function is cached with ``functools.lru_cache``. To override
settings in tests, construct ``Settings(...)`` directly or clear the cache with
``get_settings.cache_clear()`` after changing the environment.
"""
from __future__ import annotations

import functools
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docassess settings.

    Environment variables are read case-insensitively. A ``.env`` file in the
    working directory is loaded automatically when present.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCASSESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ClamAV
    clamav_host: str = Field(
        default="clamav",
        description="Hostname of the clamd daemon (Docker Compose service name by default)",
    )
    clamav_port: int = Field(default=3310, ge=1, le=65535)
    clamav_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Socket timeout in seconds for clamd connections",
    )

    # Extraction
    extractor_max_workers: int = Field(
        default=4,
        ge=1,
        description="Thread pool size for CPU-bound document extraction",
    )
    max_document_bytes: int = Field(
        default=50 * 1024 * 1024,
        ge=1,
        description="Documents larger than this are rejected before scanning",
    )

    # Sensitive-data detection
    custom_patterns_path: str | None = Field(
        default=None,
        description="JSON file with extra sensitive-data patterns merged into the built-ins",
    )
    redact_sensitive_data: bool = Field(
        default=True,
        description="Produce redacted text for gap analysis and redlining",
    )

    # Framework mapping
    default_institution_type: str = Field(
        default="K12",
        min_length=1,
        description="Institution type passed to the framework mapper when the context has none",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=False,
        description="Emit one JSON object per log line instead of plain text",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {v!r}")
        return level


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    The first call reads environment variables (and ``.env``). Subsequent calls
    return the cached instance. Clear the cache with ``get_settings.cache_clear()``
    between tests.
    """
    return Settings()
