"""Centralized, typed configuration using pydantic-settings.

Provides a single ``Settings`` class backed by a ``.env`` file and
``RATECARD_``-prefixed environment variables, and a cached ``get_settings()``
accessor.

IMPORTANT: This module has ZERO imports from the ``ratecard`` package to
prevent circular imports.  Only stdlib, pydantic, pydantic_settings, and
structlog are used.
"""

from __future__ import annotations

import sys
from functools import lru_cache

import structlog
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()


class Settings(BaseSettings):
    """Engine settings loaded from environment variables and ``.env`` file."""

    model_config = SettingsConfigDict(
        env_prefix="RATECARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- General ---------------------------------------------------------------
    production: bool = False
    log_level: str = "INFO"
    default_currency: str = "USD"

    # -- Worksheet -------------------------------------------------------------
    worksheet_history_limit: int = Field(default=100, ge=1)
    edit_debounce_seconds: float = Field(default=0.3, ge=0)

    # -- Calculator ------------------------------------------------------------
    session_history_limit: int = Field(default=50, ge=1)
    bulk_calculation_limit: int = Field(default=50, ge=1)


@lru_cache
def get_settings() -> Settings:
    """Return a cached ``Settings`` instance.

    The ``@lru_cache`` decorator ensures environment variables are parsed
    exactly once.  Call ``get_settings.cache_clear()`` in tests to reset.

    Returns:
        The engine ``Settings``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        logger.error("settings_validation_failed", errors=exc.errors())
        sys.exit(1)
