"""Tests for centralized Settings and the get_settings cache.

Covers: defaults, env-override, bounds validation, and lru_cache behavior.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ratecard.config import Settings, get_settings

# ---------------------------------------------------------------------------
# Settings defaults
# ---------------------------------------------------------------------------


class TestSettingsDefaults:
    """Verify that Settings fields have the expected default values."""

    def test_settings_defaults(self) -> None:
        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.production is False
        assert s.log_level == "INFO"
        assert s.default_currency == "USD"
        assert s.worksheet_history_limit == 100
        assert s.edit_debounce_seconds == 0.3
        assert s.session_history_limit == 50
        assert s.bulk_calculation_limit == 50

    def test_settings_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RATECARD_PRODUCTION", "true")
        monkeypatch.setenv("RATECARD_WORKSHEET_HISTORY_LIMIT", "25")
        monkeypatch.setenv("RATECARD_EDIT_DEBOUNCE_SECONDS", "0.5")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.production is True
        assert s.worksheet_history_limit == 25
        assert s.edit_debounce_seconds == 0.5

    def test_unprefixed_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PRODUCTION", "true")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.production is False

    @pytest.mark.parametrize(
        "field",
        ["worksheet_history_limit", "session_history_limit", "bulk_calculation_limit"],
        ids=["worksheet_history", "session_history", "bulk_limit"],
    )
    def test_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})  # type: ignore[call-arg]


# ---------------------------------------------------------------------------
# get_settings cache
# ---------------------------------------------------------------------------


class TestGetSettings:
    """Verify lru_cache and failure handling on get_settings."""

    def test_get_settings_cached(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Calling get_settings() twice returns the exact same object."""
        monkeypatch.delenv("RATECARD_PRODUCTION", raising=False)

        first = get_settings()
        second = get_settings()

        assert first is second

    def test_invalid_settings_exit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RATECARD_SESSION_HISTORY_LIMIT", "zero")

        with pytest.raises(SystemExit) as exc_info:
            get_settings()

        assert exc_info.value.code == 1
