"""Tests for settings resolution."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from promptbank.config import AuthSettings, LogLevel, Settings


@pytest.mark.unit
class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.auth.session_max_age_seconds == 8 * 60 * 60
        assert settings.auth.max_failed_logins == 5
        assert settings.auth.lock_minutes == 15
        assert settings.auth.secure_cookies is False

    def test_nested_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROMPTBANK_AUTH__LOCK_MINUTES", "30")
        monkeypatch.setenv("PROMPTBANK_LOG_LEVEL", "debug")
        settings = Settings()
        assert settings.auth.lock_minutes == 30
        assert settings.logging.level == LogLevel.DEBUG

    def test_flat_secret_alias(self) -> None:
        assert Settings(secret_key="flat").auth.secret_key == "flat"

    def test_production_requires_secret(self) -> None:
        with pytest.raises(ValueError, match="SECRET_KEY"):
            Settings(env="production")

    def test_production_marks_cookies_secure(self) -> None:
        settings = Settings(env="production", secret_key="a-real-secret")
        assert settings.auth.secure_cookies is True

    def test_renewal_window_inside_max_age(self) -> None:
        with pytest.raises(ValidationError):
            AuthSettings(session_max_age_seconds=60, session_update_age_seconds=60)
