"""Tests for session issue, verification and sliding renewal."""

from __future__ import annotations

import time
import uuid

import pytest

from promptbank.config import AuthSettings
from promptbank.core.auth.session import issue_session, resolve_session
from promptbank.core.authz import Principal
from promptbank.models.user import UserRole

SETTINGS = AuthSettings(secret_key="unit-secret")


def _principal() -> Principal:
    return Principal(id=uuid.uuid4(), role=UserRole.EDITOR, email="e@example.com", name="E")


@pytest.mark.unit
class TestSessions:
    def test_fresh_token_resolves_without_renewal(self) -> None:
        now = int(time.time())
        principal = _principal()
        token = issue_session(principal, SETTINGS, now=now)

        resolved = resolve_session(token, SETTINGS, now=now + 10)
        assert resolved is not None
        assert resolved.principal == principal
        assert resolved.renewed_token is None

    def test_renewed_after_update_age(self) -> None:
        now = int(time.time()) - SETTINGS.session_update_age_seconds - 5
        token = issue_session(_principal(), SETTINGS, now=now)

        resolved = resolve_session(
            token, SETTINGS, now=now + SETTINGS.session_update_age_seconds
        )
        assert resolved is not None
        assert resolved.renewed_token is not None
        assert resolved.renewed_token != token

    def test_expired_after_max_age(self) -> None:
        now = int(time.time()) - SETTINGS.session_max_age_seconds - 10
        token = issue_session(_principal(), SETTINGS, now=now)
        assert resolve_session(token, SETTINGS, now=now + SETTINGS.session_max_age_seconds + 1) is None

    def test_missing_token(self) -> None:
        assert resolve_session(None, SETTINGS) is None
        assert resolve_session("", SETTINGS) is None

    def test_token_from_another_secret_rejected(self) -> None:
        token = issue_session(_principal(), AuthSettings(secret_key="someone-else"))
        assert resolve_session(token, SETTINGS) is None
