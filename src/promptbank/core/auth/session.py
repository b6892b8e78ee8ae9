"""Signed session tokens carrying the principal, with sliding renewal."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass

from promptbank.common.crypto import load_session, sign_session
from promptbank.config import AuthSettings
from promptbank.core.authz import Principal
from promptbank.models.user import UserRole


@dataclass
class ResolvedSession:
    principal: Principal
    renewed_token: str | None = None


def issue_session(principal: Principal, settings: AuthSettings, now: int | None = None) -> str:
    payload = {
        "id": str(principal.id),
        "role": principal.role.value,
        "email": principal.email,
        "name": principal.name,
    }
    return sign_session(payload, settings.secret_key, issued_at=now)


def resolve_session(
    token: str | None, settings: AuthSettings, now: int | None = None
) -> ResolvedSession | None:
    """
    Verify a session token.

    Tokens older than ``session_update_age_seconds`` are re-issued so an active
    user keeps a valid session; tokens past ``session_max_age_seconds`` are
    rejected.
    """
    if not token:
        return None

    now = int(time.time()) if now is None else now
    loaded = load_session(token, settings.secret_key, settings.session_max_age_seconds, now=now)
    if loaded is None:
        return None
    payload, issued_at = loaded

    try:
        principal = Principal(
            id=uuid.UUID(str(payload["id"])),
            role=UserRole(payload["role"]),
            email=str(payload["email"]),
            name=payload.get("name"),
        )
    except (KeyError, ValueError):
        return None

    renewed = None
    if now - issued_at >= settings.session_update_age_seconds:
        renewed = issue_session(principal, settings, now=now)
    return ResolvedSession(principal=principal, renewed_token=renewed)
