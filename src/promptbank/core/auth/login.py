"""Credential checks with failed-attempt lockout."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.crypto import verify_password
from promptbank.config import AuthSettings
from promptbank.core.authz import Principal
from promptbank.models.base import ensure_utc, utcnow
from promptbank.models.user import User
from promptbank.services.audit import AuditService

logger = structlog.stdlib.get_logger()


class LoginOutcome(str, enum.Enum):
    SUCCESS = "success"
    INVALID_INPUT = "invalid_input"
    USER_NOT_FOUND = "user_not_found"
    BLOCKED = "blocked"
    FAILED = "failed"
    LOCKED = "locked"


@dataclass
class LoginResult:
    outcome: LoginOutcome
    principal: Principal | None = None

    @property
    def ok(self) -> bool:
        return self.principal is not None


class LoginService:
    """
    Lockout state machine.

    ``active`` -> wrong password increments ``failed_logins``; reaching the
    threshold moves the account to ``locked-until(now + lock)``. While locked,
    attempts are rejected without checking the password and without counting.
    A correct password while active resets the counter and the lock.
    """

    def __init__(self, db: AsyncSession, settings: AuthSettings, audit: AuditService) -> None:
        self.db = db
        self.settings = settings
        self.audit = audit

    async def authenticate(
        self, email: str, password: str, now: datetime | None = None
    ) -> LoginResult:
        now = now or utcnow()
        email = email.strip().lower()

        if not email or not password:
            return LoginResult(LoginOutcome.INVALID_INPUT)

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None:
            await self.audit.record(
                action="auth.login_failed",
                entity_type="auth",
                entity_id=email,
                metadata={"reason": "user_not_found"},
            )
            return LoginResult(LoginOutcome.USER_NOT_FOUND)

        locked_until = ensure_utc(user.locked_until)
        if locked_until is not None and locked_until > now:
            await self.audit.record(
                actor_id=user.id,
                action="auth.login_blocked",
                entity_type="auth",
                entity_id=user.id,
                metadata={"lockedUntil": locked_until.isoformat()},
            )
            return LoginResult(LoginOutcome.BLOCKED)

        if not verify_password(password, user.password_hash):
            return await self._register_failure(user, now)

        user.failed_logins = 0
        user.locked_until = None
        user.last_login_at = now
        await self.db.flush()

        await self.audit.record(
            actor_id=user.id,
            action="auth.login_success",
            entity_type="auth",
            entity_id=user.id,
        )
        await logger.ainfo("auth.login_success", user_id=str(user.id))
        return LoginResult(
            LoginOutcome.SUCCESS,
            Principal(id=user.id, role=user.role, email=user.email, name=user.name),
        )

    async def _register_failure(self, user: User, now: datetime) -> LoginResult:
        failed_logins = user.failed_logins + 1
        lock_account = failed_logins >= self.settings.max_failed_logins
        locked_until = now + timedelta(minutes=self.settings.lock_minutes) if lock_account else None

        user.failed_logins = failed_logins
        user.locked_until = locked_until
        await self.db.flush()

        await self.audit.record(
            actor_id=user.id,
            action="auth.locked" if lock_account else "auth.login_failed",
            entity_type="auth",
            entity_id=user.id,
            metadata={
                "failedLogins": failed_logins,
                "lockAccount": lock_account,
                "lockedUntil": locked_until.isoformat() if locked_until else None,
            },
        )
        if lock_account:
            await logger.awarning("auth.locked", user_id=str(user.id), locked_until=locked_until.isoformat())
            return LoginResult(LoginOutcome.LOCKED)
        return LoginResult(LoginOutcome.FAILED)


def clear_lockout(user: User) -> None:
    """Admin unlock and password reset clear the lock unconditionally."""
    user.failed_logins = 0
    user.locked_until = None
