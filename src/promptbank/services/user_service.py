"""User account administration (ADMIN only)."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.crypto import hash_password
from promptbank.common.errors import NotFoundError, PermissionDenied, ValidationFailed
from promptbank.config import AuthSettings
from promptbank.core.auth.login import clear_lockout
from promptbank.core.authz import Principal, can_manage_users
from promptbank.models.base import ensure_utc, utcnow
from promptbank.models.prompt import Prompt, PromptCollaborator
from promptbank.models.user import User, UserRole
from promptbank.schemas.users import (
    CreateUserCommand,
    ResetPasswordCommand,
    UpdateUserRoleCommand,
    UserInfo,
)
from promptbank.services.audit import AuditService
from promptbank.services.base import guarded

logger = structlog.stdlib.get_logger()

USERS_PATH = "/users"
LAST_ADMIN_MESSAGE = "At least one admin user must remain."


class UserService:
    def __init__(self, db: AsyncSession, settings: AuthSettings, audit: AuditService) -> None:
        self.db = db
        self.settings = settings
        self.audit = audit

    def authorize(self, principal: Principal) -> None:
        if not can_manage_users(principal.role):
            raise PermissionDenied("Only admins can manage users.")

    async def list_users(self, principal: Principal) -> list[UserInfo]:
        self.authorize(principal)

        owned = (
            select(Prompt.owner_id, func.count(Prompt.id).label("n"))
            .group_by(Prompt.owner_id)
            .subquery()
        )
        collaborations = (
            select(PromptCollaborator.user_id, func.count(PromptCollaborator.id).label("n"))
            .group_by(PromptCollaborator.user_id)
            .subquery()
        )
        result = await self.db.execute(
            select(User, owned.c.n, collaborations.c.n)
            .outerjoin(owned, owned.c.owner_id == User.id)
            .outerjoin(collaborations, collaborations.c.user_id == User.id)
            .order_by(User.role, User.created_at)
        )
        return [
            self._to_info(user, owned_count or 0, collab_count or 0)
            for user, owned_count, collab_count in result.all()
        ]

    async def create(self, principal: Principal, cmd: CreateUserCommand) -> User:
        self.authorize(principal)

        async with guarded(
            "Unable to create user. Email may already exist.",
            redirect_to=USERS_PATH,
            operation="user.create",
        ):
            user = User(
                name=cmd.name or None,
                email=cmd.email,
                role=cmd.role,
                password_hash=hash_password(cmd.password, self.settings.password_hash_iterations),
            )
            self.db.add(user)
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="user.create",
                entity_type="user",
                entity_id=user.id,
                metadata={"role": user.role.value, "email": user.email},
            )

        await logger.ainfo("user.created", user_id=str(user.id), role=user.role.value)
        return user

    async def update_role(
        self, principal: Principal, user_id: uuid.UUID, cmd: UpdateUserRoleCommand
    ) -> User:
        self.authorize(principal)
        if user_id == principal.id:
            raise ValidationFailed("You cannot change your own role.", redirect_to=USERS_PATH)

        target = await self._get(user_id)
        previous_role = target.role
        if previous_role == UserRole.ADMIN and cmd.role != UserRole.ADMIN:
            await self._assert_admin_remains(excluding=user_id)

        async with guarded(
            "Unable to update user role.",
            redirect_to=USERS_PATH,
            operation="user.role_update",
        ):
            target.role = cmd.role
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="user.role_update",
                entity_type="user",
                entity_id=user_id,
                metadata={
                    "previousRole": previous_role.value,
                    "nextRole": cmd.role.value,
                    "email": target.email,
                },
            )

        await logger.ainfo(
            "user.role_updated",
            user_id=str(user_id),
            previous_role=previous_role.value,
            next_role=cmd.role.value,
        )
        return target

    async def reset_password(
        self, principal: Principal, user_id: uuid.UUID, cmd: ResetPasswordCommand
    ) -> None:
        # Admins may reset their own password through this path
        self.authorize(principal)
        target = await self._get(user_id)

        async with guarded(
            "Unable to reset password.",
            redirect_to=USERS_PATH,
            operation="user.password_reset",
        ):
            target.password_hash = hash_password(cmd.password, self.settings.password_hash_iterations)
            clear_lockout(target)
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="user.password_reset",
                entity_type="user",
                entity_id=user_id,
            )

        await logger.ainfo("user.password_reset", user_id=str(user_id))

    async def unlock(self, principal: Principal, user_id: uuid.UUID) -> None:
        self.authorize(principal)
        target = await self._get(user_id)

        async with guarded(
            "Unable to unlock user.",
            redirect_to=USERS_PATH,
            operation="user.unlock",
        ):
            clear_lockout(target)
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="user.unlock",
                entity_type="user",
                entity_id=user_id,
            )

        await logger.ainfo("user.unlocked", user_id=str(user_id))

    async def delete(self, principal: Principal, user_id: uuid.UUID) -> None:
        self.authorize(principal)
        if user_id == principal.id:
            raise ValidationFailed("You cannot delete your own account.", redirect_to=USERS_PATH)

        target = await self._get(user_id)
        if target.role == UserRole.ADMIN:
            await self._assert_admin_remains(excluding=user_id)

        email, role = target.email, target.role
        async with guarded(
            "Unable to delete user.",
            redirect_to=USERS_PATH,
            operation="user.delete",
        ):
            await self.db.delete(target)
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="user.delete",
                entity_type="user",
                entity_id=user_id,
                metadata={"email": email, "role": role.value},
            )

        await logger.ainfo("user.deleted", user_id=str(user_id))

    async def _get(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found.", redirect_to=USERS_PATH)
        return user

    async def _assert_admin_remains(self, excluding: uuid.UUID) -> None:
        result = await self.db.execute(
            select(func.count(User.id)).where(User.role == UserRole.ADMIN, User.id != excluding)
        )
        if result.scalar_one() < 1:
            raise ValidationFailed(LAST_ADMIN_MESSAGE, redirect_to=USERS_PATH)

    @staticmethod
    def _to_info(user: User, owned_count: int, collaboration_count: int) -> UserInfo:
        locked_until = ensure_utc(user.locked_until)
        return UserInfo(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            failed_logins=user.failed_logins,
            locked_until=locked_until,
            is_locked=locked_until is not None and locked_until > utcnow(),
            last_login_at=ensure_utc(user.last_login_at),
            owned_prompt_count=owned_count,
            collaboration_count=collaboration_count,
            created_at=user.created_at,
        )
