"""Tests for user administration and the last-admin rule."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.crypto import verify_password
from promptbank.common.errors import (
    NotFoundError,
    OperationFailed,
    PermissionDenied,
    ValidationFailed,
)
from promptbank.config import AuthSettings
from promptbank.core.authz import Principal
from promptbank.models import AuditLog, Prompt, User, UserRole
from promptbank.models.base import utcnow
from promptbank.schemas.users import CreateUserCommand, ResetPasswordCommand, UpdateUserRoleCommand
from promptbank.services.audit import AuditService
from promptbank.services.prompt_service import PromptService
from promptbank.services.user_service import LAST_ADMIN_MESSAGE, UserService

from tests.factories import create_test_category, create_test_user, principal_of, prompt_command

NEW_PASSWORD = "N3w-Passw0rd!!"


@pytest.fixture
async def staff(db_session: AsyncSession) -> dict[str, User]:
    users = {
        "admin": create_test_user("admin@example.com", UserRole.ADMIN),
        "editor": create_test_user("editor@example.com", UserRole.EDITOR),
        "viewer": create_test_user("viewer@example.com", UserRole.VIEWER),
    }
    db_session.add_all(users.values())
    await db_session.flush()
    return users


def _stale_admin(user: User) -> Principal:
    return Principal(id=user.id, role=UserRole.ADMIN, email=user.email, name=user.name)


@pytest.fixture
def service(db_session: AsyncSession) -> UserService:
    return UserService(db_session, AuthSettings(password_hash_iterations=1_000), AuditService(db_session))


@pytest.mark.unit
class TestUserAdministration:
    async def test_only_admins(self, service: UserService, staff: dict) -> None:
        with pytest.raises(PermissionDenied) as exc:
            await service.list_users(principal_of(staff["editor"]))
        assert exc.value.message == "Only admins can manage users."

    async def test_create(self, service: UserService, staff: dict, db_session: AsyncSession) -> None:
        cmd = CreateUserCommand(name="New", email="New@Example.com", role="EDITOR", password=NEW_PASSWORD)
        user = await service.create(principal_of(staff["admin"]), cmd)

        assert user.email == "new@example.com"
        assert user.role == UserRole.EDITOR
        assert verify_password(NEW_PASSWORD, user.password_hash)
        entry = (await db_session.execute(select(AuditLog))).scalar_one()
        assert entry.action == "user.create"
        assert '"role":"EDITOR"' in entry.metadata_json

    async def test_duplicate_email(self, service: UserService, staff: dict) -> None:
        cmd = CreateUserCommand(email="editor@example.com", password=NEW_PASSWORD)
        with pytest.raises(OperationFailed) as exc:
            await service.create(principal_of(staff["admin"]), cmd)
        assert exc.value.message == "Unable to create user. Email may already exist."

    async def test_list_counts_and_lock_state(
        self, service: UserService, staff: dict, db_session: AsyncSession
    ) -> None:
        category = create_test_category()
        db_session.add(category)
        await db_session.flush()
        prompts = PromptService(db_session, AuditService(db_session))
        await prompts.create(
            principal_of(staff["editor"]),
            prompt_command(category.id, collaborator_emails_csv="viewer@example.com"),
        )
        staff["viewer"].failed_logins = 5
        staff["viewer"].locked_until = utcnow() + timedelta(minutes=5)

        rows = {u.email: u for u in await service.list_users(principal_of(staff["admin"]))}

        assert [u.role for u in rows.values()] == [UserRole.ADMIN, UserRole.EDITOR, UserRole.VIEWER]
        assert rows["editor@example.com"].owned_prompt_count == 1
        assert rows["viewer@example.com"].collaboration_count == 1
        assert rows["viewer@example.com"].is_locked
        assert not rows["admin@example.com"].is_locked

    async def test_role_change(self, service: UserService, staff: dict, db_session: AsyncSession) -> None:
        target = staff["viewer"]
        await service.update_role(
            principal_of(staff["admin"]), target.id, UpdateUserRoleCommand(role="EDITOR")
        )
        assert target.role == UserRole.EDITOR
        entry = (await db_session.execute(select(AuditLog))).scalar_one()
        assert entry.action == "user.role_update"
        assert '"nextRole":"EDITOR","previousRole":"VIEWER"' in entry.metadata_json

    async def test_cannot_change_own_role(self, service: UserService, staff: dict) -> None:
        admin = staff["admin"]
        with pytest.raises(ValidationFailed) as exc:
            await service.update_role(principal_of(admin), admin.id, UpdateUserRoleCommand(role="VIEWER"))
        assert exc.value.message == "You cannot change your own role."
        assert admin.role == UserRole.ADMIN

    async def test_cannot_delete_self(self, service: UserService, staff: dict) -> None:
        admin = staff["admin"]
        with pytest.raises(ValidationFailed) as exc:
            await service.delete(principal_of(admin), admin.id)
        assert exc.value.message == "You cannot delete your own account."

    async def test_last_admin_cannot_be_demoted(
        self, service: UserService, staff: dict, db_session: AsyncSession
    ) -> None:
        second = create_test_user("second@example.com", UserRole.ADMIN)
        db_session.add(second)
        await db_session.flush()

        await service.update_role(
            principal_of(second), staff["admin"].id, UpdateUserRoleCommand(role="EDITOR")
        )

        # Session role outlives the demotion until the token expires
        stale = _stale_admin(staff["admin"])
        with pytest.raises(ValidationFailed) as exc:
            await service.update_role(stale, second.id, UpdateUserRoleCommand(role="VIEWER"))
        assert exc.value.message == LAST_ADMIN_MESSAGE
        assert second.role == UserRole.ADMIN

    async def test_last_admin_cannot_be_deleted(
        self, service: UserService, staff: dict, db_session: AsyncSession
    ) -> None:
        with pytest.raises(ValidationFailed) as exc:
            await service.delete(_stale_admin(staff["editor"]), staff["admin"].id)
        assert exc.value.message == LAST_ADMIN_MESSAGE
        count = await db_session.execute(select(func.count(User.id)).where(User.role == UserRole.ADMIN))
        assert count.scalar_one() == 1

    async def test_delete_keeps_prompts_ownerless(
        self, service: UserService, staff: dict, db_session: AsyncSession
    ) -> None:
        category = create_test_category()
        db_session.add(category)
        await db_session.flush()
        prompts = PromptService(db_session, AuditService(db_session))
        created = await prompts.create(principal_of(staff["editor"]), prompt_command(category.id))
        prompt_id = created.prompt.id

        await service.delete(principal_of(staff["admin"]), staff["editor"].id)

        db_session.expire_all()
        prompt = await db_session.get(Prompt, prompt_id)
        assert prompt is not None
        assert prompt.owner_id is None

    async def test_reset_password_clears_lock(self, service: UserService, staff: dict) -> None:
        viewer = staff["viewer"]
        viewer.failed_logins = 5
        viewer.locked_until = utcnow() + timedelta(minutes=10)

        await service.reset_password(
            principal_of(staff["admin"]), viewer.id, ResetPasswordCommand(password=NEW_PASSWORD)
        )

        assert verify_password(NEW_PASSWORD, viewer.password_hash)
        assert viewer.failed_logins == 0
        assert viewer.locked_until is None

    async def test_admin_may_reset_own_password(self, service: UserService, staff: dict) -> None:
        admin = staff["admin"]
        await service.reset_password(principal_of(admin), admin.id, ResetPasswordCommand(password=NEW_PASSWORD))
        assert verify_password(NEW_PASSWORD, admin.password_hash)

    async def test_unlock(self, service: UserService, staff: dict, db_session: AsyncSession) -> None:
        viewer = staff["viewer"]
        viewer.failed_logins = 5
        viewer.locked_until = utcnow() + timedelta(minutes=10)

        await service.unlock(principal_of(staff["admin"]), viewer.id)

        assert viewer.failed_logins == 0
        assert viewer.locked_until is None
        entry = (await db_session.execute(select(AuditLog))).scalar_one()
        assert entry.action == "user.unlock"

    async def test_missing_user(self, service: UserService, staff: dict) -> None:
        with pytest.raises(NotFoundError) as exc:
            await service.unlock(principal_of(staff["admin"]), uuid.uuid4())
        assert exc.value.redirect_to == "/users"
