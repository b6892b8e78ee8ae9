"""User administration commands and views."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator
from pydantic_core import PydanticCustomError

from promptbank.common.crypto import PASSWORD_POLICY_MESSAGE, is_strong_password
from promptbank.models.user import UserRole
from promptbank.schemas.common import PageMessage


def _strong_password(value: Any) -> str:
    value = str(value or "")
    if not is_strong_password(value):
        raise PydanticCustomError("weak_password", PASSWORD_POLICY_MESSAGE)
    return value


class CreateUserCommand(BaseModel):
    name: str = ""
    email: str
    role: UserRole = UserRole.VIEWER
    password: str

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return str(value or "").strip()[:255]

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, value: Any) -> str:
        value = str(value or "").strip().lower()
        if not value or len(value) > 254 or "@" not in value:
            raise PydanticCustomError("invalid_email", "Provide a valid email.")
        return value

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value: Any) -> UserRole:
        # Unknown roles fall back to the least privileged one
        try:
            return UserRole(str(value or ""))
        except ValueError:
            return UserRole.VIEWER

    @field_validator("password", mode="before")
    @classmethod
    def _password(cls, value: Any) -> str:
        return _strong_password(value)


class UpdateUserRoleCommand(BaseModel):
    role: UserRole

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value: Any) -> UserRole:
        try:
            return UserRole(str(value or ""))
        except ValueError:
            raise PydanticCustomError("invalid_role", "Invalid role update request.") from None


class ResetPasswordCommand(BaseModel):
    password: str

    @field_validator("password", mode="before")
    @classmethod
    def _password(cls, value: Any) -> str:
        return _strong_password(value)


class UserInfo(BaseModel):
    id: uuid.UUID
    email: str
    name: str | None
    role: UserRole
    failed_logins: int
    locked_until: datetime | None
    is_locked: bool
    last_login_at: datetime | None
    owned_prompt_count: int
    collaboration_count: int
    created_at: datetime


class UserListResponse(PageMessage):
    users: list[UserInfo]
    total: int
