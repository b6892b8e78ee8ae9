"""User administration (ADMIN only)."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Form
from fastapi.responses import RedirectResponse

from promptbank.api.deps import CurrentUser, Users
from promptbank.common.errors import with_query
from promptbank.schemas.common import parse_command
from promptbank.schemas.users import (
    CreateUserCommand,
    ResetPasswordCommand,
    UpdateUserRoleCommand,
    UserListResponse,
)

router = APIRouter()

USERS_PATH = "/users"

STATUS_MESSAGES = {
    "created": "User created.",
    "updated": "User role updated.",
    "password-reset": "Password reset.",
    "unlocked": "User unlocked.",
    "deleted": "User deleted.",
}


def _done(status: str) -> RedirectResponse:
    return RedirectResponse(with_query(USERS_PATH, status=status), status_code=303)


@router.get("", response_model=UserListResponse, summary="List users")
async def list_users(
    user: CurrentUser,
    users: Users,
    status: str | None = None,
    error: str | None = None,
) -> UserListResponse:
    rows = await users.list_users(user)
    return UserListResponse(
        users=rows,
        total=len(rows),
        message=STATUS_MESSAGES.get(status or ""),
        error=error,
    )


@router.post("", summary="Create user")
async def create_user(
    user: CurrentUser,
    users: Users,
    name: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    role: Annotated[str, Form()] = "VIEWER",
    password: Annotated[str, Form()] = "",
) -> RedirectResponse:
    users.authorize(user)
    cmd = parse_command(
        CreateUserCommand,
        {"name": name, "email": email, "role": role, "password": password},
        redirect_to=USERS_PATH,
        fallback_message="Invalid user data.",
    )
    await users.create(user, cmd)
    return _done("created")


@router.post("/{user_id}/role", summary="Change a user's role")
async def update_role(
    user_id: uuid.UUID,
    user: CurrentUser,
    users: Users,
    role: Annotated[str, Form()] = "",
) -> RedirectResponse:
    users.authorize(user)
    cmd = parse_command(
        UpdateUserRoleCommand,
        {"role": role},
        redirect_to=USERS_PATH,
        fallback_message="Invalid role update request.",
    )
    await users.update_role(user, user_id, cmd)
    return _done("updated")


@router.post("/{user_id}/password", summary="Reset a user's password")
async def reset_password(
    user_id: uuid.UUID,
    user: CurrentUser,
    users: Users,
    password: Annotated[str, Form()] = "",
) -> RedirectResponse:
    users.authorize(user)
    cmd = parse_command(
        ResetPasswordCommand,
        {"password": password},
        redirect_to=USERS_PATH,
        fallback_message="Invalid password reset request.",
    )
    await users.reset_password(user, user_id, cmd)
    return _done("password-reset")


@router.post("/{user_id}/unlock", summary="Clear a user's login lock")
async def unlock_user(user_id: uuid.UUID, user: CurrentUser, users: Users) -> RedirectResponse:
    await users.unlock(user, user_id)
    return _done("unlocked")


@router.post("/{user_id}/delete", summary="Delete a user")
async def delete_user(user_id: uuid.UUID, user: CurrentUser, users: Users) -> RedirectResponse:
    await users.delete(user, user_id)
    return _done("deleted")
