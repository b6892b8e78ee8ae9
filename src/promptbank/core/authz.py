"""
Access decisions.

Pure functions over the acting principal and a prompt's ownership, visibility
and collaborator list. The same functions gate read surfaces and every
mutation on the server side.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from promptbank.models.prompt import CollaboratorRole, PromptVisibility
from promptbank.models.user import UserRole

EDIT_CAPABLE_ROLES = frozenset({CollaboratorRole.EDIT})


@dataclass(frozen=True)
class Principal:
    """The authenticated user behind a request."""

    id: uuid.UUID
    role: UserRole
    email: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class CollaboratorGrant:
    user_id: uuid.UUID
    role: CollaboratorRole = CollaboratorRole.EDIT


class _CollaboratorLike(Protocol):
    user_id: uuid.UUID
    role: CollaboratorRole


@dataclass(frozen=True)
class PromptAccess:
    """The subset of a prompt that access decisions depend on."""

    owner_id: uuid.UUID | None
    visibility: PromptVisibility
    collaborators: tuple[CollaboratorGrant, ...] = field(default_factory=tuple)

    @classmethod
    def of(
        cls,
        owner_id: uuid.UUID | None,
        visibility: PromptVisibility,
        collaborators: Iterable[_CollaboratorLike] = (),
    ) -> PromptAccess:
        return cls(
            owner_id=owner_id,
            visibility=visibility,
            collaborators=tuple(CollaboratorGrant(c.user_id, c.role) for c in collaborators),
        )


def _is_owner(principal: Principal, prompt: PromptAccess) -> bool:
    return prompt.owner_id is not None and prompt.owner_id == principal.id


def can_view(principal: Principal, prompt: PromptAccess) -> bool:
    if principal.is_admin or _is_owner(principal, prompt):
        return True
    if prompt.visibility == PromptVisibility.TEAM:
        return True
    return any(c.user_id == principal.id for c in prompt.collaborators)


def can_edit(principal: Principal, prompt: PromptAccess) -> bool:
    if principal.is_admin or _is_owner(principal, prompt):
        return True
    return any(
        c.user_id == principal.id and c.role in EDIT_CAPABLE_ROLES for c in prompt.collaborators
    )


def can_delete(principal: Principal, prompt: PromptAccess) -> bool:
    # Collaborators never delete, even with edit rights
    return principal.is_admin or _is_owner(principal, prompt)


def can_create(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.EDITOR)


def can_manage_categories(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.EDITOR)


def can_manage_users(role: UserRole) -> bool:
    return role == UserRole.ADMIN
