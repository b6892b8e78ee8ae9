"""Tests for prompt access decisions."""

from __future__ import annotations

import itertools
import uuid

import pytest

from promptbank.core.authz import (
    CollaboratorGrant,
    Principal,
    PromptAccess,
    can_create,
    can_delete,
    can_edit,
    can_manage_categories,
    can_manage_users,
    can_view,
)
from promptbank.models.prompt import PromptVisibility
from promptbank.models.user import UserRole

ROLES = list(UserRole)
RELATIONS = ["owner", "collaborator", "stranger"]
VISIBILITIES = list(PromptVisibility)


def _scenario(role: UserRole, relation: str, visibility: PromptVisibility) -> tuple[Principal, PromptAccess]:
    actor = Principal(id=uuid.uuid4(), role=role, email="actor@example.com")
    owner_id = actor.id if relation == "owner" else uuid.uuid4()
    collaborators = (CollaboratorGrant(actor.id),) if relation == "collaborator" else ()
    return actor, PromptAccess(owner_id=owner_id, visibility=visibility, collaborators=collaborators)


def _expected(role: UserRole, relation: str, visibility: PromptVisibility) -> tuple[bool, bool, bool]:
    admin = role == UserRole.ADMIN
    owner = relation == "owner"
    collaborator = relation == "collaborator"
    view = admin or owner or collaborator or visibility == PromptVisibility.TEAM
    edit = admin or owner or collaborator
    delete = admin or owner
    return view, edit, delete


@pytest.mark.unit
class TestPromptAccessMatrix:
    @pytest.mark.parametrize(
        ("role", "relation", "visibility"),
        list(itertools.product(ROLES, RELATIONS, VISIBILITIES)),
    )
    def test_full_cross_product(
        self, role: UserRole, relation: str, visibility: PromptVisibility
    ) -> None:
        actor, access = _scenario(role, relation, visibility)
        assert (
            can_view(actor, access),
            can_edit(actor, access),
            can_delete(actor, access),
        ) == _expected(role, relation, visibility)

    def test_collaborator_can_edit_but_never_delete(self) -> None:
        actor, access = _scenario(UserRole.VIEWER, "collaborator", PromptVisibility.PRIVATE)
        assert can_edit(actor, access)
        assert not can_delete(actor, access)

    def test_orphaned_prompt_only_visible_to_admin_when_private(self) -> None:
        access = PromptAccess(owner_id=None, visibility=PromptVisibility.PRIVATE)
        admin = Principal(id=uuid.uuid4(), role=UserRole.ADMIN, email="a@example.com")
        editor = Principal(id=uuid.uuid4(), role=UserRole.EDITOR, email="e@example.com")
        assert can_view(admin, access)
        assert not can_view(editor, access)
        assert not can_edit(editor, access)

    def test_access_of_copies_collaborators(self) -> None:
        class _Row:
            def __init__(self, user_id: uuid.UUID) -> None:
                self.user_id = user_id
                self.role = CollaboratorGrant(user_id).role

        user_id = uuid.uuid4()
        access = PromptAccess.of(uuid.uuid4(), PromptVisibility.PRIVATE, [_Row(user_id)])
        assert access.collaborators == (CollaboratorGrant(user_id),)


@pytest.mark.unit
class TestRoleCapabilities:
    @pytest.mark.parametrize(
        ("role", "create", "categories", "users"),
        [
            (UserRole.ADMIN, True, True, True),
            (UserRole.EDITOR, True, True, False),
            (UserRole.VIEWER, False, False, False),
        ],
    )
    def test_capabilities(self, role: UserRole, create: bool, categories: bool, users: bool) -> None:
        assert can_create(role) is create
        assert can_manage_categories(role) is categories
        assert can_manage_users(role) is users
