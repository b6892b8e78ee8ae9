"""Prompt CRUD, version history and bookmarks."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from promptbank.common.errors import IntegrityConflict, NotFoundError, PermissionDenied
from promptbank.common.text import parse_tags, tags_to_csv
from promptbank.core.authz import (
    Principal,
    PromptAccess,
    can_create,
    can_delete,
    can_edit,
    can_view,
)
from promptbank.models.category import Category
from promptbank.models.prompt import (
    CollaboratorRole,
    Prompt,
    PromptCollaborator,
    PromptStatus,
    PromptVisibility,
    SavedPrompt,
)
from promptbank.models.prompt_version import PromptVersion
from promptbank.models.tag import PromptTag, Tag
from promptbank.models.user import User
from promptbank.schemas.prompts import (
    DuplicatePromptCommand,
    PromptCommand,
    PromptFilters,
)
from promptbank.services.audit import AuditService
from promptbank.services.base import guarded

logger = structlog.stdlib.get_logger()

PROMPT_NOT_FOUND = "Prompt not found."


@dataclass
class PromptWriteResult:
    prompt: Prompt
    version: PromptVersion
    unknown_emails: list[str] = field(default_factory=list)


def access_of(prompt: Prompt) -> PromptAccess:
    return PromptAccess.of(prompt.owner_id, prompt.visibility, prompt.collaborators)


class PromptService:
    def __init__(self, db: AsyncSession, audit: AuditService) -> None:
        self.db = db
        self.audit = audit

    # Reads

    async def list_prompts(self, principal: Principal, filters: PromptFilters) -> list[Prompt]:
        stmt = select(Prompt).options(*self._full_load())

        if not principal.is_admin:
            stmt = stmt.where(
                or_(
                    Prompt.visibility == PromptVisibility.TEAM,
                    Prompt.owner_id == principal.id,
                    Prompt.collaborators.any(PromptCollaborator.user_id == principal.id),
                )
            )
        if filters.category:
            try:
                stmt = stmt.where(Prompt.category_id == uuid.UUID(filters.category))
            except ValueError:
                return []
        if filters.prompt_status:
            stmt = stmt.where(Prompt.status == filters.prompt_status)
        if filters.visibility:
            stmt = stmt.where(Prompt.visibility == filters.visibility)
        if filters.owned_by_me:
            stmt = stmt.where(Prompt.owner_id == principal.id)
        if filters.only_saved:
            stmt = stmt.where(Prompt.saved_by.any(SavedPrompt.user_id == principal.id))
        if filters.q:
            q = filters.q
            stmt = stmt.where(
                or_(
                    Prompt.title.icontains(q, autoescape=True),
                    Prompt.description.icontains(q, autoescape=True),
                    Prompt.content.icontains(q, autoescape=True),
                    Prompt.category.has(Category.name.icontains(q, autoescape=True)),
                    Prompt.tags.any(PromptTag.tag.has(Tag.name.icontains(q, autoescape=True))),
                )
            )

        stmt = stmt.order_by(Prompt.updated_at.desc(), Prompt.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def get_visible(self, principal: Principal, prompt_id: uuid.UUID) -> Prompt:
        prompt = await self._load(prompt_id)
        if prompt is None or not can_view(principal, access_of(prompt)):
            raise NotFoundError(PROMPT_NOT_FOUND)
        return prompt

    async def get_editable(
        self, principal: Principal, prompt_id: uuid.UUID, message: str
    ) -> Prompt:
        prompt = await self._load(prompt_id)
        if prompt is None or not can_edit(principal, access_of(prompt)):
            raise PermissionDenied(message)
        return prompt

    async def saved_ids(self, user_id: uuid.UUID, prompt_ids: Sequence[uuid.UUID]) -> set[uuid.UUID]:
        if not prompt_ids:
            return set()
        result = await self.db.execute(
            select(SavedPrompt.prompt_id).where(
                SavedPrompt.user_id == user_id, SavedPrompt.prompt_id.in_(prompt_ids)
            )
        )
        return set(result.scalars().all())

    async def latest_versions(self, prompt_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, PromptVersion]:
        if not prompt_ids:
            return {}
        latest = (
            select(PromptVersion.prompt_id, func.max(PromptVersion.version).label("max_v"))
            .where(PromptVersion.prompt_id.in_(prompt_ids))
            .group_by(PromptVersion.prompt_id)
            .subquery()
        )
        result = await self.db.execute(
            select(PromptVersion)
            .join(
                latest,
                (PromptVersion.prompt_id == latest.c.prompt_id)
                & (PromptVersion.version == latest.c.max_v),
            )
            .options(selectinload(PromptVersion.changed_by))
        )
        return {v.prompt_id: v for v in result.scalars().all()}

    async def versions(self, prompt_id: uuid.UUID) -> list[PromptVersion]:
        result = await self.db.execute(
            select(PromptVersion)
            .where(PromptVersion.prompt_id == prompt_id)
            .options(selectinload(PromptVersion.changed_by))
            .order_by(PromptVersion.version.desc())
        )
        return list(result.scalars().all())

    # Mutations

    def authorize_create(self, principal: Principal, message: str) -> None:
        if not can_create(principal.role):
            raise PermissionDenied(message)

    async def create(self, principal: Principal, cmd: PromptCommand) -> PromptWriteResult:
        self.authorize_create(principal, "You do not have permission to create prompts.")

        async with guarded(
            "Unable to create prompt. Please try again.",
            redirect_to="/prompts/new",
            operation="prompt.create",
        ):
            category_id = await self._assert_category_exists(cmd.category_uuid)

            prompt = Prompt(
                title=cmd.title,
                description=cmd.description or None,
                content=cmd.content,
                category_id=category_id,
                owner_id=principal.id,
                visibility=cmd.visibility,
                status=cmd.status,
                tags=[],
                collaborators=[],
            )
            self.db.add(prompt)
            await self.db.flush()

            await self._replace_tags(prompt, cmd.tags)
            unknown = await self._sync_collaborators(prompt, principal.id, cmd.collaborator_emails)
            version = await self._append_version(prompt, principal.id)
            if cmd.is_saved:
                await self._set_saved(prompt.id, principal.id, True)

            await self.audit.record(
                actor_id=principal.id,
                action="prompt.create",
                entity_type="prompt",
                entity_id=prompt.id,
                prompt_id=prompt.id,
                metadata={
                    "visibility": cmd.visibility.value,
                    "status": cmd.status.value,
                    "collaboratorCount": len(cmd.collaborator_emails),
                },
            )

        await logger.ainfo("prompt.created", prompt_id=str(prompt.id), actor_id=str(principal.id))
        return PromptWriteResult(prompt, version, unknown)

    async def update(
        self, principal: Principal, prompt_id: uuid.UUID, cmd: PromptCommand
    ) -> PromptWriteResult:
        prompt = await self.get_editable(
            principal, prompt_id, "You do not have permission to update this prompt."
        )
        owner_id = prompt.owner_id or principal.id

        async with guarded(
            "Unable to update prompt. Please try again.",
            redirect_to=f"/prompts/{prompt_id}/edit",
            operation="prompt.update",
        ):
            category_id = await self._assert_category_exists(cmd.category_uuid)

            prompt.title = cmd.title
            prompt.description = cmd.description or None
            prompt.content = cmd.content
            prompt.category_id = category_id
            prompt.visibility = cmd.visibility
            prompt.status = cmd.status
            await self.db.flush()

            await self._replace_tags(prompt, cmd.tags)
            unknown = await self._sync_collaborators(prompt, owner_id, cmd.collaborator_emails)
            version = await self._append_version(prompt, principal.id)
            await self._set_saved(prompt.id, principal.id, cmd.is_saved)

            await self.audit.record(
                actor_id=principal.id,
                action="prompt.update",
                entity_type="prompt",
                entity_id=prompt.id,
                prompt_id=prompt.id,
                metadata={
                    "visibility": cmd.visibility.value,
                    "status": cmd.status.value,
                    "collaboratorCount": len(cmd.collaborator_emails),
                },
            )

        await logger.ainfo(
            "prompt.updated",
            prompt_id=str(prompt.id),
            actor_id=str(principal.id),
            version=version.version,
        )
        return PromptWriteResult(prompt, version, unknown)

    async def delete(self, principal: Principal, prompt_id: uuid.UUID) -> None:
        prompt = await self._load(prompt_id)
        if prompt is None or not can_delete(principal, access_of(prompt)):
            raise PermissionDenied("You do not have permission to delete this prompt.")

        async with guarded(
            "Unable to delete prompt. It may no longer exist.",
            redirect_to="/",
            operation="prompt.delete",
        ):
            await self.db.delete(prompt)
            await self.db.flush()
            await self.audit.record(
                actor_id=principal.id,
                action="prompt.delete",
                entity_type="prompt",
                entity_id=prompt_id,
            )

        await logger.ainfo("prompt.deleted", prompt_id=str(prompt_id), actor_id=str(principal.id))

    async def duplicate(
        self, principal: Principal, prompt_id: uuid.UUID, cmd: DuplicatePromptCommand
    ) -> PromptWriteResult:
        self.authorize_create(principal, "You do not have permission to duplicate prompts.")

        source = await self._load(prompt_id)
        if source is None or not can_view(principal, access_of(source)):
            raise PermissionDenied("You do not have permission to duplicate this prompt.")

        async with guarded(
            "Unable to duplicate prompt. Please try again.",
            redirect_to="/",
            operation="prompt.duplicate",
        ):
            duplicated = Prompt(
                title=cmd.resolve_title(source.title),
                description=source.description,
                content=source.content,
                category_id=source.category_id,
                owner_id=principal.id,
                visibility=source.visibility,
                status=PromptStatus.DRAFT,
                tags=[],
                collaborators=[],
            )
            self.db.add(duplicated)
            await self.db.flush()

            await self._replace_tags(duplicated, source.tag_names)
            await self._set_saved(duplicated.id, principal.id, True)
            version = await self._append_version(duplicated, principal.id)

            await self.audit.record(
                actor_id=principal.id,
                action="prompt.duplicate",
                entity_type="prompt",
                entity_id=duplicated.id,
                prompt_id=duplicated.id,
                metadata={"sourcePromptId": str(source.id)},
            )

        await logger.ainfo(
            "prompt.duplicated",
            prompt_id=str(duplicated.id),
            source_prompt_id=str(source.id),
            actor_id=str(principal.id),
        )
        return PromptWriteResult(duplicated, version)

    async def restore_version(
        self, principal: Principal, prompt_id: uuid.UUID, version_id: uuid.UUID
    ) -> PromptWriteResult:
        snapshot = await self.db.get(PromptVersion, version_id)
        if snapshot is None or snapshot.prompt_id != prompt_id:
            raise NotFoundError("Version not found.")

        prompt = await self.get_editable(
            principal, prompt_id, "You do not have permission to restore this version."
        )

        async with guarded(
            "Unable to restore this version.",
            redirect_to=f"/prompts/{prompt_id}/history",
            operation="prompt.restore_version",
        ):
            await self._assert_category_exists(snapshot.category_id)

            prompt.title = snapshot.title
            prompt.description = snapshot.description
            prompt.content = snapshot.content
            prompt.category_id = snapshot.category_id
            prompt.visibility = snapshot.visibility
            prompt.status = snapshot.status
            await self.db.flush()

            await self._replace_tags(prompt, parse_tags(snapshot.tags_csv))
            version = await self._append_version(prompt, principal.id)

            await self.audit.record(
                actor_id=principal.id,
                action="prompt.restoreVersion",
                entity_type="prompt",
                entity_id=prompt.id,
                prompt_id=prompt.id,
                metadata={
                    "restoredFromVersionId": str(snapshot.id),
                    "restoredVersionNumber": snapshot.version,
                },
            )

        await logger.ainfo(
            "prompt.version_restored",
            prompt_id=str(prompt.id),
            restored_version=snapshot.version,
            new_version=version.version,
        )
        return PromptWriteResult(prompt, version)

    async def toggle_saved(self, principal: Principal, prompt_id: uuid.UUID) -> bool:
        """Flip the principal's bookmark. Returns the new saved state."""
        await self.get_visible(principal, prompt_id)

        async with guarded(
            "Unable to update saved state. Please try again.",
            redirect_to="/",
            operation="prompt.toggle_saved",
        ):
            existing = await self._saved_row(prompt_id, principal.id)
            if existing is not None:
                await self.db.delete(existing)
                saved = False
            else:
                self.db.add(SavedPrompt(prompt_id=prompt_id, user_id=principal.id))
                saved = True
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="prompt.toggleSaved",
                entity_type="prompt",
                entity_id=prompt_id,
                prompt_id=prompt_id,
            )
        return saved

    # Steps

    @staticmethod
    def _full_load() -> list:
        return [
            selectinload(Prompt.category),
            selectinload(Prompt.owner),
            selectinload(Prompt.tags),
            selectinload(Prompt.collaborators).selectinload(PromptCollaborator.user),
        ]

    async def _load(self, prompt_id: uuid.UUID) -> Prompt | None:
        result = await self.db.execute(
            select(Prompt).where(Prompt.id == prompt_id).options(*self._full_load())
        )
        return result.scalar_one_or_none()

    async def _assert_category_exists(self, category_id: uuid.UUID | None) -> uuid.UUID:
        if category_id is None:
            raise IntegrityConflict("Category not found.")
        result = await self.db.execute(select(Category.id).where(Category.id == category_id))
        if result.scalar_one_or_none() is None:
            raise IntegrityConflict("Category not found.")
        return category_id

    async def _replace_tags(self, prompt: Prompt, names: Sequence[str]) -> None:
        """Delete every tag link, then recreate the set (no diffing)."""
        prompt.tags.clear()
        await self.db.flush()

        if not names:
            return

        result = await self.db.execute(select(Tag).where(Tag.name.in_(names)))
        existing = {t.name: t for t in result.scalars().all()}
        for name in names:
            tag = existing.get(name)
            if tag is None:
                tag = Tag(name=name)
                self.db.add(tag)
                existing[name] = tag
            prompt.tags.append(PromptTag(tag=tag))
        await self.db.flush()

    async def _sync_collaborators(
        self, prompt: Prompt, owner_id: uuid.UUID, emails: Sequence[str]
    ) -> list[str]:
        """
        Reconcile collaborators with an email list.

        Unknown emails are dropped and returned; the owner is never a
        collaborator of their own prompt.
        """
        if not emails:
            prompt.collaborators.clear()
            await self.db.flush()
            return []

        result = await self.db.execute(select(User.id, User.email).where(User.email.in_(emails)))
        users = result.all()
        known_emails = {email for _, email in users}
        known_ids = [user_id for user_id, _ in users if user_id != owner_id]
        unknown = [email for email in emails if email not in known_emails]

        for collaborator in list(prompt.collaborators):
            if collaborator.user_id not in known_ids:
                prompt.collaborators.remove(collaborator)

        current = {c.user_id: c for c in prompt.collaborators}
        for user_id in known_ids:
            collaborator = current.get(user_id)
            if collaborator is None:
                prompt.collaborators.append(
                    PromptCollaborator(user_id=user_id, role=CollaboratorRole.EDIT)
                )
            else:
                collaborator.role = CollaboratorRole.EDIT
        await self.db.flush()

        if unknown:
            await logger.ainfo(
                "prompt.collaborators_unknown",
                prompt_id=str(prompt.id),
                unknown_count=len(unknown),
            )
        return unknown

    async def _append_version(self, prompt: Prompt, changed_by_id: uuid.UUID) -> PromptVersion:
        result = await self.db.execute(
            select(func.max(PromptVersion.version)).where(PromptVersion.prompt_id == prompt.id)
        )
        latest = result.scalar_one_or_none() or 0

        version = PromptVersion(
            prompt_id=prompt.id,
            version=latest + 1,
            title=prompt.title,
            description=prompt.description,
            content=prompt.content,
            category_id=prompt.category_id,
            tags_csv=tags_to_csv(prompt.tag_names),
            visibility=prompt.visibility,
            status=prompt.status,
            changed_by_id=changed_by_id,
        )
        self.db.add(version)
        await self.db.flush()
        return version

    async def _saved_row(self, prompt_id: uuid.UUID, user_id: uuid.UUID) -> SavedPrompt | None:
        result = await self.db.execute(
            select(SavedPrompt).where(
                SavedPrompt.prompt_id == prompt_id, SavedPrompt.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def _set_saved(self, prompt_id: uuid.UUID, user_id: uuid.UUID, saved: bool) -> None:
        if saved:
            if await self._saved_row(prompt_id, user_id) is None:
                self.db.add(SavedPrompt(prompt_id=prompt_id, user_id=user_id))
                await self.db.flush()
            return
        await self.db.execute(
            delete(SavedPrompt).where(
                SavedPrompt.prompt_id == prompt_id, SavedPrompt.user_id == user_id
            )
        )
