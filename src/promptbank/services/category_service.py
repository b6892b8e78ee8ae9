"""Category taxonomy management."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.errors import IntegrityConflict, NotFoundError, PermissionDenied
from promptbank.core.authz import Principal, can_manage_categories
from promptbank.models.category import Category
from promptbank.models.prompt import Prompt
from promptbank.schemas.categories import CategoryInfo, CreateCategoryCommand
from promptbank.services.audit import AuditService
from promptbank.services.base import guarded

logger = structlog.stdlib.get_logger()

PERMISSION_MESSAGE = "You do not have permission to manage categories."


class CategoryService:
    def __init__(self, db: AsyncSession, audit: AuditService) -> None:
        self.db = db
        self.audit = audit

    def authorize(self, principal: Principal) -> None:
        if not can_manage_categories(principal.role):
            raise PermissionDenied(PERMISSION_MESSAGE)

    async def options(self) -> list[Category]:
        result = await self.db.execute(select(Category).order_by(Category.name))
        return list(result.scalars().all())

    async def list_categories(self, principal: Principal) -> list[CategoryInfo]:
        self.authorize(principal)
        result = await self.db.execute(
            select(Category, func.count(Prompt.id))
            .outerjoin(Prompt, Prompt.category_id == Category.id)
            .group_by(Category.id)
            .order_by(Category.name)
        )
        return [self._to_info(category, count) for category, count in result.all()]

    async def create(self, principal: Principal, cmd: CreateCategoryCommand) -> Category:
        self.authorize(principal)

        async with guarded(
            "Unable to create category. Name may already exist.",
            redirect_to="/categories",
            operation="category.create",
        ):
            category = Category(name=cmd.name, description=cmd.description or None)
            self.db.add(category)
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="category.create",
                entity_type="category",
                entity_id=category.id,
            )

        await logger.ainfo("category.created", category_id=str(category.id), name=category.name)
        return category

    async def delete(self, principal: Principal, category_id: uuid.UUID) -> None:
        self.authorize(principal)

        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found.", redirect_to="/categories")

        async with guarded(
            "Unable to delete category. It might be used by prompts.",
            redirect_to="/categories",
            operation="category.delete",
        ):
            in_use = await self.db.execute(
                select(func.count(Prompt.id)).where(Prompt.category_id == category_id)
            )
            if in_use.scalar_one() > 0:
                raise IntegrityConflict("Category is referenced by prompts.")

            await self.db.delete(category)
            await self.db.flush()

            await self.audit.record(
                actor_id=principal.id,
                action="category.delete",
                entity_type="category",
                entity_id=category_id,
            )

        await logger.ainfo("category.deleted", category_id=str(category_id))

    @staticmethod
    def _to_info(category: Category, prompt_count: int) -> CategoryInfo:
        return CategoryInfo(
            id=category.id,
            name=category.name,
            description=category.description,
            prompt_count=prompt_count,
            created_at=category.created_at,
        )
