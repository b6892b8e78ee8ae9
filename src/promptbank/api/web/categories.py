"""Category administration."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Form
from fastapi.responses import RedirectResponse

from promptbank.api.deps import Categories, CurrentUser
from promptbank.common.errors import with_query
from promptbank.schemas.categories import CategoryListResponse, CreateCategoryCommand
from promptbank.schemas.common import parse_command

router = APIRouter()

STATUS_MESSAGES = {
    "created": "Category created.",
    "deleted": "Category deleted.",
}


@router.get("", response_model=CategoryListResponse, summary="List categories")
async def list_categories(
    user: CurrentUser,
    categories: Categories,
    status: str | None = None,
    error: str | None = None,
) -> CategoryListResponse:
    rows = await categories.list_categories(user)
    return CategoryListResponse(
        categories=rows,
        total=len(rows),
        message=STATUS_MESSAGES.get(status or ""),
        error=error,
    )


@router.post("", summary="Create category")
async def create_category(
    user: CurrentUser,
    categories: Categories,
    name: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
) -> RedirectResponse:
    categories.authorize(user)
    cmd = parse_command(
        CreateCategoryCommand,
        {"name": name, "description": description},
        redirect_to="/categories",
        fallback_message="Invalid category data.",
    )
    await categories.create(user, cmd)
    return RedirectResponse(with_query("/categories", status="created"), status_code=303)


@router.post("/{category_id}/delete", summary="Delete category")
async def delete_category(
    category_id: uuid.UUID,
    user: CurrentUser,
    categories: Categories,
) -> RedirectResponse:
    await categories.delete(user, category_id)
    return RedirectResponse(with_query("/categories", status="deleted"), status_code=303)
