"""Prompt library pages and form actions."""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Form, Query
from fastapi.responses import RedirectResponse

from promptbank.api.deps import Audit, Categories, CurrentUser, Prompts
from promptbank.common.errors import with_query
from promptbank.common.text import tags_to_csv
from promptbank.core.authz import (
    Principal,
    can_create,
    can_delete,
    can_edit,
    can_manage_categories,
    can_manage_users,
)
from promptbank.models.category import Category
from promptbank.models.prompt import Prompt, PromptStatus, PromptVisibility
from promptbank.models.prompt_version import PromptVersion
from promptbank.models.user import User
from promptbank.schemas.common import parse_command
from promptbank.schemas.prompts import (
    AuditEntryInfo,
    CategoryOption,
    DuplicatePromptCommand,
    LastChange,
    PersonInfo,
    PromptCommand,
    PromptDetail,
    PromptFilters,
    PromptFormContext,
    PromptFormValues,
    PromptHistoryResponse,
    PromptListResponse,
    PromptSummary,
    VersionInfo,
)
from promptbank.services.prompt_service import access_of

router = APIRouter()

STATUS_MESSAGES = {
    "created": "Prompt created successfully.",
    "updated": "Prompt updated successfully.",
    "deleted": "Prompt deleted successfully.",
    "saved-toggled": "Prompt save status updated.",
}


def _see_other(path: str, **params: str) -> RedirectResponse:
    return RedirectResponse(with_query(path, **params) if params else path, status_code=303)


def _prompt_form(
    title: str,
    description: str,
    content: str,
    category_id: str,
    tags_csv: str,
    collaborator_emails_csv: str,
    visibility: str,
    status: str,
    is_saved: str | None,
) -> dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "content": content,
        "category_id": category_id,
        "tags_csv": tags_csv,
        "collaborator_emails_csv": collaborator_emails_csv,
        "visibility": visibility,
        "status": status,
        "is_saved": is_saved == "on",
    }


# Reads


@router.get("/", response_model=PromptListResponse, summary="Prompt library")
async def list_prompts(
    user: CurrentUser,
    prompts: Prompts,
    categories: Categories,
    q: str = "",
    category: str = "",
    prompt_status: Annotated[str, Query(alias="promptStatus")] = "",
    visibility: str = "",
    owner_scope: Annotated[str, Query(alias="ownerScope")] = "",
    only_saved: Annotated[str, Query(alias="onlySaved")] = "",
    status: str | None = None,
    error: str | None = None,
) -> PromptListResponse:
    filters = PromptFilters(
        q=q.strip(),
        category=category.strip(),
        prompt_status=_enum_or_none(PromptStatus, prompt_status),
        visibility=_enum_or_none(PromptVisibility, visibility),
        owned_by_me=owner_scope.strip() == "mine",
        only_saved=only_saved == "true",
    )
    rows = await prompts.list_prompts(user, filters)
    ids = [p.id for p in rows]
    saved = await prompts.saved_ids(user.id, ids)
    latest = await prompts.latest_versions(ids)
    options = await categories.options()

    return PromptListResponse(
        prompts=[_to_summary(user, p, p.id in saved, latest.get(p.id)) for p in rows],
        total=len(rows),
        categories=[_to_option(c) for c in options],
        has_filters=filters.has_any,
        can_create=can_create(user.role),
        can_manage_categories=can_manage_categories(user.role),
        can_manage_users=can_manage_users(user.role),
        message=STATUS_MESSAGES.get(status or ""),
        error=error,
    )


@router.get("/prompts/new", response_model=PromptFormContext, summary="New prompt form")
async def new_prompt_form(
    user: CurrentUser,
    prompts: Prompts,
    categories: Categories,
    error: str | None = None,
) -> PromptFormContext:
    prompts.authorize_create(user, "You do not have permission to create prompts.")
    options = await categories.options()
    return PromptFormContext(categories=[_to_option(c) for c in options], error=error)


@router.get("/prompts/{prompt_id}", response_model=PromptDetail, summary="Prompt detail")
async def get_prompt(prompt_id: uuid.UUID, user: CurrentUser, prompts: Prompts) -> PromptDetail:
    prompt = await prompts.get_visible(user, prompt_id)
    saved = await prompts.saved_ids(user.id, [prompt.id])
    latest = (await prompts.latest_versions([prompt.id])).get(prompt.id)
    summary = _to_summary(user, prompt, prompt.id in saved, latest)
    return PromptDetail(
        **summary.model_dump(),
        latest_version=latest.version if latest else None,
    )


@router.get("/prompts/{prompt_id}/edit", response_model=PromptFormContext, summary="Edit prompt form")
async def edit_prompt_form(
    prompt_id: uuid.UUID,
    user: CurrentUser,
    prompts: Prompts,
    categories: Categories,
    error: str | None = None,
) -> PromptFormContext:
    prompt = await prompts.get_editable(
        user, prompt_id, "You do not have permission to update this prompt."
    )
    saved = await prompts.saved_ids(user.id, [prompt.id])
    options = await categories.options()
    return PromptFormContext(
        prompt_id=prompt.id,
        values=PromptFormValues(
            title=prompt.title,
            description=prompt.description or "",
            content=prompt.content,
            category_id=str(prompt.category_id),
            tags_csv=tags_to_csv(prompt.tag_names),
            collaborator_emails_csv=", ".join(
                sorted(c.user.email for c in prompt.collaborators)
            ),
            visibility=prompt.visibility,
            status=prompt.status,
            is_saved=prompt.id in saved,
        ),
        categories=[_to_option(c) for c in options],
        error=error,
    )


@router.get(
    "/prompts/{prompt_id}/history",
    response_model=PromptHistoryResponse,
    summary="Prompt version history",
)
async def prompt_history(
    prompt_id: uuid.UUID,
    user: CurrentUser,
    prompts: Prompts,
    audit: Audit,
    error: str | None = None,
) -> PromptHistoryResponse:
    prompt = await prompts.get_visible(user, prompt_id)
    versions = await prompts.versions(prompt.id)
    entries = await audit.for_prompt(prompt.id, limit=30)
    return PromptHistoryResponse(
        prompt_id=prompt.id,
        title=prompt.title,
        can_restore=can_edit(user, access_of(prompt)),
        versions=[_to_version(v) for v in versions],
        audit_entries=[
            AuditEntryInfo(
                id=e.id,
                actor_id=e.actor_id,
                action=e.action,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                metadata=e.metadata_json,
                created_at=e.created_at,
            )
            for e in entries
        ],
        error=error,
    )


# Form actions


@router.post("/prompts", summary="Create prompt")
async def create_prompt(
    user: CurrentUser,
    prompts: Prompts,
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    content: Annotated[str, Form()] = "",
    category_id: Annotated[str, Form(alias="categoryId")] = "",
    tags_csv: Annotated[str, Form(alias="tagsCsv")] = "",
    collaborator_emails_csv: Annotated[str, Form(alias="collaboratorEmailsCsv")] = "",
    visibility: Annotated[str, Form()] = "TEAM",
    status: Annotated[str, Form()] = "DRAFT",
    is_saved: Annotated[str | None, Form(alias="isSaved")] = None,
) -> RedirectResponse:
    prompts.authorize_create(user, "You do not have permission to create prompts.")
    cmd = parse_command(
        PromptCommand,
        _prompt_form(
            title, description, content, category_id, tags_csv,
            collaborator_emails_csv, visibility, status, is_saved,
        ),
        redirect_to="/prompts/new",
        fallback_message="Invalid prompt data.",
    )
    await prompts.create(user, cmd)
    return _see_other("/", status="created")


@router.post("/prompts/{prompt_id}/edit", summary="Update prompt")
async def update_prompt(
    prompt_id: uuid.UUID,
    user: CurrentUser,
    prompts: Prompts,
    title: Annotated[str, Form()] = "",
    description: Annotated[str, Form()] = "",
    content: Annotated[str, Form()] = "",
    category_id: Annotated[str, Form(alias="categoryId")] = "",
    tags_csv: Annotated[str, Form(alias="tagsCsv")] = "",
    collaborator_emails_csv: Annotated[str, Form(alias="collaboratorEmailsCsv")] = "",
    visibility: Annotated[str, Form()] = "TEAM",
    status: Annotated[str, Form()] = "DRAFT",
    is_saved: Annotated[str | None, Form(alias="isSaved")] = None,
) -> RedirectResponse:
    await prompts.get_editable(user, prompt_id, "You do not have permission to update this prompt.")
    cmd = parse_command(
        PromptCommand,
        _prompt_form(
            title, description, content, category_id, tags_csv,
            collaborator_emails_csv, visibility, status, is_saved,
        ),
        redirect_to=f"/prompts/{prompt_id}/edit",
        fallback_message="Invalid prompt data.",
    )
    await prompts.update(user, prompt_id, cmd)
    return _see_other("/", status="updated")


@router.post("/prompts/{prompt_id}/delete", summary="Delete prompt")
async def delete_prompt(prompt_id: uuid.UUID, user: CurrentUser, prompts: Prompts) -> RedirectResponse:
    await prompts.delete(user, prompt_id)
    return _see_other("/", status="deleted")


@router.post("/prompts/{prompt_id}/duplicate", summary="Duplicate prompt")
async def duplicate_prompt(
    prompt_id: uuid.UUID,
    user: CurrentUser,
    prompts: Prompts,
    duplicate_title: Annotated[str, Form(alias="duplicateTitle")] = "",
) -> RedirectResponse:
    cmd = DuplicatePromptCommand(duplicate_title=duplicate_title)
    await prompts.duplicate(user, prompt_id, cmd)
    return _see_other("/", status="created")


@router.post(
    "/prompts/{prompt_id}/versions/{version_id}/restore",
    summary="Restore a prompt version",
)
async def restore_version(
    prompt_id: uuid.UUID,
    version_id: uuid.UUID,
    user: CurrentUser,
    prompts: Prompts,
) -> RedirectResponse:
    await prompts.restore_version(user, prompt_id, version_id)
    return _see_other("/", status="updated")


@router.post("/prompts/{prompt_id}/save", summary="Toggle saved bookmark")
async def toggle_saved(prompt_id: uuid.UUID, user: CurrentUser, prompts: Prompts) -> RedirectResponse:
    await prompts.toggle_saved(user, prompt_id)
    return _see_other("/", status="saved-toggled")


# Converters


def _enum_or_none(enum_cls: type, value: str) -> Any:
    value = value.strip()
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _person(user: User | None) -> PersonInfo | None:
    if user is None:
        return None
    return PersonInfo(id=user.id, name=user.name, email=user.email)


def _to_option(category: Category) -> CategoryOption:
    return CategoryOption(id=category.id, name=category.name)


def _to_summary(
    viewer: Principal, prompt: Prompt, is_saved: bool, latest: PromptVersion | None
) -> PromptSummary:
    access = access_of(prompt)
    return PromptSummary(
        id=prompt.id,
        title=prompt.title,
        description=prompt.description,
        content=prompt.content,
        category_id=prompt.category_id,
        category_name=prompt.category.name,
        visibility=prompt.visibility,
        status=prompt.status,
        tags=prompt.tag_names,
        owner=_person(prompt.owner),
        collaborators=sorted(c.user.email for c in prompt.collaborators),
        is_saved=is_saved,
        can_edit=can_edit(viewer, access),
        can_delete=can_delete(viewer, access),
        last_change=(
            LastChange(changed_at=latest.created_at, changed_by=_person(latest.changed_by))
            if latest is not None
            else None
        ),
        created_at=prompt.created_at,
        updated_at=prompt.updated_at,
    )


def _to_version(version: PromptVersion) -> VersionInfo:
    return VersionInfo(
        id=version.id,
        version=version.version,
        title=version.title,
        description=version.description,
        content=version.content,
        category_id=version.category_id,
        tags_csv=version.tags_csv,
        visibility=version.visibility,
        status=version.status,
        changed_by=_person(version.changed_by),
        created_at=version.created_at,
    )
