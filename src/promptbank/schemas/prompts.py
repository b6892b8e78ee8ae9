"""Prompt commands and views."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError

from promptbank.common.text import parse_emails, parse_tags
from promptbank.models.prompt import PromptStatus, PromptVisibility
from promptbank.schemas.common import PageMessage

TITLE_MIN, TITLE_MAX = 3, 120
DESCRIPTION_MAX = 300
CONTENT_MIN, CONTENT_MAX = 10, 10_000
TAGS_CSV_MAX = 500
COLLABORATORS_CSV_MAX = 1000


def _length_error(code: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(code, message)


class PromptCommand(BaseModel):
    """Validated create/update input."""

    title: str
    description: str = ""
    content: str
    category_id: str = ""
    tags_csv: str = ""
    collaborator_emails_csv: str = ""
    visibility: PromptVisibility = PromptVisibility.TEAM
    status: PromptStatus = PromptStatus.DRAFT
    is_saved: bool = False

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, value: Any) -> str:
        value = str(value or "").strip()
        if len(value) < TITLE_MIN:
            raise _length_error("title_too_short", "Title must be at least 3 characters.")
        if len(value) > TITLE_MAX:
            raise _length_error("title_too_long", "Title can be at most 120 characters.")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        value = str(value or "").strip()
        if len(value) > DESCRIPTION_MAX:
            raise _length_error(
                "description_too_long", "Description can be at most 300 characters."
            )
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _content(cls, value: Any) -> str:
        value = str(value or "").strip()
        if len(value) < CONTENT_MIN:
            raise _length_error(
                "content_too_short", "Prompt content must be at least 10 characters."
            )
        if len(value) > CONTENT_MAX:
            raise _length_error(
                "content_too_long", "Prompt content can be at most 10,000 characters."
            )
        return value

    @field_validator("category_id", mode="before")
    @classmethod
    def _category(cls, value: Any) -> str:
        value = str(value or "").strip()
        if not value:
            raise PydanticCustomError("category_required", "Category is required.")
        return value

    @field_validator("tags_csv", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> str:
        value = str(value or "")
        if len(value) > TAGS_CSV_MAX:
            raise _length_error("tags_too_long", "Tags input is too long.")
        return value

    @field_validator("collaborator_emails_csv", mode="before")
    @classmethod
    def _collaborators(cls, value: Any) -> str:
        value = str(value or "")
        if len(value) > COLLABORATORS_CSV_MAX:
            raise _length_error("collaborators_too_long", "Collaborators input is too long.")
        return value

    @field_validator("visibility", mode="before")
    @classmethod
    def _visibility(cls, value: Any) -> Any:
        if value in (None, ""):
            return PromptVisibility.TEAM
        if value not in PromptVisibility._value2member_map_:
            raise PydanticCustomError("visibility_invalid", "Visibility must be TEAM or PRIVATE.")
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        if value in (None, ""):
            return PromptStatus.DRAFT
        if value not in PromptStatus._value2member_map_:
            raise PydanticCustomError(
                "status_invalid", "Status must be DRAFT, APPROVED, or ARCHIVED."
            )
        return value

    @property
    def tags(self) -> list[str]:
        return parse_tags(self.tags_csv)

    @property
    def collaborator_emails(self) -> list[str]:
        return parse_emails(self.collaborator_emails_csv)

    @property
    def category_uuid(self) -> uuid.UUID | None:
        try:
            return uuid.UUID(self.category_id)
        except ValueError:
            return None


class DuplicatePromptCommand(BaseModel):
    duplicate_title: str = ""

    @field_validator("duplicate_title", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return str(value or "").strip()

    def resolve_title(self, source_title: str) -> str:
        """Use the requested title when it fits the title bounds, else suffix ``(Copy)``."""
        if TITLE_MIN <= len(self.duplicate_title) <= TITLE_MAX:
            return self.duplicate_title
        return f"{source_title} (Copy)"


class PromptFilters(BaseModel):
    q: str = ""
    category: str = ""
    prompt_status: PromptStatus | None = None
    visibility: PromptVisibility | None = None
    owned_by_me: bool = False
    only_saved: bool = False

    @property
    def has_any(self) -> bool:
        return bool(
            self.q
            or self.category
            or self.prompt_status
            or self.visibility
            or self.owned_by_me
            or self.only_saved
        )


class PersonInfo(BaseModel):
    id: uuid.UUID | None
    name: str | None = None
    email: str | None = None


class CategoryOption(BaseModel):
    id: uuid.UUID
    name: str


class LastChange(BaseModel):
    changed_at: datetime
    changed_by: PersonInfo | None


class PromptSummary(BaseModel):
    id: uuid.UUID
    title: str
    description: str | None
    content: str
    category_id: uuid.UUID
    category_name: str
    visibility: PromptVisibility
    status: PromptStatus
    tags: list[str]
    owner: PersonInfo | None
    collaborators: list[str]
    is_saved: bool
    can_edit: bool
    can_delete: bool
    last_change: LastChange | None = None
    created_at: datetime
    updated_at: datetime


class PromptListResponse(PageMessage):
    prompts: list[PromptSummary]
    total: int
    categories: list[CategoryOption]
    has_filters: bool = False
    can_create: bool = False
    can_manage_categories: bool = False
    can_manage_users: bool = False


class PromptDetail(PromptSummary):
    latest_version: int | None = None


class PromptFormValues(BaseModel):
    title: str = ""
    description: str = ""
    content: str = ""
    category_id: str = ""
    tags_csv: str = ""
    collaborator_emails_csv: str = ""
    visibility: PromptVisibility = PromptVisibility.TEAM
    status: PromptStatus = PromptStatus.DRAFT
    is_saved: bool = False


class PromptFormContext(PageMessage):
    prompt_id: uuid.UUID | None = None
    values: PromptFormValues = Field(default_factory=PromptFormValues)
    categories: list[CategoryOption]


class VersionInfo(BaseModel):
    id: uuid.UUID
    version: int
    title: str
    description: str | None
    content: str
    category_id: uuid.UUID
    tags_csv: str
    visibility: PromptVisibility
    status: PromptStatus
    changed_by: PersonInfo | None
    created_at: datetime


class AuditEntryInfo(BaseModel):
    id: uuid.UUID
    actor_id: uuid.UUID | None
    action: str
    entity_type: str
    entity_id: str
    metadata: str | None
    created_at: datetime


class PromptHistoryResponse(PageMessage):
    prompt_id: uuid.UUID
    title: str
    can_restore: bool
    versions: list[VersionInfo]
    audit_entries: list[AuditEntryInfo]
