"""Category commands and views."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, field_validator
from pydantic_core import PydanticCustomError

from promptbank.schemas.common import PageMessage


class CreateCategoryCommand(BaseModel):
    name: str
    description: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        value = str(value or "").strip()
        if len(value) < 2 or len(value) > 60:
            raise PydanticCustomError(
                "category_name_length", "Category name must be between 2 and 60 characters."
            )
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        value = str(value or "").strip()
        if len(value) > 1024:
            raise PydanticCustomError(
                "category_description_length", "Description can be at most 1024 characters."
            )
        return value


class CategoryInfo(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    prompt_count: int
    created_at: datetime


class CategoryListResponse(PageMessage):
    categories: list[CategoryInfo]
    total: int
