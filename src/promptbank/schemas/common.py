"""Shared schema helpers."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from promptbank.common.errors import ValidationFailed

CommandT = TypeVar("CommandT", bound=BaseModel)


def parse_command(
    model: type[CommandT],
    data: dict[str, Any],
    *,
    redirect_to: str,
    fallback_message: str = "Invalid request.",
) -> CommandT:
    """Validate raw input into a typed command; report only the first problem."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = e.errors()
        message = errors[0]["msg"] if errors else fallback_message
        raise ValidationFailed(message, redirect_to=redirect_to) from e


class PageMessage(BaseModel):
    message: str | None = None
    error: str | None = None
