"""SQLAlchemy models. Import all models here so metadata.create_all can discover them."""

from promptbank.models.audit_log import AuditLog
from promptbank.models.base import Base
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
from promptbank.models.user import User, UserRole

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Category",
    "Prompt",
    "PromptVisibility",
    "PromptStatus",
    "CollaboratorRole",
    "PromptCollaborator",
    "SavedPrompt",
    "Tag",
    "PromptTag",
    "PromptVersion",
    "AuditLog",
]
