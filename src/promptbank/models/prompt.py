"""Prompts and their per-user associations."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promptbank.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from promptbank.models.category import Category
    from promptbank.models.prompt_version import PromptVersion
    from promptbank.models.tag import PromptTag
    from promptbank.models.user import User


class PromptVisibility(str, enum.Enum):
    TEAM = "TEAM"
    PRIVATE = "PRIVATE"


class PromptStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    ARCHIVED = "ARCHIVED"


class CollaboratorRole(str, enum.Enum):
    EDIT = "EDIT"


class Prompt(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "prompts"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(300), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    visibility: Mapped[PromptVisibility] = mapped_column(
        Enum(PromptVisibility), default=PromptVisibility.TEAM, nullable=False
    )
    status: Mapped[PromptStatus] = mapped_column(
        Enum(PromptStatus), default=PromptStatus.DRAFT, nullable=False
    )

    # Relationships
    category: Mapped[Category] = relationship(back_populates="prompts")
    owner: Mapped[User | None] = relationship(back_populates="owned_prompts")
    tags: Mapped[list[PromptTag]] = relationship(
        back_populates="prompt", cascade="all, delete-orphan", passive_deletes=True
    )
    collaborators: Mapped[list[PromptCollaborator]] = relationship(
        back_populates="prompt", cascade="all, delete-orphan", passive_deletes=True
    )
    saved_by: Mapped[list[SavedPrompt]] = relationship(
        back_populates="prompt", cascade="all, delete-orphan", passive_deletes=True
    )
    versions: Mapped[list[PromptVersion]] = relationship(
        back_populates="prompt",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PromptVersion.version.desc()",
    )

    @property
    def tag_names(self) -> list[str]:
        return sorted(link.tag.name for link in self.tags)


class PromptCollaborator(Base, UUIDPrimaryKeyMixin):
    """Grants a non-owner edit rights on one prompt."""

    __tablename__ = "prompt_collaborators"

    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[CollaboratorRole] = mapped_column(
        Enum(CollaboratorRole), default=CollaboratorRole.EDIT, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    prompt: Mapped[Prompt] = relationship(back_populates="collaborators")
    user: Mapped[User] = relationship(back_populates="collaborations")

    __table_args__ = (UniqueConstraint("prompt_id", "user_id", name="uq_prompt_collaborator"),)


class SavedPrompt(Base, UUIDPrimaryKeyMixin):
    """A user's personal bookmark."""

    __tablename__ = "saved_prompts"

    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    prompt: Mapped[Prompt] = relationship(back_populates="saved_by")
    user: Mapped[User] = relationship(back_populates="saved_prompts")

    __table_args__ = (UniqueConstraint("prompt_id", "user_id", name="uq_saved_prompt"),)
