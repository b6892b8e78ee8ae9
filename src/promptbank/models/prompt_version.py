"""Immutable prompt snapshots."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promptbank.models.base import Base, UUIDPrimaryKeyMixin, utcnow
from promptbank.models.prompt import PromptStatus, PromptVisibility

if TYPE_CHECKING:
    from promptbank.models.prompt import Prompt
    from promptbank.models.user import User


class PromptVersion(Base, UUIDPrimaryKeyMixin):
    """Append-only. Rows are only removed by the prompt's cascade delete."""

    __tablename__ = "prompt_versions"

    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Snapshot
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(300), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    tags_csv: Mapped[str] = mapped_column(Text, default="", nullable=False)
    visibility: Mapped[PromptVisibility] = mapped_column(Enum(PromptVisibility), nullable=False)
    status: Mapped[PromptStatus] = mapped_column(Enum(PromptStatus), nullable=False)

    changed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    prompt: Mapped[Prompt] = relationship(back_populates="versions")
    changed_by: Mapped[User | None] = relationship()

    __table_args__ = (UniqueConstraint("prompt_id", "version", name="uq_prompt_version"),)
