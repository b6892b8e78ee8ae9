from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from promptbank.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from promptbank.models.prompt import Prompt


class Tag(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(500), unique=True, nullable=False, index=True)

    prompt_links: Mapped[list[PromptTag]] = relationship(back_populates="tag")


class PromptTag(Base):
    """Per-prompt tag membership."""

    __tablename__ = "prompt_tags"

    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )

    prompt: Mapped[Prompt] = relationship(back_populates="tags")
    tag: Mapped[Tag] = relationship(back_populates="prompt_links", lazy="joined")

    __table_args__ = (UniqueConstraint("prompt_id", "tag_id", name="uq_prompt_tag"),)
