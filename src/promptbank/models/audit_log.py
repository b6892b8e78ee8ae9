from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from promptbank.models.base import Base, utcnow


class AuditLog(Base):
    """Append-only audit log. No UPDATE or DELETE operations should ever be performed."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )  # None for system actions and unknown login attempts
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)  # "prompt.create", "auth.locked"
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)  # "prompt" | "category" | "user" | "auth"
    entity_id: Mapped[str] = mapped_column(String(320), nullable=False)
    prompt_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("prompts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    metadata_json: Mapped[str | None] = mapped_column("metadata", Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True
    )
