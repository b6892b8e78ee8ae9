"""Append-only audit trail writer."""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.crypto import sanitize_audit_metadata
from promptbank.models.audit_log import AuditLog

logger = structlog.stdlib.get_logger()


class AuditService:
    def __init__(self, db: AsyncSession, metadata_max_length: int = 2000) -> None:
        self.db = db
        self.metadata_max_length = metadata_max_length

    async def record(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str | uuid.UUID,
        actor_id: uuid.UUID | None = None,
        prompt_id: uuid.UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        """
        Append an audit entry inside a savepoint.

        A failing write is logged and swallowed so it never blocks the
        operation being audited; the surrounding transaction stays usable.
        """
        try:
            async with self.db.begin_nested():
                entry = AuditLog(
                    actor_id=actor_id,
                    action=action,
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    prompt_id=prompt_id,
                    metadata_json=sanitize_audit_metadata(metadata, self.metadata_max_length),
                )
                self.db.add(entry)
                await self.db.flush()
        except Exception as e:
            await logger.awarning(
                "audit.write_failed",
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id),
                error=str(e),
            )
            return None
        return entry

    async def for_prompt(self, prompt_id: uuid.UUID, limit: int = 30) -> list[AuditLog]:
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.prompt_id == prompt_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
