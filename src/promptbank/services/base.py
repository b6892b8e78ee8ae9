"""Shared plumbing for mutation services."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import SQLAlchemyError

from promptbank.common.errors import IntegrityConflict, OperationFailed

logger = structlog.stdlib.get_logger()


@asynccontextmanager
async def guarded(message: str, *, redirect_to: str, operation: str) -> AsyncIterator[None]:
    """
    Turn persistence failures into one generic user-facing error.

    The cause is logged; the caller only sees ``message``. The request session
    rolls back when the resulting ``OperationFailed`` propagates.
    """
    try:
        yield
    except (SQLAlchemyError, IntegrityConflict) as e:
        await logger.awarning(
            "operation.failed",
            operation=operation,
            error_class=type(e).__name__,
            error=str(e),
        )
        raise OperationFailed(message, redirect_to=redirect_to) from e
