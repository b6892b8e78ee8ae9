"""
FastAPI dependency injection.

Central place for all shared dependencies used across routes.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.errors import AuthenticationRequired
from promptbank.config import Settings, get_settings
from promptbank.core.auth.session import resolve_session
from promptbank.core.authz import Principal
from promptbank.db.session import get_db_session
from promptbank.services.audit import AuditService
from promptbank.services.category_service import CategoryService
from promptbank.services.prompt_service import PromptService
from promptbank.services.user_service import UserService

# Type aliases for cleaner signatures
DBSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


async def get_current_user(request: Request, settings: AppSettings) -> Principal:
    """
    Authenticate a request via the session cookie.

    Missing, forged or expired sessions send the caller to the login page with
    the current path as callback. Sessions inside the renewal window are
    re-issued by the session middleware.
    """
    token = request.cookies.get(settings.auth.session_cookie)
    resolved = resolve_session(token, settings.auth)
    if resolved is None:
        callback = request.url.path
        if request.method == "GET" and request.url.query:
            callback = f"{callback}?{request.url.query}"
        raise AuthenticationRequired(callback)

    if resolved.renewed_token:
        request.state.renewed_session = (resolved.renewed_token, settings.auth)
    return resolved.principal


def get_audit_service(db: DBSession, settings: AppSettings) -> AuditService:
    return AuditService(db, settings.audit.metadata_max_length)


def get_prompt_service(
    db: DBSession, audit: AuditService = Depends(get_audit_service)
) -> PromptService:
    return PromptService(db, audit)


def get_category_service(
    db: DBSession, audit: AuditService = Depends(get_audit_service)
) -> CategoryService:
    return CategoryService(db, audit)


def get_user_service(
    db: DBSession, settings: AppSettings, audit: AuditService = Depends(get_audit_service)
) -> UserService:
    return UserService(db, settings.auth, audit)


# Annotated types for route signatures
CurrentUser = Annotated[Principal, Depends(get_current_user)]
Audit = Annotated[AuditService, Depends(get_audit_service)]
Prompts = Annotated[PromptService, Depends(get_prompt_service)]
Categories = Annotated[CategoryService, Depends(get_category_service)]
Users = Annotated[UserService, Depends(get_user_service)]
