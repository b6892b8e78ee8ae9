"""Login and logout."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Form, Query
from fastapi.responses import RedirectResponse

from promptbank.api.deps import AppSettings, Audit, DBSession
from promptbank.api.middleware.session import clear_session_cookie, set_session_cookie
from promptbank.common.errors import AuthenticationError, safe_callback_path, with_query
from promptbank.core.auth.login import LoginService
from promptbank.core.auth.session import issue_session
from promptbank.schemas.auth import LoginPage

logger = structlog.stdlib.get_logger()

router = APIRouter()

INVALID_CREDENTIALS = "Invalid email or password."


@router.get("/login", response_model=LoginPage, summary="Login page")
async def login_page(
    callback_url: Annotated[str, Query(alias="callbackUrl")] = "/",
    error: str | None = None,
) -> LoginPage:
    return LoginPage(callback_url=safe_callback_path(callback_url), error=error)


@router.post("/login", summary="Sign in")
async def login(
    db: DBSession,
    settings: AppSettings,
    audit: Audit,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    callback_url: Annotated[str, Form(alias="callbackUrl")] = "/",
) -> RedirectResponse:
    callback = safe_callback_path(callback_url)
    service = LoginService(db, settings.auth, audit)
    result = await service.authenticate(email, password)

    if not result.ok:
        # Return normally: the failed-attempt counter must be committed
        await logger.ainfo("auth.login_rejected", outcome=result.outcome.value)
        rejected = AuthenticationError(INVALID_CREDENTIALS)
        return RedirectResponse(with_query(rejected.location(), callbackUrl=callback), status_code=303)

    response = RedirectResponse(callback, status_code=303)
    set_session_cookie(response, issue_session(result.principal, settings.auth), settings.auth)
    return response


@router.post("/logout", summary="Sign out")
async def logout(settings: AppSettings) -> RedirectResponse:
    response = RedirectResponse("/login", status_code=303)
    clear_session_cookie(response, settings.auth)
    return response
