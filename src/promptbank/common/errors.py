"""
Unified error handling.

Every Prompt Bank error is answered with a 303 redirect back to a page,
carrying the user-facing message as an ``error`` query parameter. The
underlying cause of persistence failures is logged, never exposed.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote, urlencode

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

logger = structlog.stdlib.get_logger()

DEFAULT_ERROR_PATH = "/"


class PromptBankError(Exception):
    """Base exception for all Prompt Bank errors."""

    error_type: str = "internal_error"
    default_redirect: str = DEFAULT_ERROR_PATH

    def __init__(
        self,
        message: str,
        *,
        redirect_to: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.redirect_to = redirect_to or self.default_redirect
        self.details = details or {}
        super().__init__(message)

    def location(self) -> str:
        return with_query(self.redirect_to, error=self.message)


class AuthenticationRequired(PromptBankError):
    """No valid session; the caller is sent to the login page."""

    error_type = "authentication_required"
    default_redirect = "/login"

    def __init__(self, callback_path: str = "/") -> None:
        super().__init__("Authentication required.")
        self.callback_path = safe_callback_path(callback_path)

    def location(self) -> str:
        return with_query("/login", callbackUrl=self.callback_path)


class AuthenticationError(PromptBankError):
    error_type = "authentication_error"
    default_redirect = "/login"


class PermissionDenied(PromptBankError):
    error_type = "permission_denied"


class ValidationFailed(PromptBankError):
    error_type = "validation_error"


class NotFoundError(PromptBankError):
    error_type = "not_found"


class OperationFailed(PromptBankError):
    """A persistence step failed; the message is generic by construction."""

    error_type = "operation_failed"


class IntegrityConflict(Exception):
    """A referential rule blocks a write. Never shown to the caller."""


def with_query(path: str, **params: str) -> str:
    """Append query parameters to a local path, respecting an existing ``?``."""
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{urlencode(params, quote_via=quote)}"


def safe_callback_path(callback_path: str | None) -> str:
    """Only local, non-login paths are allowed as post-login destinations."""
    if not callback_path:
        return "/"
    if not callback_path.startswith("/") or callback_path.startswith("//"):
        return "/"
    if callback_path.startswith("/login"):
        return "/"
    return callback_path


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(PromptBankError)
    async def promptbank_error_handler(request: Request, exc: PromptBankError) -> RedirectResponse:
        await logger.awarning(
            "promptbank.error",
            error_type=exc.error_type,
            message=exc.message,
            path=request.url.path,
            **exc.details,
        )
        return RedirectResponse(exc.location(), status_code=303)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> RedirectResponse:
        await logger.aexception(
            "promptbank.unhandled_error",
            path=request.url.path,
            error=str(exc),
        )
        return RedirectResponse(
            with_query(DEFAULT_ERROR_PATH, error="An internal error occurred."),
            status_code=303,
        )
