"""Session cookie handling and sliding renewal."""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from promptbank.config import AuthSettings


def set_session_cookie(response: Response, token: str, settings: AuthSettings) -> None:
    response.set_cookie(
        settings.session_cookie,
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
    )


def clear_session_cookie(response: Response, settings: AuthSettings) -> None:
    response.delete_cookie(settings.session_cookie, path="/")


class SessionRenewalMiddleware(BaseHTTPMiddleware):
    """Writes back a re-issued session token when the auth dependency produced one."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        renewed: tuple[str, AuthSettings] | None = getattr(request.state, "renewed_session", None)
        if renewed is not None:
            token, settings = renewed
            if not _sets_cookie(response, settings.session_cookie):
                set_session_cookie(response, token, settings)
        return response


def _sets_cookie(response: Response, name: str) -> bool:
    prefix = f"{name}=".encode()
    return any(
        key == b"set-cookie" and value.startswith(prefix) for key, value in response.raw_headers
    )
