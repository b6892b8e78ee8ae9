"""Integration tests for login, lockout, logout and session renewal."""

from __future__ import annotations

import time

import pytest
from httpx import AsyncClient

from promptbank.config import Settings
from promptbank.core.auth.session import issue_session
from promptbank.models import User

from tests.factories import principal_of
from tests.integration.helpers import location, redirected_error

COOKIE = "promptbank_session"


def _session_cookies(response) -> list[str]:
    return [c for c in response.headers.get_list("set-cookie") if c.startswith(f"{COOKIE}=")]


@pytest.mark.integration
class TestLogin:
    async def test_anonymous_redirected_with_callback(self, client: AsyncClient) -> None:
        response = await client.get("/prompts/new?x=1")
        target = location(response)
        assert target.path == "/login"
        assert target.params["callbackUrl"] == "/prompts/new?x=1"

    async def test_login_sets_session_cookie(self, client: AsyncClient, people: dict, login) -> None:
        response = await login(people["editor"].email, callback_url="/categories")

        assert location(response).path == "/categories"
        cookie = _session_cookies(response)[0]
        assert "HttpOnly" in cookie
        assert "samesite=lax" in cookie.lower()

        listing = await client.get("/")
        assert listing.status_code == 200
        assert listing.json()["can_create"] is True

    async def test_open_redirect_callback_ignored(self, people: dict, login) -> None:
        response = await login(people["editor"].email, callback_url="//evil.example.com")
        assert location(response).path == "/"

    async def test_bad_password(self, client: AsyncClient, people: dict, login) -> None:
        response = await login(people["editor"].email, password="Wr0ng-Password!")

        assert location(response).path == "/login"
        assert redirected_error(response) == "Invalid email or password."
        assert not _session_cookies(response)

    async def test_unknown_user_indistinguishable(self, people: dict, login) -> None:
        response = await login("ghost@example.com")
        assert redirected_error(response) == "Invalid email or password."

    async def test_lockout_blocks_correct_password(
        self, client: AsyncClient, people: dict, login
    ) -> None:
        email = people["viewer"].email
        for _ in range(5):
            await login(email, password="Wr0ng-Password!")

        response = await login(email)
        assert redirected_error(response) == "Invalid email or password."
        assert not _session_cookies(response)

        await login(people["admin"].email)
        users = (await client.get("/users")).json()["users"]
        viewer = next(u for u in users if u["email"] == email)
        assert viewer["is_locked"] is True
        assert viewer["failed_logins"] == 5

        unlocked = await client.post(f"/users/{viewer['id']}/unlock")
        assert location(unlocked).params["status"] == "unlocked"

        response = await login(email)
        assert _session_cookies(response)

    async def test_login_page_echo(self, client: AsyncClient) -> None:
        response = await client.get("/login", params={"callbackUrl": "/users", "error": "Nope"})
        assert response.json() == {"callback_url": "/users", "error": "Nope"}


@pytest.mark.integration
class TestSession:
    async def test_logout_clears_cookie(self, client: AsyncClient, people: dict, login) -> None:
        await login(people["editor"].email)

        response = await client.post("/logout")
        assert location(response).path == "/login"

        after = await client.get("/")
        assert location(after).path == "/login"

    async def test_old_session_is_renewed(
        self, client: AsyncClient, people: dict[str, User], settings: Settings
    ) -> None:
        issued = int(time.time()) - settings.auth.session_update_age_seconds - 60
        token = issue_session(principal_of(people["editor"]), settings.auth, now=issued)

        response = await client.get("/", headers={"cookie": f"{COOKIE}={token}"})

        assert response.status_code == 200
        renewed = _session_cookies(response)
        assert renewed
        assert token not in renewed[0]

    async def test_fresh_session_not_reissued(
        self, client: AsyncClient, people: dict[str, User], settings: Settings
    ) -> None:
        token = issue_session(principal_of(people["editor"]), settings.auth)
        response = await client.get("/", headers={"cookie": f"{COOKIE}={token}"})
        assert response.status_code == 200
        assert not _session_cookies(response)

    async def test_forged_cookie_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/", headers={"cookie": f"{COOKIE}=forged"})
        assert location(response).path == "/login"
