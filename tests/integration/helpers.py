"""Assertions on redirect responses."""

from __future__ import annotations

from httpx import URL, Response


def location(response: Response) -> URL:
    assert response.status_code == 303, response.text
    return URL(response.headers["location"])


def redirected_error(response: Response) -> str | None:
    return location(response).params.get("error")


def redirected_status(response: Response) -> str | None:
    return location(response).params.get("status")
