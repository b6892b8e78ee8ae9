from __future__ import annotations

from pydantic import BaseModel


class LoginPage(BaseModel):
    callback_url: str = "/"
    error: str | None = None
