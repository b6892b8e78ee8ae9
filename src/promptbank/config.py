"""
Prompt Bank configuration.

Resolution order (highest priority first):
  1. Environment variables   (PROMPTBANK_DATABASE__URL=...)
  2. YAML config file        (promptbank.yaml)
  3. Defaults defined here
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_SECRET_KEY = "promptbank-dev-secret-key"


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogFormat(StrEnum):
    JSON = "json"
    CONSOLE = "console"


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1


class DatabaseSettings(BaseModel):
    url: str = "sqlite+aiosqlite:///./promptbank.db"
    pool_size: int = 10
    max_overflow: int = 10
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class AuthSettings(BaseModel):
    secret_key: str = DEV_SECRET_KEY
    session_cookie: str = "promptbank_session"
    session_max_age_seconds: int = 8 * 60 * 60
    session_update_age_seconds: int = 30 * 60
    max_failed_logins: int = 5
    lock_minutes: int = 15
    password_hash_iterations: int = 390_000
    secure_cookies: bool = False

    @model_validator(mode="after")
    def _check_windows(self) -> AuthSettings:
        if self.session_update_age_seconds >= self.session_max_age_seconds:
            raise ValueError("session_update_age_seconds must be shorter than session_max_age_seconds")
        if self.max_failed_logins < 1:
            raise ValueError("max_failed_logins must be at least 1")
        return self


class AuditSettings(BaseModel):
    metadata_max_length: int = 2000


class LoggingSettings(BaseModel):
    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON


class Settings(BaseSettings):
    """Root settings: merges env vars, YAML, and defaults."""

    model_config = SettingsConfigDict(
        env_prefix="PROMPTBANK_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    env: str = "development"
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Convenience aliases for flat env vars
    secret_key: str = ""
    log_level: str = ""

    def model_post_init(self, __context: Any) -> None:
        # Allow flat env vars to override nested ones
        if self.secret_key:
            self.auth.secret_key = self.secret_key
        if self.log_level:
            self.logging.level = LogLevel(self.log_level.upper())
        if self.env == "production":
            if self.auth.secret_key == DEV_SECRET_KEY:
                raise ValueError("PROMPTBANK_SECRET_KEY must be set in production")
            self.auth.secure_cookies = True


def _load_yaml_config() -> dict[str, Any]:
    """Load YAML config file if it exists."""
    search_paths = [
        Path("promptbank.yaml"),
        Path("config/promptbank.yaml"),
        Path("/etc/promptbank/promptbank.yaml"),
    ]
    for path in search_paths:
        if path.is_file():
            with open(path) as f:
                return yaml.safe_load(f) or {}
    return {}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    yaml_data = _load_yaml_config()
    return Settings(**yaml_data)
