"""
rolesync.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the bot, engine and API.
- Hide secrets from repr/logging (Discord token, JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ROLESYNC_", case_sensitive=False)

    # "prod" hides the dev token route; "dev" switches logs to the console renderer.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "rolesync"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Operator tokens for the admin API
    jwt_alg: str = "HS256"
    jwt_issuer: str = "rolesync"
    jwt_audience: str = "rolesync-admin"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./roles.sqlite"

    # Discord gateway; the bot is not started when no token is configured.
    discord_token: str | None = Field(default=None, repr=False)
    primary_guild_id: str | None = None
    everyone_role_name: str = "@everyone"

    # Sync-all pacing (2 calls/s matches a 500ms gap between members).
    sync_all_calls_per_second: float = Field(default=2.0, gt=0)
    sync_all_burst: int = Field(default=1, ge=1)

    # Reconciliation
    group_call_timeout_seconds: float | None = Field(default=None, gt=0)
    rerun_on_contention: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `primary_guild_id` is validated lazily: a missing or unreachable primary guild only
# fails reset operations, never startup.
