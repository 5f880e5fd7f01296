"""
imani_session.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (backend anon key, token signing secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration (prefix `IMANI_`); defaults are safe for local dev.
    """

    model_config = SettingsConfigDict(env_prefix="IMANI_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "imani-session"
    log_level: str = "INFO"

    api_host: str = "127.0.0.1"
    api_port: int = 8080

    # Hosted backend (auth + rest + rpc)
    backend_url: str = "http://localhost:54321"
    backend_anon_key: str = Field(default="", repr=False)
    http_timeout_seconds: float = 10.0

    # PIN sign-in piggybacks on password sessions via `{phone}@temp.<pin_login_domain>`.
    pin_login_domain: str = "imani.io"
    default_dial_code: str = "+255"
    pin_hash_rounds: int = Field(default=12, ge=4, le=31)

    # Durable flag storage (survives restarts); only the demo-mode flag lives here.
    database_url: str = "sqlite+aiosqlite:///./imani.db"
    demo_flag_key: str = "demoMode"

    # Bearer tokens minted by the local demo backend.
    jwt_alg: str = "HS256"
    jwt_issuer: str = "imani-demo"
    jwt_audience: str = "imani-app"
    jwt_secret: str = Field(default="imani-demo-secret-change-me-in-production", repr=False)
    demo_token_ttl_minutes: int = 60

    # Per-client session tokens handed to API callers (same signing key, own audience).
    session_token_audience: str = "imani-session"
    session_token_ttl_minutes: int = 12 * 60
    # Least recently used client sessions are closed beyond this many.
    max_client_sessions: int = Field(default=1000, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every other module takes a `Settings` instance explicitly; only the API layer
# reaches for `get_settings()`.
