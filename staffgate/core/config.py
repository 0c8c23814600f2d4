from __future__ import annotations

from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from staffgate.core.auth import GatePolicy


class Settings(BaseSettings):
    """Runtime configuration loaded from environment."""

    app_name: str = Field(default="StaffGate", validation_alias="APP_NAME")
    environment: str = Field(default="local", validation_alias="APP_ENV")
    version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Identity provider and data store (Supabase-compatible)
    supabase_url: str = Field(
        default="http://localhost:54321",
        validation_alias="SUPABASE_URL",
    )
    supabase_anon_key: str = Field(default="", validation_alias="SUPABASE_ANON_KEY")
    http_timeout_seconds: int = Field(default=10, validation_alias="HTTP_TIMEOUT_SECONDS")

    # Local storage areas
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias="REDIS_URL",
    )
    storage_namespace: str = Field(default="staffgate:", validation_alias="STORAGE_NAMESPACE")
    auth_storage_prefixes: tuple[str, ...] = Field(
        default=("supabase.auth.", "sb-"), validation_alias="AUTH_STORAGE_PREFIXES"
    )
    claims_cache_key: str = Field(default="session-store", validation_alias="CLAIMS_CACHE_KEY")

    # Per-client sessions of the HTTP host
    client_cookie_name: str = Field(
        default="staffgate_client", validation_alias="CLIENT_COOKIE_NAME"
    )
    max_client_sessions: int = Field(default=500, ge=1, validation_alias="MAX_CLIENT_SESSIONS")

    # Route gate
    gate_policy: GatePolicy = Field(
        default=GatePolicy.ROLE_AND_PROFILE, validation_alias="GATE_POLICY"
    )
    sign_in_path: str = Field(default="/login", validation_alias="SIGN_IN_PATH")
    pending_path: str = Field(default="/pending-approval", validation_alias="PENDING_PATH")
    unauthorized_path: str = Field(default="/unauthorized", validation_alias="UNAUTHORIZED_PATH")
    password_reset_redirect_url: str = Field(
        default="http://localhost:8080/reset-password",
        validation_alias="PASSWORD_RESET_REDIRECT_URL",
    )

    # Compliance scoring
    trusted_issuer: str = Field(default="RMTC", validation_alias="TRUSTED_ISSUER")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")


def project_ref(url: str) -> str:
    host = urlparse(url).hostname or "localhost"
    return host.split(".", 1)[0]


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()
