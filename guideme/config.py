"""
Configuration and settings for the Guide Me ABC web service.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Mapping, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Server-only secrets must never be configured under a browser-visible name.
PUBLIC_PREFIX = "NEXT_PUBLIC_"
SERVER_ONLY_SECRETS = (
    "GODMODE_TOKEN",
    "JWT_SECRET",
    "SESSION_SECRET",
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "OAUTH_CLIENT_SECRET",
    "SMTP_PASSWORD",
    "GEMINI_API_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
)


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    site_url: str = Field(default="http://localhost:8000", env="SITE_URL")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # Sessions and tokens
    session_secret: str = Field(default="dev-session-secret", env="SESSION_SECRET")
    jwt_secret: str = Field(default="dev-jwt-secret", env="JWT_SECRET")
    magic_link_ttl_seconds: int = Field(default=15 * 60, env="MAGIC_LINK_TTL_SECONDS")
    access_token_ttl_seconds: int = Field(
        default=60 * 60, env="ACCESS_TOKEN_TTL_SECONDS"
    )
    godmode_token: Optional[str] = Field(default=None, env="GODMODE_TOKEN")

    # Outbound mail for sign-in links
    smtp_host: Optional[str] = Field(default=None, env="SMTP_HOST")
    smtp_port: int = Field(default=587, env="SMTP_PORT")
    smtp_username: Optional[str] = Field(default=None, env="SMTP_USERNAME")
    smtp_password: Optional[str] = Field(default=None, env="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, env="SMTP_USE_TLS")
    mail_from: str = Field(
        default="Guide Me ABC <no-reply@guidemeabc.com>", env="MAIL_FROM"
    )

    # S3-compatible storage for listing media
    storage_endpoint: Optional[str] = Field(default=None, env="STORAGE_ENDPOINT")
    storage_region: Optional[str] = Field(default=None, env="STORAGE_REGION")
    storage_bucket: Optional[str] = Field(default=None, env="STORAGE_BUCKET")
    aws_access_key_id: Optional[str] = Field(default=None, env="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", env="GEMINI_MODEL")

    # OAuth provider (authorization code flow)
    oauth_client_id: Optional[str] = Field(default=None, env="OAUTH_CLIENT_ID")
    oauth_client_secret: Optional[str] = Field(default=None, env="OAUTH_CLIENT_SECRET")
    oauth_authorize_url: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth",
        env="OAUTH_AUTHORIZE_URL",
    )
    oauth_token_url: str = Field(
        default="https://oauth2.googleapis.com/token", env="OAUTH_TOKEN_URL"
    )
    oauth_userinfo_url: str = Field(
        default="https://openidconnect.googleapis.com/v1/userinfo",
        env="OAUTH_USERINFO_URL",
    )
    oauth_scope: str = Field(default="openid email profile", env="OAUTH_SCOPE")

    # Stripe
    stripe_secret_key: Optional[str] = Field(default=None, env="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(
        default=None, env="STRIPE_WEBHOOK_SECRET"
    )
    stripe_starter_price_id: Optional[str] = Field(
        default=None, env="STRIPE_STARTER_PRICE_ID"
    )
    stripe_growth_price_id: Optional[str] = Field(
        default=None, env="STRIPE_GROWTH_PRICE_ID"
    )
    stripe_pro_price_id: Optional[str] = Field(default=None, env="STRIPE_PRO_PRICE_ID")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "GUIDEME_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )


def assert_no_public_secrets(environ: Optional[Mapping[str, str]] = None) -> None:
    """Refuse to start when a server-only secret is exposed under a public name."""
    environ = os.environ if environ is None else environ
    leaked = [
        f"{PUBLIC_PREFIX}{name}"
        for name in SERVER_ONLY_SECRETS
        if environ.get(f"{PUBLIC_PREFIX}{name}")
    ]
    if leaked:
        raise RuntimeError(
            "Server-only secrets must not be public: " + ", ".join(leaked)
        )


DEV_SECRETS = {
    "jwt_secret": "dev-jwt-secret",
    "session_secret": "dev-session-secret",
}


def assert_production_secrets(settings: Settings) -> None:
    """Refuse to run against a real database with the development signing keys."""
    if settings.use_in_memory_backends or not settings.database_url:
        return
    defaults = [
        name.upper()
        for name, value in DEV_SECRETS.items()
        if getattr(settings, name) == value
    ]
    if defaults:
        raise RuntimeError(
            "Set these secrets before using a real database: " + ", ".join(defaults)
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
