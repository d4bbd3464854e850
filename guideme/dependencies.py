"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from guideme.billing_gateway import StripeGateway
from guideme.config import get_settings
from guideme.db import DbClient, InMemoryDbClient, PostgresDbClient
from guideme.mailer import InMemoryMailer, LoggingMailer, Mailer, SmtpMailer
from guideme.oauth import OAuthClient
from guideme.storage import InMemoryStorageClient, S3StorageClient, StorageClient

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_mailer: Mailer | None = None
_oauth_client: OAuthClient | None = None
_billing_gateway: StripeGateway | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer

    settings = get_settings()
    if settings.use_in_memory_backends:
        _mailer = InMemoryMailer()
    elif settings.smtp_host:
        _mailer = SmtpMailer(
            host=settings.smtp_host,
            sender=settings.mail_from,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    else:
        _mailer = LoggingMailer()
    return _mailer


def get_oauth_client() -> OAuthClient:
    global _oauth_client
    if _oauth_client:
        return _oauth_client

    settings = get_settings()
    _oauth_client = OAuthClient(
        client_id=settings.oauth_client_id,
        client_secret=settings.oauth_client_secret,
        authorize_url=settings.oauth_authorize_url,
        token_url=settings.oauth_token_url,
        userinfo_url=settings.oauth_userinfo_url,
        scope=settings.oauth_scope,
    )
    return _oauth_client


def get_billing_gateway() -> StripeGateway:
    global _billing_gateway
    if _billing_gateway:
        return _billing_gateway

    settings = get_settings()
    _billing_gateway = StripeGateway(
        secret_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        price_ids={
            "starter": settings.stripe_starter_price_id,
            "growth": settings.stripe_growth_price_id,
            "pro": settings.stripe_pro_price_id,
        },
    )
    return _billing_gateway
