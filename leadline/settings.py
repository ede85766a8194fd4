"""Application settings using Pydantic BaseSettings."""

import os
import re

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_async_database_url() -> str:
    """Get database URL converted for asyncpg driver."""
    url = os.environ.get("DATABASE_URL", "") or "sqlite+aiosqlite:///./leadline.db"
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg takes ssl, not sslmode
    if "sslmode=" in url:
        url = re.sub(r"[?&]sslmode=[^&]*", "", url)
        url = url.rstrip("?&")
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Postgres
    database_url: str = ""

    # Redis (optional, used for the number -> tenant cache)
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = False
    tenant_cache_ttl_seconds: int = 300

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    api_v1_prefix: str = "/api/v1"
    default_tenant_slug: str | None = None

    # Twilio
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None
    twilio_webhook_url_base: str | None = None  # Public base URL Twilio calls back to
    twilio_validate_signatures: bool = True

    # Call forwarding
    owner_phone_number: str | None = None  # Used when a tenant has no forward-to number
    dial_timeout_seconds: int = 20
    min_owner_answer_seconds: int = 5  # Shorter "completed" legs are carrier voicemail
    voicemail_max_length_seconds: int = 60

    # SMS copy
    auto_sms_template: str = (
        "Thanks for calling {business_name}. Sorry I couldn't pick up right now. "
        "I'll call you back today. Thanks again!"
    )
    sms_business_name: str | None = None
    sms_auto_reply_template: str = (
        "Thanks for texting {business_name}! We received your message and will "
        "get back to you {callback_window}. For anything urgent call {urgent_phone}. "
        "Reply STOP to opt-out, HELP for support."
    )
    default_callback_window: str = "within one business day"
    compliance_copy_version: str = "2024-01"

    # Notifications
    enable_email_notifications: bool = True
    enable_sms_notifications: bool = True
    notification_timeout_seconds: float = 5.0
    notification_fallback_email: str | None = None

    # SendGrid
    sendgrid_api_key: str | None = None
    sendgrid_from_email: str = "notifications@nevermisslead.com"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
