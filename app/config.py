from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # env vars take precedence over the .env file
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database Configuration - required from .env
    DATABASE_URL: str

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Transactional email provider (Resend-compatible API)
    RESEND_API_KEY: str = ""
    EMAIL_API_URL: str = "https://api.resend.com/emails"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    # Sender / recipient addresses
    NOTIFICATION_FROM: str = "Contact Form <noreply@websitemybusiness.com>"
    NOTIFICATION_TO: str = "hello@websitemybusiness.com"
    CONFIRMATION_FROM: str = "Website My Business <noreply@websitemybusiness.com>"

    # Contact channels echoed in the confirmation email
    CONTACT_PHONE: str = "+234 8032655092"
    CONTACT_WHATSAPP: str = "+234 8027441364"
    CONTACT_EMAIL: str = "hello@websitemybusiness.com"

    # Notification throttling per submitter address
    RATE_LIMIT_MAX_SUBMISSIONS: int = 3
    RATE_LIMIT_WINDOW_SECONDS: int = 3600

    # Admin authentication
    AUTH_SESSION_TTL_SECONDS: int = 60 * 60 * 24 * 7

    CORS_ALLOW_ORIGINS: list[str] = ["*"]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
