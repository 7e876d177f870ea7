"""
Configuration settings for CIRY Backend.

Uses Pydantic Settings for environment variable management.
"""

import os
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    ENV: str = Field(default="development", env="ENV")
    DEBUG: bool = Field(default=False, env="DEBUG")
    LOG_LEVEL: str = Field(default="INFO", env="LOG_LEVEL")

    # Logging Control
    ENABLE_FILE_LOGGING: bool = Field(default=True, env="ENABLE_FILE_LOGGING")
    ENABLE_REQUEST_LOGGING: bool = Field(default=True, env="ENABLE_REQUEST_LOGGING")

    # Application
    APP_NAME: str = Field(default="CIRY Backend", env="APP_NAME")
    VERSION: str = Field(default="1.0.0", env="VERSION")
    FRONTEND_URL: str = Field(default="https://ciry.app", env="FRONTEND_URL")
    TIMEZONE: str = Field(default="Europe/Rome", env="TIMEZONE")

    # Server
    HOST: str = Field(default="0.0.0.0", env="HOST")
    PORT: int = Field(default=8000, env="PORT")

    REDIS_URL: str = Field(default="redis://localhost:6379/0", env="REDIS_URL")
    CELERY_BROKER_URL: Optional[str] = Field(default=None, env="CELERY_BROKER_URL")
    CELERY_RESULT_BACKEND: Optional[str] = Field(default=None, env="CELERY_RESULT_BACKEND")

    # Run periodic jobs in-process (deployments without celery beat)
    ENABLE_SCHEDULER: bool = Field(default=False, env="ENABLE_SCHEDULER")

    origins: List[str] = [
        "http://localhost:5000",
        "http://localhost:5173",
        "https://ciry.app",
    ]

    DATABASE_URL: Optional[str] = Field(default=None, env="DATABASE_URL")
    PRODUCTION_DATABASE_URL: Optional[str] = Field(default=None, env="PRODUCTION_DATABASE_URL")
    DATABASE_POOL_SIZE: int = Field(default=10, env="DATABASE_POOL_SIZE")
    DATABASE_MAX_OVERFLOW: int = Field(default=20, env="DATABASE_MAX_OVERFLOW")

    @property
    def database_url(self) -> str:
        if self.ENV == "development":
            return self.DATABASE_URL or ""
        return self.PRODUCTION_DATABASE_URL or ""

    @property
    def broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.REDIS_URL

    @property
    def result_backend(self) -> str:
        return self.CELERY_RESULT_BACKEND or self.REDIS_URL

    # Security
    SECRET_KEY: str = Field(default="secret-key", env="SECRET_KEY")
    SESSION_COOKIE_NAME: str = Field(default="session_id", env="SESSION_COOKIE_NAME")
    SESSION_DURATION: int = 60 * 24 * 30  # minutes, 30 days
    SESSION_COOKIE_SECURE: bool = Field(default=True, env="SESSION_COOKIE_SECURE")

    ADMIN_USERNAME: Optional[str] = Field(default=None, env="ADMIN_USERNAME")
    ADMIN_PASSWORD: Optional[str] = Field(default=None, env="ADMIN_PASSWORD")

    # Email Configuration
    MAILGUN_API_URL: Optional[str] = Field(default=None, env="MAILGUN_API_URL")
    MAILGUN_API_KEY: Optional[str] = Field(default=None, env="MAILGUN_API_KEY")
    MAIL_FROM: str = Field(default="CIRY <noreply@ciry.app>", env="MAIL_FROM")

    # Twilio (messaging)
    TWILIO_ACCOUNT_SID: Optional[str] = Field(default=None, env="TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN: Optional[str] = Field(default=None, env="TWILIO_AUTH_TOKEN")
    TWILIO_PHONE_NUMBER: Optional[str] = Field(default=None, env="TWILIO_PHONE_NUMBER")
    TWILIO_WHATSAPP_FROM_NUMBER: Optional[str] = Field(default=None, env="TWILIO_WHATSAPP_FROM_NUMBER")

    # Twilio (video)
    TWILIO_API_KEY_SID: Optional[str] = Field(default=None, env="TWILIO_API_KEY_SID")
    TWILIO_API_KEY_SECRET: Optional[str] = Field(default=None, env="TWILIO_API_KEY_SECRET")
    TWILIO_STATUS_CALLBACK_URL: Optional[str] = Field(default=None, env="TWILIO_STATUS_CALLBACK_URL")
    VIDEO_TOKEN_TTL: int = Field(default=3600, env="VIDEO_TOKEN_TTL")

    # Web Push
    VAPID_PUBLIC_KEY: Optional[str] = Field(default=None, env="VAPID_PUBLIC_KEY")
    VAPID_PRIVATE_KEY: Optional[str] = Field(default=None, env="VAPID_PRIVATE_KEY")
    VAPID_SUBJECT: str = Field(default="mailto:support@ciry.app", env="VAPID_SUBJECT")

    OPENAI_MODEL: str = Field(default="gpt-4o-mini", env="OPENAI_MODEL")
    OPENAI_MAX_TOKENS: Optional[int] = Field(default=800, env="OPENAI_MAX_TOKENS")
    OPENAI_TEMPERATURE: Optional[float] = Field(default=0.4, env="OPENAI_TEMPERATURE")
    OPENAI_API_KEY: Optional[str] = Field(default=None, env="OPENAI_API_KEY")

    # Wearables
    NOTIFICATION_DEBOUNCE_MINUTES: int = Field(default=15, env="NOTIFICATION_DEBOUNCE_MINUTES")
    WEARABLE_REPORT_WINDOW_DAYS: int = Field(default=7, env="WEARABLE_REPORT_WINDOW_DAYS")

    API_KEY_CACHE_SECONDS: int = 300

    # Sentry (Optional)
    SENTRY_DSN: Optional[str] = Field(default=None, env="SENTRY_DSN")
    SENTRY_ENVIRONMENT: str = Field(default="development", env="SENTRY_ENVIRONMENT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()


def get_env_file() -> str:
    """Get the appropriate environment file based on ENV setting."""
    env_file = f".env.{settings.ENV}"
    if os.path.exists(env_file):
        return env_file
    return ".env"


# Update settings with environment-specific file
settings = Settings(_env_file=get_env_file())
