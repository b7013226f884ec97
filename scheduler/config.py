# scheduler/config.py

from __future__ import annotations

import logging
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Единый конфиг проекта. Читает переменные окружения.
    Pydantic v2 + pydantic-settings.
    """
    # Переменные приходят из окружения (docker compose), env_file не читаем
    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    # --- Основные настройки ---
    ENVIRONMENT: str = Field("dev", description="Application environment (dev, test, prod)")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    # --- База данных ---
    DATABASE_URL: str = Field(..., description="Async database URL (postgresql+asyncpg://... or sqlite+aiosqlite://...)")

    # --- Redis / Celery ---
    REDIS_URL: str = Field("redis://redis:6379/0", description="URL for Redis connection")
    CELERY_BROKER_URL: Optional[str] = Field(None, description="Celery broker URL (defaults to REDIS_URL)")
    CELERY_RESULT_BACKEND: Optional[str] = Field(None, description="Celery result backend URL (defaults to REDIS_URL)")

    # --- JWT ---
    JWT_SECRET_KEY: str = Field(..., description="Secret key for signing JWT tokens")
    JWT_ALGORITHM: str = Field("HS256", description="Algorithm for JWT signing")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 24 * 7, description="JWT access token lifetime in minutes")

    # --- Уведомления (email) ---
    NOTIFIER_PROVIDER: str = Field("celery", description="Notifier to use ('celery', 'log')")
    SMTP_HOST: Optional[str] = Field(None, description="SMTP server host; email delivery is skipped when unset")
    SMTP_PORT: int = Field(587, description="SMTP server port (465 means implicit SSL)")
    SMTP_USERNAME: Optional[str] = Field(None, description="SMTP login")
    SMTP_PASSWORD: Optional[str] = Field(None, description="SMTP password")
    SMTP_USE_TLS: bool = Field(True, description="Issue STARTTLS on non-SSL ports")
    EMAIL_FROM_ADDRESS: str = Field("Appointments Team <no-reply@localhost>", description="From header for notifications")

    # --- Вложения ---
    ATTACHMENT_PROVIDER: str = Field("local", description="Attachment store ('local', 'gcs')")
    ATTACHMENTS_DIR: str = Field("./media", description="Target directory for the local attachment store")
    ATTACHMENTS_BASE_URL: str = Field("http://localhost:8000/media", description="Public URL prefix for locally stored attachments")
    GCS_BUCKET_NAME: Optional[str] = Field(None, description="Bucket for the GCS attachment store")

    # --- Шина обновлений ---
    UPDATE_BUS_PROVIDER: str = Field("memory", description="Update bus backend ('memory', 'redis')")
    UPDATE_QUEUE_SIZE: int = Field(16, description="Pending updates kept per subscriber before the oldest is dropped")

    @model_validator(mode='after')
    def set_celery_defaults(self) -> 'Settings':
        if self.CELERY_BROKER_URL is None:
            log.debug("Setting CELERY_BROKER_URL default from REDIS_URL")
            self.CELERY_BROKER_URL = self.REDIS_URL
        if self.CELERY_RESULT_BACKEND is None:
            log.debug("Setting CELERY_RESULT_BACKEND default from REDIS_URL")
            self.CELERY_RESULT_BACKEND = self.REDIS_URL
        return self


try:
    settings = Settings()
    log.info("Settings loaded successfully for ENVIRONMENT=%s", settings.ENVIRONMENT)
    log.debug(
        "Loaded settings: DB URL=%s..., Redis URL=%s, notifier=%s, attachments=%s, bus=%s",
        str(settings.DATABASE_URL)[:25],
        settings.REDIS_URL,
        settings.NOTIFIER_PROVIDER,
        settings.ATTACHMENT_PROVIDER,
        settings.UPDATE_BUS_PROVIDER,
    )
except Exception:
    # Без настроек приложение работать не сможет
    log.exception("Failed to instantiate Settings.")
    raise
