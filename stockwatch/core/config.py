from __future__ import annotations

import os
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Stockwatch"
    ENV: str = "dev"
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None  # Dashboard summary cache; disabled when unset

    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"

    # Alert thresholds
    STOCK_CRITICAL_FLOOR: int = 2  # quantity strictly below this is critical
    EXPIRATION_CRITICAL_DAYS: int = 7
    EXPIRATION_WARNING_DAYS: int = 30
    EXPIRATION_SCAN_WINDOW_DAYS: int = 30  # forward bound of the lot scan

    # Dashboard / listing
    DASHBOARD_RECENT_LIMIT: int = 10
    DASHBOARD_CACHE_TTL_SECONDS: int = 30
    ALERT_LIST_MAX_PAGE_SIZE: int = 100

    # Actor recorded when the engine closes a superseded alert itself
    SYSTEM_ACTOR_ID: int = 0

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        # Convert Heroku's postgres:// URL to postgresql://
        if self.DATABASE_URL and self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = self.DATABASE_URL.replace("postgres://", "postgresql://", 1)

        if self.STOCK_CRITICAL_FLOOR < 1:
            raise ValueError("STOCK_CRITICAL_FLOOR must be at least 1")
        if not 0 < self.EXPIRATION_CRITICAL_DAYS <= self.EXPIRATION_WARNING_DAYS:
            raise ValueError("EXPIRATION_CRITICAL_DAYS must be positive and not exceed EXPIRATION_WARNING_DAYS")
        if self.EXPIRATION_SCAN_WINDOW_DAYS < self.EXPIRATION_WARNING_DAYS:
            raise ValueError("EXPIRATION_SCAN_WINDOW_DAYS must cover EXPIRATION_WARNING_DAYS")

        if self.ENV.lower() == "prod" and not self.DATABASE_URL:
            raise ValueError("Missing required production settings: DATABASE_URL")
        return self


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    DATABASE_URL: str = "sqlite:///./storage/dev.db"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    DATABASE_URL: str = "sqlite:///:memory:"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    LOG_FORMAT: str = "json"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()
