from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://observatory:observatory@db:5432/observatory"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    CORS_ORIGINS: str = "*"

    # Shared secret for the update trigger. Unset or shorter than the
    # minimum length means the trigger answers 500 and never runs.
    CRON_SECRET: Optional[str] = None
    CRON_SECRET_MIN_LENGTH: int = 32
    CRON_MIN_INTERVAL_SECONDS: int = 60

    FEED_URL: str = "https://www.forbes.com/forbesapi/person/rtb/0/position/true.json"
    FEED_TIMEOUT_SECONDS: float = 15.0
    FEED_USER_AGENT: str = "Mozilla/5.0 (compatible; WealthObservatory/1.0)"
    FEED_SOURCE_NAME: str = "Forbes Real-Time Billionaires"
    # {date} is replaced with the ISO day being backfilled.
    FEED_HISTORY_URL_TEMPLATE: Optional[str] = "https://www.komed3.com/rtb-api/rtb/{date}.json"
    FEED_HISTORY_SOURCE_NAME: str = "komed3/rtb-api"
    BACKFILL_MAX_DAYS: int = 365

    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_BASE_DELAY_SECONDS: float = 0.1

    # Used only when the site_config row is missing.
    DEFAULT_WEALTH_THRESHOLD_USD: int = 10_000_000
    DEFAULT_TOP_ENTITY_LIMIT: int = 50

    SKIP_ZERO_QUANTITY_ROWS: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency; tests override it with their own Settings."""
    return settings
