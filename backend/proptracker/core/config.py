"""Application configuration using pydantic settings."""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration values for the scraper, the store and the query API."""

    # Persistence is skipped when no database is configured.
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_RECYCLE: int = 1800

    BASE_URL: str = "https://props.cash"
    SPORT: str = "nba"
    SOURCE: str = "props.cash"

    STORAGE_STATE_PATH: str = "./state/storage_state.json"
    LOCK_PATH: str = "./state/.scraper.lock"
    ARTIFACTS_DIR: str = "./artifacts/scrapes"
    LOG_DIR: str = "./logs"

    TABLE_REFRESH_TIMEOUT_MS: int = 15_000
    NAVIGATION_TIMEOUT_MS: int = 30_000
    SESSION_VERIFY_TIMEOUT_MS: int = 30_000
    SCROLL_INTERVAL_MS: int = 600
    MAX_SCROLL_ATTEMPTS: int = 120
    STABLE_SCROLL_THRESHOLD: int = 3
    SCRAPE_RETRY_COUNT: int = 3
    RETRY_BACKOFF_MS: int = 2_000

    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    ENVIRONMENT: str = "development"

    class Config:
        env_file = ".env"


settings = Settings()
