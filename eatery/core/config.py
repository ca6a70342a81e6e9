"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    foursquare_api_key: str
    database_url: str
    foursquare_api_url: str = "https://places-api.foursquare.com"
    foursquare_api_version: str = "2025-06-17"
    photo_size: str = "original"
    default_search_near: str = "Costa Rica"
    db_pool_max: int = 5


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    foursquare_api_key = os.getenv("FOURSQUARE_API_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")
    foursquare_api_url = os.getenv("FOURSQUARE_API_URL", "https://places-api.foursquare.com").rstrip("/")
    foursquare_api_version = os.getenv("FOURSQUARE_API_VERSION", "2025-06-17")
    photo_size = os.getenv("FOURSQUARE_PHOTO_SIZE", "original").strip() or "original"
    default_search_near = os.getenv("DEFAULT_SEARCH_NEAR", "Costa Rica")
    db_pool_max = int(os.getenv("DB_POOL_MAX", "5"))

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if not foursquare_api_key:
        logger.warning("FOURSQUARE_API_KEY is not configured; Foursquare requests will fail.")

    return Settings(
        foursquare_api_key=foursquare_api_key,
        database_url=database_url,
        foursquare_api_url=foursquare_api_url,
        foursquare_api_version=foursquare_api_version,
        photo_size=photo_size,
        default_search_near=default_search_near,
        db_pool_max=db_pool_max,
    )
