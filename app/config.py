from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.storage.base import MAX_IMAGE_SIZE as DEFAULT_MAX_IMAGE_SIZE


class Settings(BaseSettings):
    """Application settings loaded from environment variables or `.env`."""

    APP_NAME: str = "Product Catalog API"
    API_PREFIX: str = "/api/v1"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./catalog.db"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:3002",
    ]

    # Redis cache for product details
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL: int = 300  # seconds

    # Image storage: "local" or "cloudinary"
    ASSET_STORE: str = "local"
    BASE_URL: str = "http://localhost:3000"
    UPLOADS_DIR: str = "uploads"
    UPLOADS_URL_PREFIX: str = "/uploads"
    MAX_IMAGE_SIZE: int = DEFAULT_MAX_IMAGE_SIZE

    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_FOLDER: str = "products"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
