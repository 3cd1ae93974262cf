"""
Configuration management for the site backend.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Saasha Site API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Gallery, admin CMS and site settings backend for the nonprofit website"
    LOG_LEVEL: str = "INFO"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    # Empty means a local SQLite file is used (development only)
    DATABASE_URL: str = ""
    # Seconds before a single statement is abandoned (asyncpg only)
    DB_COMMAND_TIMEOUT: float = 30.0

    # Cloudinary Configuration
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "gallery"

    # Admin Password (bcrypt hash, see scripts/generate_password_hash.py)
    ADMIN_PASSWORD_HASH: str = ""

    # JWT Configuration
    # Generate with: openssl rand -hex 32
    JWT_SECRET_KEY: str = "change-me-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Maintenance mode bypass for previewing the site while it is closed
    DEV_ACCESS_KEY: str = ""
    # How long a synced site flag is trusted before it is read again
    SETTINGS_CACHE_SECONDS: float = 30.0

    # Upper bound on images committed in one batch
    MAX_BATCH_SIZE: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
