"""
Configuration management for the application.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent / ".env"
if env_path.exists():
    load_dotenv(env_path, override=True)
else:
    # Try loading from current directory as fallback
    load_dotenv(override=True)


class Config:
    """Application configuration."""

    # "development", "test" or "production"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database used by the sql auth store
    DB_DIR: str = os.getenv("DB_DIR", "tmp")
    DATABASE_URL: str | None = os.getenv("DATABASE_URL")

    # API configuration
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT.strip().lower() == "production"

    @classmethod
    def get_db_path(cls, filename: str) -> str:
        """Get full database path."""
        os.makedirs(cls.DB_DIR, exist_ok=True)
        return os.path.join(cls.DB_DIR, filename)

    @classmethod
    def get_database_url(cls) -> str:
        """Database URL, defaulting to a sqlite file under DB_DIR."""
        if cls.DATABASE_URL:
            return cls.DATABASE_URL
        return f"sqlite:///{cls.get_db_path('auth.db')}"
