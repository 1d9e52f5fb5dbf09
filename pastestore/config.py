"""
Configuration module for pastestore.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "")
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "redis").lower()
    DEBUG: bool = _flag("DEBUG", "True")
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
    TEST_MODE: bool = _flag("TEST_MODE", "0")
    LIST_DEFAULT_LIMIT: int = int(os.getenv("LIST_DEFAULT_LIMIT", "100"))
    CONSUME_MAX_RETRIES: int = int(os.getenv("CONSUME_MAX_RETRIES", "50"))
    CREATE_MAX_ATTEMPTS: int = int(os.getenv("CREATE_MAX_ATTEMPTS", "3"))
    MAX_BODY_BYTES: int = int(os.getenv("MAX_BODY_BYTES", str(1024 * 1024)))

    def __init__(self, **overrides):
        """Allow per-instance overrides, mostly for tests."""
        for name, value in overrides.items():
            if not hasattr(type(self), name):
                raise AttributeError(f"Unknown setting: {name}")
            setattr(self, name, value)


settings = Settings()
