"""
Centralized configuration for the Storeroom backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8090,http://localhost:5173,http://127.0.0.1:8090"
    ).split(",")

    # Alias/category table for the loader; empty means the bundled default
    RECONCILE_CONFIG_PATH: str = os.environ.get("STOREROOM_RECONCILE_CONFIG", "")

    # Upper bound on live in-memory sessions; oldest is evicted first
    MAX_SESSIONS: int = int(os.environ.get("STOREROOM_MAX_SESSIONS", "50"))

    # Largest accepted upload in bytes
    MAX_UPLOAD_BYTES: int = int(os.environ.get("STOREROOM_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
