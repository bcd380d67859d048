"""
Supabase configuration for the laundry back office
Values come from the environment, optionally loaded from a local .env file
"""

from functools import lru_cache
from typing import Dict, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Supabase project
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""

    # Delay before the follow-up fetch that picks up joined columns after a create
    RECONCILE_DELAY_SECONDS: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings (read once)"""
    return Settings()


def get_supabase_config(settings: Optional[Settings] = None) -> Dict[str, str]:
    """Get Supabase URL and anon key, failing loudly when either is missing"""
    settings = settings or get_settings()

    if not settings.SUPABASE_URL:
        raise ValueError("SUPABASE_URL environment variable is required")
    if not settings.SUPABASE_ANON_KEY:
        raise ValueError("SUPABASE_ANON_KEY environment variable is required")

    return {
        "url": settings.SUPABASE_URL,
        "anon_key": settings.SUPABASE_ANON_KEY,
    }
