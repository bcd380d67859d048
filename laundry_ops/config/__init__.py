"""
Configuration and environment setup.

Settings are read from environment variables (and a local .env file when
present) through pydantic-settings.
"""

from .supabase_config import Settings, get_settings, get_supabase_config

__all__ = ["Settings", "get_settings", "get_supabase_config"]
