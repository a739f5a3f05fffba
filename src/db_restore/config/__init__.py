"""Configuration management: profiles, TOML loading, and settings.

Usage:
    >>> from db_restore.config import load_db_config, get_settings, RestoreSettings
"""

from db_restore.config.loader import get_settings, load_db_config
from db_restore.config.models import DatabaseConfig, DatabaseProfile, RestoreSettings

__all__ = [
    "get_settings",
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "RestoreSettings",
]
