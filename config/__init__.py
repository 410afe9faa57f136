"""Configuration module for HealthOS."""

from config.settings import (
    settings,
    get_database_engine,
    get_session_maker,
    validate_settings,
)

__all__ = [
    "settings",
    "get_database_engine",
    "get_session_maker",
    "validate_settings",
]
