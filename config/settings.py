"""Centralized configuration management using environment variables."""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Load environment variables from .env file
load_dotenv()

# Project root directory
ROOT_DIR = Path(__file__).parent.parent


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        """Initialize settings from the environment."""
        # WHOOP OAuth Configuration
        self.WHOOP_CLIENT_ID: str = os.getenv("WHOOP_CLIENT_ID", "")
        self.WHOOP_CLIENT_SECRET: str = os.getenv("WHOOP_CLIENT_SECRET", "")
        self.WHOOP_REDIRECT_URI: str = os.getenv(
            "WHOOP_REDIRECT_URI",
            "http://localhost:3000/auth/callback"
        )

        # Database Configuration
        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL",
            f"sqlite:///{ROOT_DIR}/data/healthos.db"
        )

        # Ensure data directory exists for SQLite
        if self.DATABASE_URL.startswith("sqlite"):
            data_dir = ROOT_DIR / "data"
            data_dir.mkdir(exist_ok=True)

        # App Settings
        self.APP_NAME: str = os.getenv("APP_NAME", "HealthOS")
        self.DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.SQL_ECHO: bool = os.getenv("SQL_ECHO", "False").lower() == "true"

        # WHOOP API Rate Limits (true upstream ceiling is 10000/day)
        self.WHOOP_RATE_LIMIT_MINUTE: int = int(os.getenv("WHOOP_RATE_LIMIT_MINUTE", "90"))
        self.WHOOP_RATE_LIMIT_DAILY: int = int(os.getenv("WHOOP_RATE_LIMIT_DAILY", "9500"))

        # WHOOP API client behaviour
        self.WHOOP_PAGE_SIZE: int = int(os.getenv("WHOOP_PAGE_SIZE", "25"))
        self.WHOOP_TOKEN_REFRESH_MARGIN: int = int(os.getenv("WHOOP_TOKEN_REFRESH_MARGIN", "60"))
        self.WHOOP_REQUEST_TIMEOUT: int = int(os.getenv("WHOOP_REQUEST_TIMEOUT", "30"))
        # 0 means retry 429 responses for as long as the upstream asks
        self.WHOOP_MAX_ATTEMPTS: int = int(os.getenv("WHOOP_MAX_ATTEMPTS", "0"))

        # Sync Settings
        self.SYNC_OVERLAP_HOURS: int = int(os.getenv("SYNC_OVERLAP_HOURS", "2"))


# Global settings instance
settings = Settings()


# Database engine and session management
_engine: Optional[object] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_engine():
    """Get or create database engine singleton."""
    global _engine
    if _engine is None:
        connect_args = {}
        if settings.DATABASE_URL.startswith("sqlite"):
            # SQLite specific configuration
            connect_args = {"check_same_thread": False}

        _engine = create_engine(
            settings.DATABASE_URL,
            connect_args=connect_args,
            echo=settings.SQL_ECHO,
            pool_pre_ping=True,  # Verify connections before using
        )
    return _engine


def get_session_maker() -> sessionmaker:
    """Get or create session maker."""
    global _SessionLocal
    if _SessionLocal is None:
        engine = get_database_engine()
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine
        )
    return _SessionLocal


def validate_settings():
    """Validate all settings are correctly configured."""
    errors = []

    # Check WHOOP credentials
    if not settings.WHOOP_CLIENT_ID or settings.WHOOP_CLIENT_ID == "your_client_id":
        errors.append("WHOOP_CLIENT_ID is not configured")

    if not settings.WHOOP_CLIENT_SECRET or settings.WHOOP_CLIENT_SECRET == "your_client_secret":
        errors.append("WHOOP_CLIENT_SECRET is not configured")

    # Check database URL
    if not settings.DATABASE_URL:
        errors.append("DATABASE_URL is not configured")

    if settings.WHOOP_RATE_LIMIT_MINUTE <= 0 or settings.WHOOP_RATE_LIMIT_DAILY <= 0:
        errors.append("WHOOP rate limits must be positive")

    if errors:
        error_msg = "\n".join([f"  - {err}" for err in errors])
        raise ValueError(f"Configuration errors:\n{error_msg}\n\nPlease update your .env file.")

    return True
