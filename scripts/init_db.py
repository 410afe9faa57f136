"""Database initialization script."""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import inspect
from sqlalchemy.orm import sessionmaker
from config.settings import settings, get_database_engine
from models import Base
from utils.local_store import LocalStore
from utils.logger import get_logger

logger = get_logger(__name__)


def init_database(drop_existing: bool = False, engine=None) -> bool:
    """
    Initialize the database schema and seed sync metadata.

    Args:
        drop_existing: If True, drop all existing tables before creating
        engine: Engine to initialize (defaults to the configured one)

    Returns:
        True on success
    """
    logger.info("Initializing database...")
    logger.info(f"Database URL: {settings.DATABASE_URL}")

    try:
        engine = engine or get_database_engine()

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(engine)
            logger.info("Existing tables dropped")

        logger.info("Creating database schema...")
        Base.metadata.create_all(engine)

        table_names = Base.metadata.tables.keys()
        logger.info(f"Created {len(table_names)} tables:")
        for table_name in sorted(table_names):
            logger.info(f"  - {table_name}")

        # One metadata row per data type, status 'never'
        LocalStore(sessionmaker(bind=engine, autoflush=False)).seed_sync_metadata()
        logger.info("Sync metadata seeded")

        logger.info("Database initialization completed successfully!")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize database: {e}", exc_info=True)
        return False


def check_database(engine=None) -> bool:
    """Check database connection and schema."""
    logger.info("Checking database connection...")

    try:
        engine = engine or get_database_engine()

        with engine.connect():
            logger.info("Database connection successful")

        existing_tables = inspect(engine).get_table_names()
        logger.info(f"Found {len(existing_tables)} existing tables:")
        for table_name in sorted(existing_tables):
            logger.info(f"  - {table_name}")

        required_tables = set(Base.metadata.tables.keys())
        missing_tables = required_tables - set(existing_tables)

        if missing_tables:
            logger.warning(f"Missing tables: {missing_tables}")
            logger.warning("Run 'python scripts/init_db.py' to create missing tables")
            return False

        logger.info("All required tables exist")
        return True

    except Exception as e:
        logger.error(f"Database check failed: {e}", exc_info=True)
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize HealthOS database")
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables before creating (WARNING: deletes all data)"
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Check database connection and schema without making changes"
    )

    args = parser.parse_args()

    if args.check:
        success = check_database()
    else:
        if args.drop:
            confirm = input(
                "WARNING: This will delete all existing data. Are you sure? (yes/no): "
            )
            if confirm.lower() != "yes":
                print("Aborted.")
                sys.exit(0)

        success = init_database(drop_existing=args.drop)

    sys.exit(0 if success else 1)
