"""Logging setup for the sync engine."""

import logging
import sys
from pathlib import Path
from typing import Optional
from config.settings import settings

ROOT_LOGGER = "healthos"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_DIR = Path(__file__).parent.parent / "logs"

# Chatty libraries that log every HTTP connection / SQL statement
NOISY_LOGGERS = ("urllib3", "requests", "sqlalchemy.engine")


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach handlers to the ``healthos`` logger once.

    Module loggers are its children and propagate to it. Outside debug mode
    records are also written to ``logs/healthos_sync.log``.

    Args:
        level: Level name; defaults to LOG_LEVEL
        log_file: File name under logs/; forces file logging when given

    Returns:
        The configured root logger of the project
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(_level(level or settings.LOG_LEVEL))
    if root.handlers:
        return root

    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file or not settings.DEBUG:
        LOG_DIR.mkdir(exist_ok=True)
        file_name = log_file or f"{settings.APP_NAME.lower().replace(' ', '_')}_sync.log"
        file_handler = logging.FileHandler(LOG_DIR / file_name, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Keep project output off the interpreter's root logger
    root.propagate = False
    quiet_third_party_loggers()
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Logger for a module, nested under ``healthos``.

    >>> get_logger("utils.sync_manager").name
    'healthos.utils.sync_manager'
    """
    configure_logging()
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def quiet_third_party_loggers(level: int = logging.WARNING):
    """Raise the threshold of HTTP / SQL library loggers."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def log_exception(logger: logging.Logger, exc: Exception, context: str = ""):
    """Log an exception with its type, message and traceback."""
    prefix = f"{context}: " if context else ""
    logger.error(f"{prefix}{type(exc).__name__}: {exc}", exc_info=True)
