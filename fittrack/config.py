"""
Configuration management for fit-daily.

Loads database and logging settings from environment variables.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
load_dotenv()

FITTRACK_LOG_LEVEL = os.getenv("FITTRACK_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_db_path() -> Path:
    """Get the database path, honouring FITTRACK_DB_PATH if set."""
    env_path = os.environ.get("FITTRACK_DB_PATH")
    if env_path:
        return Path(env_path)
    return Path.home() / ".fit-daily" / "fitness.db"


def validate_config():
    """Validate that the configuration values are usable."""
    level = os.getenv("FITTRACK_LOG_LEVEL", "INFO").upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(
            f"Invalid FITTRACK_LOG_LEVEL: {level}\n"
            "Use one of DEBUG, INFO, WARNING, ERROR or CRITICAL."
        )


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once for the app and the CLI."""
    level_name = (level or FITTRACK_LOG_LEVEL).upper()
    logging.basicConfig(
        level=logging.getLevelNamesMapping().get(level_name, logging.INFO),
        format=LOG_FORMAT,
    )
