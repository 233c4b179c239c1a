"""Database factory functions for creating database instances."""

from pathlib import Path
from typing import Optional

from ledgerlink.config import Settings, load_settings
from ledgerlink.database.sqlalchemy_db import SQLAlchemyDatabase

DEFAULT_DB_DIR = Path.home() / ".ledgerlink"
MEMORY = ":memory:"


def resolve_database_path(
    database_path: Optional[str] = None, settings: Optional[Settings] = None
) -> str:
    """Pick the SQLite file to use.

    Order: explicit path, ``settings.database_path`` (LEDGERLINK_DB_PATH),
    then ~/.ledgerlink/ledgerlink.db, creating the directory if needed.
    """
    if database_path:
        return database_path

    settings = settings or load_settings()
    if settings.database_path:
        return settings.database_path

    DEFAULT_DB_DIR.mkdir(parents=True, exist_ok=True)
    return str(DEFAULT_DB_DIR / "ledgerlink.db")


def create_sqlite_database(
    database_path: Optional[str] = None, settings: Optional[Settings] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file, or ":memory:"
        settings: Settings to read LEDGERLINK_DB_PATH from, loaded from the
            environment when omitted

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    path = resolve_database_path(database_path, settings)
    if path == MEMORY:
        return SQLAlchemyDatabase("sqlite://")
    return SQLAlchemyDatabase(f"sqlite:///{path}")
