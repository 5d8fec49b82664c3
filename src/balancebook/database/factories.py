"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from balancebook.database.sqlalchemy_db import SQLAlchemyDatabase

DEFAULT_DB_DIR = Path.home() / ".balancebook"


def resolve_database_path(database_path: Optional[str] = None) -> str:
    """Resolve the SQLite file to use.

    Precedence: explicit path, BALANCEBOOK_DB_PATH, ~/.balancebook/balancebook.db.
    The default directory is created on demand.
    """
    database_path = database_path or os.environ.get("BALANCEBOOK_DB_PATH")
    if database_path:
        return database_path

    DEFAULT_DB_DIR.mkdir(exist_ok=True)
    return str(DEFAULT_DB_DIR / "balancebook.db")


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file, resolved as in resolve_database_path

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    return SQLAlchemyDatabase(f"sqlite:///{resolve_database_path(database_path)}")


def create_database(database_url: Optional[str] = None, database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a database from a SQLAlchemy URL, falling back to SQLite.

    Args:
        database_url: Any SQLAlchemy URL; BALANCEBOOK_DATABASE_URL is used when omitted
        database_path: SQLite file used when no URL is configured

    Returns:
        SQLAlchemyDatabase instance
    """
    database_url = database_url or os.environ.get("BALANCEBOOK_DATABASE_URL")
    if database_url:
        return SQLAlchemyDatabase(database_url)
    return create_sqlite_database(database_path)
