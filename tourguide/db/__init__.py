"""Database engine, session management and schema initialization."""

from tourguide.db.session import Database, get_db

__all__ = ["Database", "get_db"]
