# tourguide/db/init_db.py
"""Database initialization utilities."""
from tourguide.core.logging import get_logger
from tourguide.db.base import Base, import_models
from tourguide.db.session import Database

logger = get_logger(__name__)


def init_db(database: Database) -> None:
    """
    Initialize the database by creating all tables.

    Note: This is suitable for development/testing only.
    Production schemas should be managed with migrations.
    """
    import_models()
    Base.metadata.create_all(bind=database.engine)
    logger.info("Database tables ensured", extra={"tables": len(Base.metadata.tables)})


def drop_db(database: Database) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Use with caution.
    Only for development/testing purposes.
    """
    import_models()
    Base.metadata.drop_all(bind=database.engine)
    logger.warning("All database tables dropped")
