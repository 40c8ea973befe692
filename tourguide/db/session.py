"""Database session management."""
import time
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tourguide.config.settings import Settings
from tourguide.core.logging import get_logger

logger = get_logger(__name__)

SLOW_QUERY_SECONDS = 0.5


class Database:
    """
    Engine and session factory for the persistence collaborator.

    Constructed once at process startup and handed to whatever needs a
    session; nothing in the service reaches for a module-level client.
    """

    def __init__(self, url: str, echo: bool = False, pool_size: int = 20,
                 max_overflow: int = 10, connect_args: Optional[dict] = None):
        self.url = url
        self.engine: Engine = self._create_engine(
            url, echo, pool_size, max_overflow, dict(connect_args or {})
        )
        self.session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        event.listen(self.engine, "before_cursor_execute", _before_cursor_execute)
        event.listen(self.engine, "after_cursor_execute", _after_cursor_execute)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.get_database_url(),
            echo=settings.DB_ECHO,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_OVERFLOW,
            connect_args=settings.DB_CONNECT_ARGS,
        )

    @staticmethod
    def _create_engine(url, echo, pool_size, max_overflow, connect_args) -> Engine:
        if url.startswith("sqlite"):
            # SQLite connections are shared across the request threadpool
            connect_args.setdefault("check_same_thread", False)
            kwargs = {"connect_args": connect_args, "echo": echo}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            engine = create_engine(url, **kwargs)
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine

        return create_engine(
            url,
            pool_pre_ping=True,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=3600,
            echo=echo,
            connect_args=connect_args,
        )

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - start timer"""
    conn.info.setdefault('query_start_time', []).append(time.time())


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log query execution time - stop timer and log if slow query"""
    total_time = time.time() - conn.info['query_start_time'].pop()

    if total_time > SLOW_QUERY_SECONDS:
        logger.warning(
            f"Slow query detected ({total_time:.4f}s): {statement[:100]}..."
        )


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency function that yields a database session.

    Usage in FastAPI endpoints:
        @router.get("/items/")
        def read_items(db: Session = Depends(get_db)):
            ...
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
