"""
Engine and session handling.

There is no module-level engine: ``create_app`` builds one ``Database`` per
application and stores it in ``app.extensions["pharmacy_db"]``. Services that
own transactions receive the ``Database``; everything else receives a
``Session`` opened by the caller through ``Database.session_scope``.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from flask import current_app
from sqlalchemy import create_engine, event, exc
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pharmacy_pos.core.config import Settings
from pharmacy_pos.core.logging_config import register_query_timing

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()

EXTENSION_KEY = "pharmacy_db"

_TIMEOUT_MARKERS = (
    "database is locked",
    "database table is locked",
    "timeout",
    "timed out",
    "canceling statement",
    "lock not available",
)


def make_engine(settings: Settings) -> Engine:
    """Build an engine whose every database call carries a timeout.

    PostgreSQL gets a pooled engine with ``connect_timeout`` and a
    per-connection ``statement_timeout``. SQLite gets the busy ``timeout``
    (how long a writer waits for the file lock); in-memory SQLite shares one
    connection through ``StaticPool`` so every session sees the same data.
    """
    url = make_url(settings.database_url)
    timeout = settings.db_operation_timeout

    if url.drivername.startswith("postgres"):
        engine = create_engine(
            settings.database_url,
            pool_size=10,
            max_overflow=20,
            pool_timeout=timeout,
            pool_pre_ping=True,
            pool_recycle=3600,
            connect_args={
                "application_name": "pharmacy_pos",
                "connect_timeout": max(1, int(timeout)),
                "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
            },
            echo=False,
        )
    elif url.drivername.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": timeout}
        if url.database in (None, "", ":memory:"):
            engine = create_engine(
                settings.database_url,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                settings.database_url,
                connect_args=connect_args,
                pool_timeout=timeout,
            )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    else:
        engine = create_engine(settings.database_url, pool_timeout=timeout)

    register_query_timing(engine)
    logger.info(
        "Database engine created",
        extra={"context": {"driver": url.drivername, "timeout_s": timeout}},
    )
    return engine


def is_timeout_error(error: BaseException) -> bool:
    """True for pool exhaustion, lock waits and statement timeouts."""
    if isinstance(error, exc.TimeoutError):
        return True
    if isinstance(error, exc.OperationalError):
        text = str(getattr(error, "orig", error)).lower()
        return any(marker in text for marker in _TIMEOUT_MARKERS)
    return False


class Database:
    """Explicit data-access handle: one engine and its session factory."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(make_engine(settings))

    def new_session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope: commit on success, rollback on error."""
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        # Import models so they register on Base.metadata
        from pharmacy_pos.db import base  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        from pharmacy_pos.db import base  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(app=None) -> Database:
    """Return the ``Database`` bound to ``app`` (default: the current app)."""
    target = app or current_app
    database: Optional[Database] = target.extensions.get(EXTENSION_KEY)
    if database is None:
        raise RuntimeError("Database is not initialised for this application")
    return database
