# portfolio_tracker/database.py
"""
Database connection and session management.

Local storage is a single SQLite database:
- File-backed in development and production
- In-memory (StaticPool, one shared connection) in tests
- Foreign keys enforced so ON DELETE rules hold at the database level
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """
    Create a SQLAlchemy engine for local storage.

    Args:
        database_url: Connection string (defaults to settings.database_url)
        echo: Echo SQL statements (defaults to settings.debug)

    Returns:
        Engine: Configured SQLAlchemy engine
    """
    url = database_url or settings.database_url
    echo = settings.debug if echo is None else echo

    if ":memory:" in url:
        logger.info("Configuring in-memory SQLite database")
        engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
    else:
        logger.info(f"Configuring SQLite database at {url}")
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Engines whose tables have been created by this process
_initialized: set[Engine] = set()


def init_db(bind: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind)
    _initialized.add(bind)


def ensure_db(bind: Engine) -> None:
    """init_db once per engine for the life of the process."""
    if bind not in _initialized:
        logger.info(f"Creating missing tables on {bind.url}")
        init_db(bind)


engine = create_db_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """
    Provide a session that commits on success and rolls back on error.

    Tables are created on first use, so a fresh database file works
    without a separate setup step.

    Args:
        factory: Session factory (defaults to SessionLocal)

    Usage:
        with session_scope() as db:
            store = PortfolioStore(db)
            store.create_portfolio(PortfolioCreate(name="Main"))
    """
    factory = factory or SessionLocal
    ensure_db(factory.kw["bind"])
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
