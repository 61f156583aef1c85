import logging
import os
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from taskboard.config import settings

logger = logging.getLogger(__name__)

# Default to a local SQLite database if no DATABASE_URL is provided or usable
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(BASE_DIR, ".."))
DEFAULT_DB_PATH = os.path.join(PROJECT_ROOT, "taskboard.db")


@event.listens_for(Engine, "connect")
def _configure_sqlite(dbapi_connection, connection_record):
    """Enforce foreign keys and wait on locks instead of failing immediately."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={int(settings.SQLITE_BUSY_TIMEOUT_SECONDS * 1000)}")
    cursor.close()
    # Transactions are opened by _begin_immediate below, not by pysqlite
    dbapi_connection.isolation_level = None


@event.listens_for(Engine, "begin")
def _begin_immediate(conn):
    """Take SQLite's write lock when the transaction starts.

    pysqlite only opens a transaction before DML, so a neighbour read would
    otherwise run outside it and another writer could commit in between.
    ``SELECT ... FOR UPDATE`` covers this on PostgreSQL.
    """
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _build_engine():
    """Create the SQLAlchemy engine, preferring the configured DATABASE_URL."""
    database_url = settings.DATABASE_URL if getattr(settings, "DATABASE_URL", None) else None

    # Attempt to use the configured database URL if available
    if database_url:
        try:
            engine = create_engine(database_url, pool_pre_ping=True)
            # Ensure the target database is reachable; otherwise fall back to SQLite
            with engine.connect() as connection:  # noqa: F841
                pass
            return engine
        except ModuleNotFoundError as exc:
            # Some SQL drivers (e.g. psycopg2) might be missing in the execution environment.
            logger.warning("Database driver unavailable (%s), falling back to SQLite", exc)
        except Exception as exc:
            logger.warning("Configured database unreachable (%s), falling back to SQLite", exc)

    # Fall back to SQLite stored in the project root
    sqlite_url = f"sqlite:///{DEFAULT_DB_PATH}"
    return create_engine(sqlite_url, connect_args={"check_same_thread": False})


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for the board models
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
