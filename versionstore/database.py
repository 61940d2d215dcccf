"""Database configuration and session management."""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import settings


def make_engine(database_url: str) -> Engine:
    """Create an engine with database-specific tuning."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False}
        )

        # SQLite defaults foreign_keys to OFF.
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(database_url, pool_pre_ping=True)


engine = make_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()


def get_db():
    """Yield a database session for one unit of work.

    Rolls back the transaction on unhandled exceptions so that the
    connection is returned to the pool in a clean state.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """Create the version and audit tables if they do not exist."""
    from . import models  # noqa: F401  (registers the mappers)

    Base.metadata.create_all(bind=bind or engine)
