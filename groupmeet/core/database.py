"""Database configuration and session management for SQLite.

This module configures the SQLite database engine with settings suited to
the engine's write pattern: WAL mode for concurrent access and foreign key
enforcement for data integrity.

SQLite Configuration Choices:
    - **WAL (Write-Ahead Logging)**: Allows concurrent readers while writing.
      The reminder job writes tokens while request handlers read and update
      meetings and attendee rows.

    - **Foreign Keys**: Disabled by default in SQLite. Enabled so attendee
      rows and reminder tokens cannot point at a meeting that no longer exists.

    - **check_same_thread=False**: Required for FastAPI, whose dependency
      injection may hand a session to a different thread than the one that
      opened the connection.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from groupmeet.core.config import settings

connect_args = {"check_same_thread": False}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug,  # Log SQL statements when DEBUG=true
)


@sa_event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Configure SQLite pragmas on each new connection.

    These settings are connection-level, not database-level, so they must
    be set each time a new connection is established from the pool.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_and_tables():
    """Create all database tables."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
