"""
Connection Engine (SQLAlchemy)

Purpose
-------
Centralizes database initialization for the application:
- Builds the SQLAlchemy connection URL from environment-backed settings.
- Creates the Engine (connection pool + SQL execution entry point).
- Defines shared MetaData for table and schema objects.
- Exposes a Declarative Base class for ORM models.

Notes
-----
- Uses `URL.create(...)` so credentials stay in configuration.
- SQLite connections are shared across worker threads (analysis stages persist
  through `asyncio.to_thread`), so `check_same_thread` is disabled for it.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import MetaData
from lexease.database.config.config import settings

connection_url = URL.create(
    drivername=settings.DB_DRIVER_NAME,
    username=settings.DB_USERNAME,
    password=settings.DB_PASSWORD,
    host=settings.DB_HOST,
    port=settings.DB_PORT,
    database=settings.DB_DATABASE_NAME,
)
"""SQLAlchemy connection URL built from Settings."""

connect_args = {"check_same_thread": False} if settings.DB_DRIVER_NAME.startswith("sqlite") else {}

connection_engine = create_engine(connection_url, connect_args=connect_args, pool_pre_ping=True)
"""Engine object: core interface to the database (connections, pooling, SQL execution)."""

metadata = MetaData()
"""Schema-level information about tables, constraints and indexes, shared across all models."""

declarativeBase = declarative_base(metadata=metadata)
"""Root class for ORM models. All entities inherit from it."""


def create_tables() -> None:
    """Create every table registered on `metadata` that does not exist yet."""
    # entities register themselves on import
    import lexease.database.entities.documents  # noqa: F401
    import lexease.database.entities.messages  # noqa: F401

    metadata.create_all(connection_engine)
