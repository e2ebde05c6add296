"""Database session management for PostgreSQL."""

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from devotion_notify.config import get_settings
from devotion_notify.errors import ConfigurationError


def normalize_database_url(url: str) -> str:
    """Convert postgresql:// to postgresql+psycopg:// for the psycopg v3 driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


@lru_cache
def get_engine() -> Engine:
    """Create the engine on first use so imports never need a database."""
    settings = get_settings()
    if not settings.DATABASE_URL:
        raise ConfigurationError("DATABASE_URL environment variable is required")

    database_url = normalize_database_url(settings.DATABASE_URL)
    connect_args = {"sslmode": "require"} if database_url.startswith("postgresql") else {}

    return create_engine(
        database_url,
        echo=False,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def get_session() -> Generator[Session, None, None]:
    """Get database session with automatic cleanup."""
    with Session(get_engine()) as session:
        yield session
