"""Database session management."""

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from recruitq.core.config import settings


@lru_cache()
def get_engine() -> Engine:
    """Create the database engine on first use."""
    if settings.database_url.startswith("sqlite"):
        return create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=5,
        max_overflow=10,
        echo=False,
    )


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Session factory bound to the application engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
