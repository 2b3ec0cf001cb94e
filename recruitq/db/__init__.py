"""Database package."""

from recruitq.db.base import Base
from recruitq.db.models import QueueJob
from recruitq.db.session import get_engine, get_session_factory

__all__ = ["Base", "QueueJob", "get_engine", "get_session_factory"]
