"""SQLAlchemy base class and model imports."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models here so Alembic can detect them
from recruitq.db.models import QueueJob  # noqa: F401, E402
