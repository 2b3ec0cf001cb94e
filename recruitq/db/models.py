"""SQLAlchemy ORM models for queued jobs."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from recruitq.db.base import Base
from recruitq.models.job import JobStatus


class QueueJob(Base):
    """One asynchronous job of a named queue."""

    __tablename__ = "queue_jobs"

    job_id = Column(String(64), primary_key=True)
    queue_name = Column(String(64), nullable=False, index=True)
    job_type = Column(String(64), nullable=False, default="default")
    status = Column(String(16), nullable=False, default=JobStatus.PENDING.value, index=True)

    data = Column(JSON, nullable=False, default=dict)
    progress = Column(Integer, nullable=False, default=0)
    result = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    error_code = Column(String(64), nullable=True)
    attempts = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_queue_jobs_queue_status", "queue_name", "status"),
    )

    def __repr__(self) -> str:
        return f"<QueueJob(id={self.job_id}, queue='{self.queue_name}', status={self.status})>"
