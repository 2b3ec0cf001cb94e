"""Durable job state for one queue, backed by SQLAlchemy."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from recruitq.core.errors import InvalidTransitionError, NotFoundError
from recruitq.db.models import QueueJob
from recruitq.models.job import Job, JobError, JobStatus, QueueStats

logger = logging.getLogger(__name__)


class JobStore:
    """
    Persistence and status query surface for the jobs of one queue.

    Every transition is a single conditional UPDATE filtered on the allowed
    source states, committed in one transaction. Calls are serialised by a
    lock because the store is shared by worker threads.
    """

    def __init__(self, session_factory: sessionmaker, queue_name: str):
        self.session_factory = session_factory
        self.queue_name = queue_name
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Creation and queries
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], job_type: str = "default") -> str:
        """Persist a new pending job and return its id."""
        job_id = str(uuid4())
        now = datetime.utcnow()
        row = QueueJob(
            job_id=job_id,
            queue_name=self.queue_name,
            job_type=job_type,
            status=JobStatus.PENDING.value,
            data=data,
            progress=0,
            attempts=0,
            created_at=now,
            updated_at=now,
        )
        with self._lock, self.session_factory() as db:
            db.add(row)
            db.commit()

        logger.info(f"[{self.queue_name}] Created job {job_id} (type={job_type})")
        return job_id

    def get_status(self, job_id: str) -> Job:
        """Get the current snapshot of a job. Raises NotFoundError if unknown."""
        with self._lock, self.session_factory() as db:
            row = self._get_row(db, job_id)
            return self._to_job(row)

    def get_progress(self, job_id: str) -> int:
        """Last recorded progress (0 if the job has not started)."""
        return self.get_status(job_id).progress

    def list_all(self) -> List[Job]:
        """Every job of this queue in creation order."""
        with self._lock, self.session_factory() as db:
            rows = (
                db.query(QueueJob)
                .filter(QueueJob.queue_name == self.queue_name)
                .order_by(QueueJob.created_at)
                .all()
            )
            return [self._to_job(row) for row in rows]

    def list_ids(self, status: JobStatus) -> List[str]:
        """Ids of jobs in the given status, oldest first."""
        with self._lock, self.session_factory() as db:
            rows = (
                db.query(QueueJob.job_id)
                .filter(QueueJob.queue_name == self.queue_name, QueueJob.status == status.value)
                .order_by(QueueJob.created_at)
                .all()
            )
            return [row.job_id for row in rows]

    def count_by_status(self) -> QueueStats:
        """Aggregate counts per status bucket."""
        with self._lock, self.session_factory() as db:
            rows = (
                db.query(QueueJob.status, func.count(QueueJob.job_id))
                .filter(QueueJob.queue_name == self.queue_name)
                .group_by(QueueJob.status)
                .all()
            )
        counts = {status: count for status, count in rows}
        return QueueStats(
            waiting=counts.get(JobStatus.PENDING.value, 0),
            active=counts.get(JobStatus.ACTIVE.value, 0),
            completed=counts.get(JobStatus.COMPLETED.value, 0),
            failed=counts.get(JobStatus.FAILED.value, 0),
            delayed=0,
        )

    # ------------------------------------------------------------------
    # Transitions (worker path only)
    # ------------------------------------------------------------------

    def mark_active(self, job_id: str) -> Job:
        """pending -> active, recording started_at and the attempt."""
        now = datetime.utcnow()
        return self._transition(
            job_id,
            allowed_from=(JobStatus.PENDING,),
            values={
                "status": JobStatus.ACTIVE.value,
                "started_at": now,
                "updated_at": now,
                "progress": 0,
                "attempts": QueueJob.attempts + 1,
            },
        )

    def mark_completed(self, job_id: str, result: Any) -> Job:
        """active -> completed with its result."""
        now = datetime.utcnow()
        return self._transition(
            job_id,
            allowed_from=(JobStatus.ACTIVE,),
            values={
                "status": JobStatus.COMPLETED.value,
                "result": result,
                "progress": 100,
                "completed_at": now,
                "updated_at": now,
            },
        )

    def mark_failed(self, job_id: str, error: JobError) -> Job:
        """active -> failed with its error."""
        now = datetime.utcnow()
        return self._transition(
            job_id,
            allowed_from=(JobStatus.ACTIVE,),
            values={
                "status": JobStatus.FAILED.value,
                "error_message": error.message,
                "error_code": error.code,
                "completed_at": now,
                "updated_at": now,
            },
        )

    def set_progress(self, job_id: str, progress: int) -> int:
        """
        Record progress of an active job.

        Progress is clamped to 0..100 and never decreases; updates for jobs
        that are not active are ignored.

        Returns:
            The progress value now stored
        """
        progress = max(0, min(100, int(progress)))
        with self._lock, self.session_factory() as db:
            db.query(QueueJob).filter(
                QueueJob.job_id == job_id,
                QueueJob.queue_name == self.queue_name,
                QueueJob.status == JobStatus.ACTIVE.value,
                QueueJob.progress < progress,
            ).update(
                {QueueJob.progress: progress, QueueJob.updated_at: datetime.utcnow()},
                synchronize_session=False,
            )
            db.commit()
            return self._get_row(db, job_id).progress

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_older_than(self, max_age_hours: float) -> int:
        """Delete terminal jobs completed more than max_age_hours ago."""
        cutoff = datetime.utcnow() - timedelta(hours=max_age_hours)
        with self._lock, self.session_factory() as db:
            removed = db.query(QueueJob).filter(
                QueueJob.queue_name == self.queue_name,
                QueueJob.status.in_([JobStatus.COMPLETED.value, JobStatus.FAILED.value]),
                QueueJob.completed_at < cutoff,
            ).delete(synchronize_session=False)
            db.commit()

        logger.info(f"[{self.queue_name}] Purged {removed} jobs older than {max_age_hours}h")
        return removed

    def discard_pending(self, job_id: str) -> bool:
        """Delete a job that never left pending, e.g. one that could not be enqueued."""
        with self._lock, self.session_factory() as db:
            removed = db.query(QueueJob).filter(
                QueueJob.job_id == job_id,
                QueueJob.queue_name == self.queue_name,
                QueueJob.status == JobStatus.PENDING.value,
            ).delete(synchronize_session=False)
            db.commit()
        return bool(removed)

    def ping(self) -> bool:
        """Check that the backing database answers."""
        with self._lock, self.session_factory() as db:
            db.query(QueueJob.job_id).filter(QueueJob.queue_name == self.queue_name).limit(1).all()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(
        self,
        job_id: str,
        allowed_from: Iterable[JobStatus],
        values: Dict[Any, Any],
    ) -> Job:
        allowed = [status.value for status in allowed_from]
        with self._lock, self.session_factory() as db:
            updated = db.query(QueueJob).filter(
                QueueJob.job_id == job_id,
                QueueJob.queue_name == self.queue_name,
                QueueJob.status.in_(allowed),
            ).update(values, synchronize_session=False)
            db.commit()

            row = self._get_row(db, job_id)
            if not updated:
                raise InvalidTransitionError(
                    f"Job {job_id} cannot move from {row.status} to {values['status']}"
                )
            return self._to_job(row)

    def _get_row(self, db: Session, job_id: str) -> QueueJob:
        row = db.query(QueueJob).filter(
            QueueJob.job_id == job_id,
            QueueJob.queue_name == self.queue_name,
        ).first()
        if row is None:
            raise NotFoundError(f"Job {job_id} not found in queue {self.queue_name}")
        return row

    @staticmethod
    def _to_job(row: QueueJob) -> Job:
        status = JobStatus(row.status)
        error: Optional[JobError] = None
        if status == JobStatus.FAILED:
            error = JobError(message=row.error_message or "Job failed", code=row.error_code)
        return Job(
            id=row.job_id,
            queue_name=row.queue_name,
            job_type=row.job_type,
            data=row.data or {},
            status=status,
            progress=row.progress or 0,
            result=row.result if status == JobStatus.COMPLETED else None,
            error=error,
            attempts=row.attempts or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
            started_at=row.started_at,
            completed_at=row.completed_at,
        )
