"""Unit tests for JobStore."""

from datetime import datetime, timedelta

import pytest

from recruitq.core.errors import InvalidTransitionError, NotFoundError
from recruitq.db.models import QueueJob
from recruitq.models.job import JobError, JobStatus
from recruitq.services.job_store import JobStore


def _backdate(session_factory, job_id: str, hours: float) -> None:
    """Move every timestamp a job has into the past."""
    past = datetime.utcnow() - timedelta(hours=hours)
    with session_factory() as db:
        row = db.get(QueueJob, job_id)
        row.created_at = row.updated_at = past
        if row.started_at is not None:
            row.started_at = past
        if row.completed_at is not None:
            row.completed_at = past
        db.commit()


@pytest.mark.unit
class TestJobStore:
    """Test JobStore persistence and the job state machine."""

    def test_create_job(self, store: JobStore):
        """Test creating a new pending job."""
        job_id = store.create({"cvText": "..."}, job_type="cv_analysis")

        job = store.get_status(job_id)
        assert job.id == job_id
        assert job.queue_name == "test-queue"
        assert job.job_type == "cv_analysis"
        assert job.status == JobStatus.PENDING
        assert job.progress == 0
        assert job.attempts == 0
        assert job.data == {"cvText": "..."}
        assert job.created_at is not None
        assert job.started_at is None
        assert job.result is None
        assert job.error is None

    def test_ids_are_distinct(self, store: JobStore):
        ids = {store.create({"n": i}) for i in range(20)}
        assert len(ids) == 20

    def test_unknown_job(self, store: JobStore):
        with pytest.raises(NotFoundError):
            store.get_status("does-not-exist")
        with pytest.raises(NotFoundError):
            store.get_progress("does-not-exist")

    def test_queues_are_isolated(self, session_factory, store: JobStore):
        other = JobStore(session_factory, "other-queue")
        job_id = store.create({})

        with pytest.raises(NotFoundError):
            other.get_status(job_id)
        assert other.list_all() == []

    def test_complete_lifecycle(self, store: JobStore):
        """Test pending -> active -> completed."""
        job_id = store.create({})

        active = store.mark_active(job_id)
        assert active.status == JobStatus.ACTIVE
        assert active.started_at is not None
        assert active.attempts == 1

        completed = store.mark_completed(job_id, {"score": 80})
        assert completed.status == JobStatus.COMPLETED
        assert completed.progress == 100
        assert completed.result == {"score": 80}
        assert completed.error is None
        assert completed.completed_at >= completed.started_at
        assert completed.processing_time_ms is not None

    def test_failed_lifecycle(self, store: JobStore):
        """Test pending -> active -> failed."""
        job_id = store.create({})
        store.mark_active(job_id)

        failed = store.mark_failed(job_id, JobError(message="RuntimeError: boom", code="PROCESSING_ERROR"))

        assert failed.status == JobStatus.FAILED
        assert failed.result is None
        assert failed.error.message == "RuntimeError: boom"
        assert failed.error.code == "PROCESSING_ERROR"
        assert failed.completed_at is not None

    def test_pending_cannot_complete(self, store: JobStore):
        job_id = store.create({})

        with pytest.raises(InvalidTransitionError):
            store.mark_completed(job_id, {})
        with pytest.raises(InvalidTransitionError):
            store.mark_failed(job_id, JobError(message="x"))
        assert store.get_status(job_id).status == JobStatus.PENDING

    def test_terminal_states_are_final(self, store: JobStore):
        job_id = store.create({})
        store.mark_active(job_id)
        store.mark_completed(job_id, {"ok": True})

        with pytest.raises(InvalidTransitionError):
            store.mark_active(job_id)
        with pytest.raises(InvalidTransitionError):
            store.mark_failed(job_id, JobError(message="late failure"))

        job = store.get_status(job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.result == {"ok": True}

    def test_job_activates_once(self, store: JobStore):
        job_id = store.create({})
        store.mark_active(job_id)

        with pytest.raises(InvalidTransitionError):
            store.mark_active(job_id)

    def test_transition_of_unknown_job(self, store: JobStore):
        with pytest.raises(NotFoundError):
            store.mark_active("missing")

    def test_progress_is_clamped_and_monotonic(self, store: JobStore):
        job_id = store.create({})
        store.mark_active(job_id)

        assert store.set_progress(job_id, 40) == 40
        assert store.set_progress(job_id, 20) == 40
        assert store.set_progress(job_id, 250) == 100
        assert store.get_progress(job_id) == 100

    def test_progress_ignored_unless_active(self, store: JobStore):
        job_id = store.create({})

        assert store.set_progress(job_id, 50) == 0

        store.mark_active(job_id)
        store.mark_completed(job_id, {})
        assert store.set_progress(job_id, 10) == 100

    def test_progress_negative_value(self, store: JobStore):
        job_id = store.create({})
        store.mark_active(job_id)

        assert store.set_progress(job_id, -5) == 0

    def test_count_by_status(self, store: JobStore):
        """Test counts per status bucket."""
        empty = store.count_by_status()
        assert (empty.waiting, empty.active, empty.completed, empty.failed, empty.delayed) == (0, 0, 0, 0, 0)

        pending = store.create({})
        active = store.create({})
        done = store.create({})
        failed = store.create({})
        store.mark_active(active)
        store.mark_active(done)
        store.mark_completed(done, {})
        store.mark_active(failed)
        store.mark_failed(failed, JobError(message="x"))

        stats = store.count_by_status()
        assert stats.waiting == 1
        assert stats.active == 1
        assert stats.completed == 1
        assert stats.failed == 1
        assert stats.delayed == 0
        assert stats.total == 4
        assert store.list_ids(JobStatus.PENDING) == [pending]

    def test_list_all_in_creation_order(self, store: JobStore):
        ids = [store.create({"n": i}) for i in range(3)]
        assert [job.id for job in store.list_all()] == ids

    def test_purge_older_than(self, session_factory, store: JobStore):
        """Only terminal jobs past the retention window are removed."""
        old_done = store.create({})
        store.mark_active(old_done)
        store.mark_completed(old_done, {})
        _backdate(session_factory, old_done, hours=30)

        old_failed = store.create({})
        store.mark_active(old_failed)
        store.mark_failed(old_failed, JobError(message="x"))
        _backdate(session_factory, old_failed, hours=30)

        recent_done = store.create({})
        store.mark_active(recent_done)
        store.mark_completed(recent_done, {})

        pending = store.create({})
        _backdate(session_factory, pending, hours=100)
        active = store.create({})
        store.mark_active(active)
        _backdate(session_factory, active, hours=100)

        removed = store.purge_older_than(24)

        assert removed == 2
        remaining = {job.id for job in store.list_all()}
        assert remaining == {recent_done, pending, active}

    def test_ping(self, store: JobStore):
        assert store.ping() is True
