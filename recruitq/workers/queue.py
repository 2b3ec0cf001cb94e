"""Named job queues: SQL job store for status, Redis Queue (RQ) for dispatch."""

import asyncio
import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

import redis
from redis import RedisError
from rq import Queue, get_current_job
from rq.job import JobStatus as RQJobStatus
from rq.timeouts import JobTimeoutException

from recruitq.core.config import settings
from recruitq.core.errors import (
    InvalidTransitionError,
    JobTimeoutError,
    NotFoundError,
    ProcessingError,
    QueueUnavailableError,
)
from recruitq.models.job import Job, JobError, JobStatus, QueueStats
from recruitq.services.job_store import JobStore
from recruitq.workers.processors import JobProcessor

logger = logging.getLogger(__name__)

WORKER_LOST = "WORKER_LOST"

# RQ states in which no worker holds the job any more
_RQ_ENDED = {RQJobStatus.FAILED, RQJobStatus.STOPPED, RQJobStatus.CANCELED}


@lru_cache(maxsize=1)
def get_redis_connection() -> redis.Redis:
    """Redis connection shared by the RQ queues of this process."""
    return redis.from_url(settings.redis_url, decode_responses=False)  # RQ requires bytes


def job_error_from_exception(exc: BaseException) -> JobError:
    """Build the terminal error recorded on a failed job."""
    if isinstance(exc, JobTimeoutException):
        return JobError(message=f"{type(exc).__name__}: {exc}", code=JobTimeoutError.code)
    code = getattr(exc, "code", None)
    if not isinstance(code, str):
        code = ProcessingError.code
    return JobError(message=f"{type(exc).__name__}: {exc}", code=code)


class QueueEngine:
    """
    One named queue bound to a JobStore, a JobProcessor and an RQ queue.

    The API side persists the job and enqueues its id; RQ workers pick it up
    and call `run`, which walks the job through pending -> active ->
    completed/failed in the store. The store stays the record of status, RQ
    only carries the work.
    """

    def __init__(
        self,
        queue_name: str,
        store: JobStore,
        processor: JobProcessor,
        queue: Queue,
        shutdown_timeout: float = 30.0,
        drain_poll_interval: float = 0.5,
    ):
        self.queue_name = queue_name
        self.store = store
        self.processor = processor
        self.queue = queue
        self.shutdown_timeout = shutdown_timeout
        self.drain_poll_interval = drain_poll_interval
        self._accepting = True

    @property
    def is_accepting(self) -> bool:
        return self._accepting

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Accept jobs again and reconcile the store with what RQ holds."""
        self._accepting = True
        lost = await asyncio.to_thread(self.recover_abandoned_jobs)
        requeued = await asyncio.to_thread(self.requeue_missing_jobs)
        logger.info(f"[{self.queue_name}] Queue started (lost={len(lost)}, requeued={len(requeued)})")

    async def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting jobs and wait for active ones to finish.

        Returns once no job of this queue is active or the deadline passes.
        Jobs not yet picked up by a worker stay pending.
        """
        self._accepting = False
        deadline = self.shutdown_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        ends_at = loop.time() + deadline

        while True:
            active = (await self.get_queue_stats()).active
            if not active:
                break
            remaining = ends_at - loop.time()
            if remaining <= 0:
                logger.warning(
                    f"[{self.queue_name}] Shutdown deadline of {deadline}s reached with {active} job(s) still active"
                )
                break
            await asyncio.sleep(min(self.drain_poll_interval, remaining))

        logger.info(f"[{self.queue_name}] Service shutdown completed")

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def create_job(self, data: Dict[str, Any], job_type: str = "default") -> str:
        """
        Validate, persist and enqueue a job. Returns its id without waiting for processing.

        Raises:
            ValidationError: If the payload is invalid; no job is created
            QueueUnavailableError: If the queue is shutting down or Redis is unreachable
        """
        if not self._accepting:
            raise QueueUnavailableError(f"Queue {self.queue_name} is not accepting jobs")

        payload = self.processor.validate(data)
        job_id = await asyncio.to_thread(self.store.create, payload, job_type)

        try:
            await asyncio.to_thread(self._enqueue, job_id)
        except RedisError as e:
            logger.error(f"[{self.queue_name}] Could not enqueue job {job_id}: {e}")
            await asyncio.to_thread(self.store.discard_pending, job_id)
            raise QueueUnavailableError(f"Queue {self.queue_name} is unavailable") from e

        logger.info(f"[{self.queue_name}] Job created: {job_id} (type={job_type})")
        return job_id

    async def get_job_status(self, job_id: str) -> Job:
        """Raises NotFoundError if the id is unknown to this queue."""
        return await asyncio.to_thread(self.store.get_status, job_id)

    async def get_job_progress(self, job_id: str) -> int:
        return await asyncio.to_thread(self.store.get_progress, job_id)

    async def get_all_jobs(self) -> List[Job]:
        return await asyncio.to_thread(self.store.list_all)

    async def get_queue_stats(self) -> QueueStats:
        return await asyncio.to_thread(self.store.count_by_status)

    async def cleanup(self, max_age_hours: float = 24) -> int:
        """Remove terminal jobs older than max_age_hours. Returns how many were removed."""
        removed = await asyncio.to_thread(self.store.purge_older_than, max_age_hours)
        logger.info(f"[{self.queue_name}] Cleaned up {removed} old jobs (older than {max_age_hours}h)")
        return removed

    async def ping(self) -> bool:
        """Check that both the job store and the RQ broker answer."""
        await asyncio.to_thread(self.store.ping)
        return await asyncio.to_thread(self.queue.connection.ping)

    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        return self.processor.get_estimated_processing_time(data)

    def estimated_time_remaining(self, job: Job, now: Optional[datetime] = None) -> Optional[int]:
        """Milliseconds left for an active job, based on the processor's estimate."""
        if job.status != JobStatus.ACTIVE or job.started_at is None:
            return None
        now = now or datetime.utcnow()
        elapsed_ms = (now - job.started_at).total_seconds() * 1000
        return max(0, int(self.get_estimated_processing_time(job.data) - elapsed_ms))

    # ------------------------------------------------------------------
    # Reconciliation with RQ
    # ------------------------------------------------------------------

    def _held_by_rq(self, job_id: str) -> bool:
        rq_job = self.queue.fetch_job(job_id)
        return rq_job is not None and rq_job.get_status() not in _RQ_ENDED

    def recover_abandoned_jobs(self) -> List[str]:
        """
        Fail active jobs that no worker is running any more.

        RQ moves the jobs of workers whose heartbeat expired out of its
        started registry. Only those, and jobs RQ no longer knows, are failed
        as WORKER_LOST; a job a live worker holds is left alone.
        """
        self.queue.started_job_registry.cleanup()

        lost = []
        for job_id in self.store.list_ids(JobStatus.ACTIVE):
            if self._held_by_rq(job_id):
                continue
            try:
                self.store.mark_failed(
                    job_id, JobError(message="Worker stopped before the job finished", code=WORKER_LOST)
                )
            except InvalidTransitionError:
                # Finished between the check and the update
                continue
            logger.warning(f"[{self.queue_name}] Job {job_id} lost its worker, marked failed")
            lost.append(job_id)
        return lost

    def requeue_missing_jobs(self) -> List[str]:
        """Enqueue pending jobs RQ no longer holds, e.g. after Redis lost its data."""
        requeued = []
        for job_id in self.store.list_ids(JobStatus.PENDING):
            if self._held_by_rq(job_id):
                continue
            self._enqueue(job_id)
            logger.info(f"[{self.queue_name}] Re-enqueued pending job {job_id}")
            requeued.append(job_id)
        return requeued

    def _enqueue(self, job_id: str) -> None:
        from recruitq.workers.tasks import run_queue_job

        self.queue.enqueue(
            run_queue_job,
            self.queue_name,
            job_id,
            job_id=job_id,
            description=f"{self.queue_name} job {job_id}",
            meta={"queue": self.queue_name, "progress": 0},
        )

    # ------------------------------------------------------------------
    # Worker path
    # ------------------------------------------------------------------

    def run(self, job_id: str) -> Any:
        """
        Execute one job. Runs inside an RQ work horse.

        A job is executed at most once: if it is no longer pending it is
        skipped. Failures are recorded on the job and re-raised so RQ marks
        its own copy failed as well.
        """
        rq_job = get_current_job()

        try:
            job = self.store.mark_active(job_id)
        except (InvalidTransitionError, NotFoundError) as e:
            # Already taken, terminal, or purged: nothing to run
            logger.warning(f"[{self.queue_name} Worker] Skipping job {job_id}: {e}")
            return None

        logger.info(f"[{self.queue_name} Worker] Starting job {job_id} (attempt {job.attempts})")

        async def report_progress(progress: int) -> int:
            stored = await asyncio.to_thread(self.store.set_progress, job_id, progress)
            if rq_job:
                rq_job.meta["progress"] = stored
                await asyncio.to_thread(rq_job.save_meta)
            return stored

        try:
            result = asyncio.run(self.processor.process(job, report_progress))
            self.store.mark_completed(job_id, result)
        except Exception as e:
            logger.error(f"[{self.queue_name} Worker] Job {job_id} failed: {e}", exc_info=True)
            self._record_failure(job_id, job_error_from_exception(e))
            raise

        logger.info(f"[{self.queue_name} Worker] Job {job_id} completed successfully")
        return result

    def _record_failure(self, job_id: str, error: JobError) -> None:
        try:
            self.store.mark_failed(job_id, error)
        except Exception as e:
            logger.error(f"[{self.queue_name} Worker] Could not mark job {job_id} failed: {e}", exc_info=True)
