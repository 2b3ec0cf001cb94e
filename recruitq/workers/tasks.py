"""RQ task entry points. These run in worker processes, never in the API."""

import logging
from functools import lru_cache
from typing import Any

from recruitq.db.session import get_session_factory
from recruitq.workers.manager import QueueManager, build_queue_manager

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_worker_manager() -> QueueManager:
    """Queue manager of this worker process, built on first use."""
    logger.info("[RQ Worker] Building queue manager")
    return build_queue_manager(get_session_factory())


def run_queue_job(queue_name: str, job_id: str) -> Any:
    """
    Background job enqueued by QueueEngine.create_job.

    Args:
        queue_name: Queue the job belongs to
        job_id: Job id in the job store
    """
    return get_worker_manager().get(queue_name).run(job_id)
