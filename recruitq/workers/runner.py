"""Run RQ workers for the AI job queues."""

import logging
from typing import List, Optional

from rq import Worker
from rq.worker_pool import WorkerPool

from recruitq.core.config import settings
from recruitq.db.session import get_engine
from recruitq.workers.tasks import get_worker_manager

logger = logging.getLogger(__name__)


def run_workers(queue_names: Optional[List[str]] = None, burst: bool = False) -> None:
    """
    Serve the given queues (all by default) until stopped.

    RQ handles SIGINT/SIGTERM with a warm shutdown: the job in progress is
    finished first. QUEUE_CONCURRENCY above 1 runs a WorkerPool of that many
    workers instead of a single one.

    Args:
        queue_names: Queues to listen to
        burst: Process every queued job, then exit
    """
    manager = get_worker_manager()
    engines = [manager.get(name) for name in (queue_names or manager.queue_names())]

    for engine in engines:
        lost = engine.recover_abandoned_jobs()
        requeued = engine.requeue_missing_jobs()
        logger.info(f"[{engine.queue_name}] Reconciled with RQ (lost={len(lost)}, requeued={len(requeued)})")

    # Work horses are forked per job and must not share pooled connections
    get_engine().dispose()

    queues = [engine.queue for engine in engines]
    logger.info(
        f"Starting {settings.queue_concurrency} RQ worker(s) for: {', '.join(q.name for q in queues)}"
    )
    if settings.queue_concurrency > 1:
        pool = WorkerPool(queues, connection=manager.connection, num_workers=settings.queue_concurrency)
        pool.start(burst=burst)
    else:
        worker = Worker(queues, connection=manager.connection)
        worker.work(burst=burst)
