"""Process-wide registry of queues: stats, health, cleanup and shutdown fan-out."""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Type

from redis import Redis
from rq import Queue
from rq.suspension import resume, suspend
from sqlalchemy.orm import sessionmaker

from recruitq.core.config import Settings, settings as default_settings
from recruitq.core.errors import QueueUnavailableError
from recruitq.models.job import HealthStatus, QueueHealthDetail, QueueName, QueueStats
from recruitq.services.ai import AIService
from recruitq.services.cache_service import CacheService
from recruitq.services.job_store import JobStore
from recruitq.workers.processors import (
    CVAnalysisJobProcessor,
    InterviewAnalysisJobProcessor,
    JobProcessor,
    JobRequirementsJobProcessor,
    QuestionGenerationJobProcessor,
)
from recruitq.workers.queue import QueueEngine, get_redis_connection

logger = logging.getLogger(__name__)


class QueueManager:
    """
    Registry mapping queue name to QueueEngine.

    One instance is built at startup and handed to whoever needs it; there is
    no hidden module-level instance. `connection` is the Redis connection the
    RQ workers listen on, used to suspend and resume them.
    """

    def __init__(self, max_failure_ratio: float = 0.5, connection: Optional[Redis] = None):
        self.max_failure_ratio = max_failure_ratio
        self.connection = connection
        self._queues: Dict[str, QueueEngine] = {}

    def register(self, queue_name: str, engine: QueueEngine) -> None:
        if queue_name in self._queues:
            raise ValueError(f"Queue {queue_name} is already registered")
        self._queues[queue_name] = engine
        logger.info(f"[Queue Manager] Registered queue {queue_name}")

    def get(self, queue_name: str) -> QueueEngine:
        engine = self._queues.get(queue_name)
        if engine is None:
            raise QueueUnavailableError(f"Queue {queue_name} is not registered")
        return engine

    def queue_names(self) -> List[str]:
        return list(self._queues)

    async def start_all(self) -> None:
        """Resume suspended workers and reconcile every queue with RQ."""
        if self.connection is not None:
            await asyncio.to_thread(resume, self.connection)
        results = await asyncio.gather(
            *(engine.start() for engine in self._queues.values()),
            return_exceptions=True,
        )
        for name, result in zip(self.queue_names(), results):
            if isinstance(result, Exception):
                logger.error(f"[Queue Manager] Start failed for {name}: {result}")
        logger.info(f"[Queue Manager] Started {len(self._queues)} queue(s)")

    async def get_all_queue_stats(self) -> Dict[str, QueueStats]:
        names = self.queue_names()
        results = await asyncio.gather(
            *(self._queues[name].get_queue_stats() for name in names),
            return_exceptions=True,
        )
        stats = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error(f"[Queue Manager] Error getting stats for {name}: {result}")
                continue
            stats[name] = result
        return stats

    async def get_health_status(self) -> HealthStatus:
        """
        Health of every queue.

        A queue is healthy when its store answers and failed/total stays
        below the configured ratio. Empty queues are healthy.
        """
        details: Dict[str, QueueHealthDetail] = {}
        for name, engine in self._queues.items():
            try:
                stats = await engine.get_queue_stats()
            except Exception as e:
                logger.error(f"[Queue Manager] Health check failed for {name}: {e}")
                details[name] = QueueHealthDetail(status="unhealthy", message=f"Error: {e}")
                continue

            ratio = stats.failed / stats.total if stats.total else 0.0
            if not engine.is_accepting:
                details[name] = QueueHealthDetail(
                    status="unhealthy", message="Queue is shut down", failure_ratio=ratio
                )
            elif ratio < self.max_failure_ratio:
                details[name] = QueueHealthDetail(
                    status="healthy", message="Queue operating normally", failure_ratio=ratio
                )
            else:
                details[name] = QueueHealthDetail(
                    status="degraded",
                    message=f"Failure ratio {ratio:.2f} at or above {self.max_failure_ratio:.2f}",
                    failure_ratio=ratio,
                )

        queues = {name: detail.status == "healthy" for name, detail in details.items()}
        healthy_count = sum(queues.values())
        total = len(queues)

        if healthy_count == total:
            overall = "healthy"
        elif healthy_count * 2 >= total:
            overall = "degraded"
        else:
            overall = "unhealthy"

        return HealthStatus(
            healthy=overall == "healthy",
            status=overall,
            queues=queues,
            details=details,
            timestamp=datetime.utcnow(),
        )

    async def cleanup_all_queues(self, max_age_hours: float = 24) -> Tuple[Dict[str, int], Dict[str, str]]:
        """
        Fan out cleanup. A failing queue does not stop the others.

        Returns:
            Removed job counts by queue, and the error of every queue whose cleanup failed
        """
        logger.info(f"[Queue Manager] Cleaning up old jobs for all queues (older than {max_age_hours}h)")
        names = self.queue_names()
        results = await asyncio.gather(
            *(self._queues[name].cleanup(max_age_hours) for name in names),
            return_exceptions=True,
        )
        removed = {}
        failed = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error(f"[Queue Manager] Cleanup failed for {name}: {result}")
                failed[name] = str(result)
                continue
            removed[name] = result
        return removed, failed

    async def shutdown_all_queues(self, timeout: Optional[float] = None) -> None:
        """
        Maintenance drain: RQ workers stop taking new jobs, every queue stops
        accepting them, then active jobs get until the deadline to finish.

        Workers stay suspended until `start_all` (or `rq resume`) runs.
        """
        logger.info("[Queue Manager] Shutting down all queues")
        if self.connection is not None:
            await asyncio.to_thread(suspend, self.connection)
            logger.info("[Queue Manager] RQ workers suspended")
        results = await asyncio.gather(
            *(engine.shutdown(timeout) for engine in self._queues.values()),
            return_exceptions=True,
        )
        for name, result in zip(self.queue_names(), results):
            if isinstance(result, Exception):
                logger.error(f"[Queue Manager] Shutdown failed for {name}: {result}")
        logger.info("[Queue Manager] All queues shut down")


def build_processors(ai_service: AIService) -> Dict[str, JobProcessor]:
    """Processors for every domain queue, wired to their AI service."""
    return {
        QueueName.CV_ANALYSIS.value: CVAnalysisJobProcessor(ai_service.cv_analysis()),
        QueueName.QUESTION_GENERATION.value: QuestionGenerationJobProcessor(ai_service.question_generation()),
        QueueName.INTERVIEW_ANALYSIS.value: InterviewAnalysisJobProcessor(ai_service.interview_analysis()),
        QueueName.JOB_REQUIREMENTS.value: JobRequirementsJobProcessor(ai_service.job_requirements()),
    }


def build_queue_manager(
    session_factory: sessionmaker,
    config: Optional[Settings] = None,
    ai_service: Optional[AIService] = None,
    processors: Optional[Dict[str, JobProcessor]] = None,
    queue_names: Optional[List[str]] = None,
    connection: Optional[Redis] = None,
    queue_class: Type[Queue] = Queue,
) -> QueueManager:
    """
    Construct the manager with one queue per domain.

    Args:
        session_factory: SQLAlchemy session factory for the job stores
        config: Settings (defaults to the global settings)
        ai_service: AI services used by the default processors
        processors: Override processors by queue name (tests, custom deployments)
        queue_names: Only register these queues
        connection: Redis connection for RQ (defaults to REDIS_* settings)
        queue_class: RQ queue class, one instance per queue name
    """
    config = config or default_settings
    if processors is None:
        ai_service = ai_service or AIService(cache=CacheService())
        processors = build_processors(ai_service)
    if queue_names is not None:
        unknown = set(queue_names) - set(processors)
        if unknown:
            raise ValueError(f"Unknown queue(s): {', '.join(sorted(unknown))}")
        processors = {name: processors[name] for name in queue_names}

    if connection is None:
        connection = get_redis_connection()

    manager = QueueManager(max_failure_ratio=config.queue_health_max_failure_ratio, connection=connection)
    for name, processor in processors.items():
        queue = queue_class(name, connection=connection, default_timeout=config.job_timeout_seconds)
        manager.register(
            name,
            QueueEngine(
                name,
                JobStore(session_factory, name),
                processor,
                queue,
                shutdown_timeout=config.queue_shutdown_timeout_seconds,
            ),
        )
    logger.info(f"[Queue Manager] All queues initialized: {', '.join(manager.queue_names())}")
    return manager
