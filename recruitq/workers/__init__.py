"""Queue engines, job processors and the queue manager."""

from recruitq.workers.manager import QueueManager, build_queue_manager
from recruitq.workers.queue import QueueEngine

__all__ = ["QueueEngine", "QueueManager", "build_queue_manager"]
