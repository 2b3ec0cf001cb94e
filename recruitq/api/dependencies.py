"""FastAPI dependencies for dependency injection."""

from fastapi import Request

from recruitq.core.errors import QueueUnavailableError
from recruitq.workers.manager import QueueManager


def get_queue_manager(request: Request) -> QueueManager:
    """
    Return the QueueManager built at startup.

    Raises:
        QueueUnavailableError: If the application has not started its queues
    """
    manager = getattr(request.app.state, "queue_manager", None)
    if manager is None:
        raise QueueUnavailableError("Queue manager is not initialized")
    return manager
