"""Queue administration routes: health, stats, cleanup, shutdown."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from recruitq.api.dependencies import get_queue_manager
from recruitq.core.config import settings
from recruitq.core.errors import ValidationError
from recruitq.models.job import HealthStatus
from recruitq.workers.manager import QueueManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/queues", tags=["queues"])


def _parse_max_age(body: Optional[Dict[str, Any]]) -> float:
    if not body or body.get("maxAgeHours") is None:
        return settings.job_cleanup_max_age_hours
    value = body["maxAgeHours"]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValidationError("maxAgeHours must be a positive number")
    return float(value)


@router.get("/health", response_model=HealthStatus)
async def get_queue_health(manager: QueueManager = Depends(get_queue_manager)):
    """
    Health of every registered queue.

    Returns HTTP 503 when the overall status is unhealthy.
    """
    health = await manager.get_health_status()
    if health.status == "unhealthy":
        return JSONResponse(status_code=503, content=health.model_dump(mode="json", by_alias=True))
    return health


@router.get("/stats")
async def get_all_queue_stats(manager: QueueManager = Depends(get_queue_manager)):
    """Counts per status for every queue."""
    stats = await manager.get_all_queue_stats()
    return {
        "success": True,
        "data": {name: queue_stats.model_dump(by_alias=True) for name, queue_stats in stats.items()},
    }


@router.post("/cleanup")
async def cleanup_queues(
    body: Optional[Dict[str, Any]] = Body(None),
    manager: QueueManager = Depends(get_queue_manager),
):
    """
    Remove completed and failed jobs older than maxAgeHours from every queue.

    Queues whose cleanup failed are listed under `failed` and make the call
    unsuccessful; when every queue failed the answer is HTTP 500.

    Raises:
        ValidationError: If maxAgeHours is not a positive number
    """
    max_age_hours = _parse_max_age(body)
    removed, failed = await manager.cleanup_all_queues(max_age_hours)
    content = {
        "success": not failed,
        "message": f"Cleaned up jobs older than {max_age_hours:g} hours",
        "maxAgeHours": max_age_hours,
        "removed": removed,
        "failed": failed,
    }
    if failed and not removed:
        content["message"] = "Cleanup failed for every queue"
        return JSONResponse(status_code=500, content=content)
    if failed:
        content["message"] += f" (failed: {', '.join(sorted(failed))})"
    return content


@router.post("/shutdown")
async def shutdown_queues(manager: QueueManager = Depends(get_queue_manager)):
    """Suspend the RQ workers, stop accepting jobs and wait for active jobs on every queue."""
    logger.warning("Queue shutdown requested over HTTP")
    await manager.shutdown_all_queues()
    return {"success": True, "message": "All queues shut down"}
