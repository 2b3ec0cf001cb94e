"""Health check and system status routes."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from recruitq.api.dependencies import get_queue_manager
from recruitq.workers.manager import QueueManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/liveness")
async def liveness_check():
    """
    Liveness check for Kubernetes/container orchestration.

    Returns:
        Liveness status
    """
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/readiness")
async def readiness_check(manager: QueueManager = Depends(get_queue_manager)):
    """
    Readiness check: the job store and the RQ broker answer for every queue.

    Returns:
        Readiness status, HTTP 503 when not ready
    """
    try:
        for name in manager.queue_names():
            await manager.get(name).ping()
        return {
            "status": "ready",
            "timestamp": datetime.utcnow().isoformat(),
        }
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "timestamp": datetime.utcnow().isoformat(),
                "error": str(e),
            },
        )
