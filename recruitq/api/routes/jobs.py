"""Asynchronous job API routes, one router per domain queue."""

import logging
from typing import Optional, Type

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel

from recruitq.api.dependencies import get_queue_manager
from recruitq.middleware.rate_limit import job_creation_limit, limiter
from recruitq.models.ai import (
    CVAnalysisRequest,
    InterviewAnalysisRequest,
    JobRequirementsRequest,
    QuestionGenerationRequest,
)
from recruitq.models.job import (
    Job,
    JobCreatedResponse,
    JobListResponse,
    JobStatusResponse,
    QueueName,
    QueueStats,
)
from recruitq.workers.manager import QueueManager
from recruitq.workers.queue import QueueEngine

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def to_status_response(engine: QueueEngine, job: Job) -> JobStatusResponse:
    """Convert a job snapshot to the polling response."""
    return JobStatusResponse(
        success=True,
        job_id=job.id,
        status=job.status,
        progress=job.progress,
        estimated_time_remaining=engine.estimated_time_remaining(job),
        result=job.result,
        error=job.error.message if job.error else None,
        error_code=job.error.code if job.error else None,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        processing_time=job.processing_time_ms,
    )


def build_job_router(queue_name: QueueName, request_model: Type[BaseModel], job_type: str) -> APIRouter:
    """
    Build the routes of one domain queue.

    Args:
        queue_name: Queue the routes submit to and read from
        request_model: Body model of POST /<domain>/async
        job_type: Type recorded on created jobs
    """
    domain = queue_name.value
    router = APIRouter(prefix=f"/{domain}", tags=[domain])

    def get_engine(manager: QueueManager = Depends(get_queue_manager)) -> QueueEngine:
        return manager.get(domain)

    async def create_job(
        request: Request,
        body: request_model,
        engine: QueueEngine = Depends(get_engine),
    ) -> JobCreatedResponse:
        """
        Queue a job and return immediately.

        Returns:
            Job id, estimated processing time and the URL to poll
        """
        payload = body.model_dump(by_alias=True, exclude_none=True)
        job_id = await engine.create_job(payload, job_type=job_type)

        logger.info(f"[{domain}] Accepted job {job_id}", extra={"request_id": getattr(request.state, "request_id", None)})

        return JobCreatedResponse(
            job_id=job_id,
            message=f"{domain} job queued for processing",
            estimated_time=engine.get_estimated_processing_time(payload),
            poll_url=f"{API_PREFIX}/{domain}/jobs/{job_id}/status",
        )

    # The limiter keys its counters by function name
    create_job.__name__ = create_job.__qualname__ = f"create_{job_type}_job"
    router.post(
        "/async",
        response_model=JobCreatedResponse,
        status_code=status.HTTP_202_ACCEPTED,
    )(limiter.limit(job_creation_limit)(create_job))

    @router.get("/jobs/{job_id}/status", response_model=JobStatusResponse, name=f"get_{job_type}_job_status")
    async def get_job_status(job_id: str, engine: QueueEngine = Depends(get_engine)) -> JobStatusResponse:
        """
        Get job status and details.

        Raises:
            NotFoundError: If the job id is unknown to this queue
        """
        job = await engine.get_job_status(job_id)
        return to_status_response(engine, job)

    @router.get("/jobs", response_model=JobListResponse, name=f"list_{job_type}_jobs")
    async def list_jobs(
        user_id: Optional[str] = Query(None, alias="userId"),
        engine: QueueEngine = Depends(get_engine),
    ) -> JobListResponse:
        """List jobs of this queue, optionally only those submitted by one user."""
        jobs = await engine.get_all_jobs()
        if user_id is not None:
            jobs = [job for job in jobs if job.data.get("userId") == user_id]
        return JobListResponse(data=jobs, count=len(jobs))

    @router.get("/stats", response_model=QueueStats, name=f"get_{job_type}_stats")
    async def get_stats(engine: QueueEngine = Depends(get_engine)) -> QueueStats:
        return await engine.get_queue_stats()

    return router


cv_analysis_router = build_job_router(QueueName.CV_ANALYSIS, CVAnalysisRequest, "cv_analysis")
question_generation_router = build_job_router(
    QueueName.QUESTION_GENERATION, QuestionGenerationRequest, "question_generation"
)
interview_analysis_router = build_job_router(
    QueueName.INTERVIEW_ANALYSIS, InterviewAnalysisRequest, "interview_analysis"
)
job_requirements_router = build_job_router(
    QueueName.JOB_REQUIREMENTS, JobRequirementsRequest, "job_requirements"
)

routers = [
    cv_analysis_router,
    question_generation_router,
    interview_analysis_router,
    job_requirements_router,
]
