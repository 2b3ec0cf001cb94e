"""Job models for asynchronous AI processing."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueueName(str, Enum):
    """Domains served by a dedicated queue."""

    CV_ANALYSIS = "cv-analysis"
    QUESTION_GENERATION = "question-generation"
    INTERVIEW_ANALYSIS = "interview-analysis"
    JOB_REQUIREMENTS = "job-requirements"


class JobStatus(str, Enum):
    """Job processing status. Transitions only move forward."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobError(CamelModel):
    """Terminal error of a failed job."""

    message: str
    code: Optional[str] = None


class Job(CamelModel):
    """Point-in-time snapshot of one job."""

    id: str
    queue_name: str
    job_type: str = "default"
    data: Dict[str, Any] = {}
    status: JobStatus
    progress: int = Field(0, ge=0, le=100)
    result: Optional[Any] = None
    error: Optional[JobError] = None
    attempts: int = 0

    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def processing_time_ms(self) -> Optional[int]:
        if self.started_at and self.completed_at:
            return int((self.completed_at - self.started_at).total_seconds() * 1000)
        return None


class QueueStats(CamelModel):
    """Counts of jobs per status bucket for one queue."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed + self.delayed


# ============================================================================
# HTTP envelopes
# ============================================================================


class JobCreatedResponse(CamelModel):
    """Response returned once a job has been accepted (HTTP 202)."""

    success: bool = True
    job_id: str
    status: JobStatus = JobStatus.PENDING
    message: str
    estimated_time: int = Field(description="Estimated processing time in milliseconds")
    poll_url: str


class JobStatusResponse(CamelModel):
    """Response for job status polling."""

    success: bool
    job_id: str
    status: JobStatus
    progress: int = 0
    estimated_time_remaining: Optional[int] = None
    result: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    processing_time: Optional[int] = None


class JobListResponse(CamelModel):
    """Response listing the jobs of one queue."""

    success: bool = True
    data: List[Job]
    count: int


class QueueHealthDetail(CamelModel):
    """Health of a single queue."""

    status: str
    message: str
    failure_ratio: Optional[float] = None


class HealthStatus(CamelModel):
    """Aggregated health of every registered queue."""

    healthy: bool
    status: str
    queues: Dict[str, bool]
    details: Dict[str, QueueHealthDetail] = {}
    timestamp: datetime
