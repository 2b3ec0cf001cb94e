"""Per-domain job processors: the unit of work behind each queue."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Generic, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from recruitq.core.errors import ValidationError
from recruitq.models.ai import (
    CVAnalysisRequest,
    InterviewAnalysisRequest,
    JobRequirementsRequest,
    QuestionGenerationRequest,
)
from recruitq.models.job import Job
from recruitq.services.ai import (
    CVAnalysisService,
    InterviewAnalysisService,
    JobRequirementsService,
    QuestionGenerationService,
)

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

ProgressReporter = Callable[[int], Awaitable[int]]


def _clamp(value: float, lower: int, upper: int) -> int:
    return int(max(lower, min(upper, value)))


def _text_length(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    return len(value) if isinstance(value, str) else 0


def _list_length(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    return len(value) if isinstance(value, list) else 0


class JobProcessor(ABC, Generic[RequestT]):
    """
    Strategy performing the work of one queue.

    Processors are executed at most once per job. `process` may raise; the
    engine records the failure on the job.
    """

    request_model: Type[RequestT]

    def validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a job payload before it is queued.

        Returns:
            The normalised payload (camelCase keys) to persist

        Raises:
            ValidationError: If the payload does not match the request model
        """
        try:
            request = self.request_model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {self.request_model.__name__}: {e.error_count()} validation error(s)",
                details=e.errors(include_url=False, include_context=False),
            ) from e
        return request.model_dump(by_alias=True, exclude_none=True)

    def parse(self, job: Job) -> RequestT:
        return self.request_model.model_validate(job.data)

    @abstractmethod
    async def process(self, job: Job, report_progress: ProgressReporter) -> Any:
        """Do the work and return a JSON-serialisable result."""

    @abstractmethod
    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        """Rough processing time in milliseconds. Must not raise."""


class CVAnalysisJobProcessor(JobProcessor[CVAnalysisRequest]):
    request_model = CVAnalysisRequest

    def __init__(self, service: CVAnalysisService):
        self.service = service

    async def process(self, job: Job, report_progress: ProgressReporter) -> Dict[str, Any]:
        request = self.parse(job)
        await report_progress(10)
        result = await self.service.analyze_cv(request)
        await report_progress(90)
        return result.model_dump(by_alias=True)

    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        complexity = (_text_length(data, "cvText") + _text_length(data, "jobRequirements")) / 1000
        return _clamp(complexity * 10000, 5000, 30000)


class QuestionGenerationJobProcessor(JobProcessor[QuestionGenerationRequest]):
    request_model = QuestionGenerationRequest

    def __init__(self, service: QuestionGenerationService):
        self.service = service

    async def process(self, job: Job, report_progress: ProgressReporter) -> list:
        request = self.parse(job)
        await report_progress(10)
        questions = await self.service.generate_questions(request)
        await report_progress(90)
        return [q.model_dump(by_alias=True) for q in questions]

    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        count = data.get("count")
        count = count if isinstance(count, int) else 0
        estimate = 15000
        if count > 10:
            estimate += 10000
        if count > 20:
            estimate += 15000
        if _list_length(data, "skills") > 5:
            estimate += 5000
        if data.get("difficulty") == "hard":
            estimate += 5000
        return _clamp(estimate, 15000, 50000)


class InterviewAnalysisJobProcessor(JobProcessor[InterviewAnalysisRequest]):
    request_model = InterviewAnalysisRequest

    def __init__(self, service: InterviewAnalysisService):
        self.service = service

    async def process(self, job: Job, report_progress: ProgressReporter) -> Dict[str, Any]:
        request = self.parse(job)
        await report_progress(10)
        result = await self.service.analyze_interview(request)
        await report_progress(90)
        return result.model_dump(by_alias=True)

    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        answers = data.get("answers") if isinstance(data.get("answers"), list) else []
        answers_length = sum(
            _text_length(answer, "answer") for answer in answers if isinstance(answer, dict)
        )
        complexity = (_list_length(data, "questions") * 100 + answers_length) / 1000
        return _clamp(complexity * 9000, 4000, 25000)


class JobRequirementsJobProcessor(JobProcessor[JobRequirementsRequest]):
    request_model = JobRequirementsRequest

    def __init__(self, service: JobRequirementsService):
        self.service = service

    async def process(self, job: Job, report_progress: ProgressReporter) -> Dict[str, Any]:
        request = self.parse(job)
        await report_progress(10)
        result = await self.service.generate_job_requirements(request)
        await report_progress(90)
        return result.model_dump(by_alias=True)

    def get_estimated_processing_time(self, data: Dict[str, Any]) -> int:
        complexity = (
            _text_length(data, "jobTitle")
            + _text_length(data, "industry")
            + _text_length(data, "seniority")
        ) / 100
        return _clamp(complexity * 8000, 3000, 20000)
