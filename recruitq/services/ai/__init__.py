"""AI services backed by OpenAI."""

from typing import Optional

from recruitq.services.ai.base import BaseAIService
from recruitq.services.ai.cv_analysis import CVAnalysisService
from recruitq.services.ai.interview_analysis import InterviewAnalysisService
from recruitq.services.ai.job_requirements import JobRequirementsService
from recruitq.services.ai.question_generation import QuestionGenerationService
from recruitq.services.cache_service import CacheService
from recruitq.services.retry import RetryExecutor


class AIService:
    """Facade holding one instance of each AI service."""

    def __init__(self, cache: Optional[CacheService] = None, retry: Optional[RetryExecutor] = None):
        retry = retry or RetryExecutor("openai")
        self._cv_analysis = CVAnalysisService(cache=cache, retry=retry)
        self._question_generation = QuestionGenerationService(cache=cache, retry=retry)
        self._interview_analysis = InterviewAnalysisService(cache=cache, retry=retry)
        self._job_requirements = JobRequirementsService(cache=cache, retry=retry)

    def cv_analysis(self) -> CVAnalysisService:
        return self._cv_analysis

    def question_generation(self) -> QuestionGenerationService:
        return self._question_generation

    def interview_analysis(self) -> InterviewAnalysisService:
        return self._interview_analysis

    def job_requirements(self) -> JobRequirementsService:
        return self._job_requirements


__all__ = [
    "AIService",
    "BaseAIService",
    "CVAnalysisService",
    "InterviewAnalysisService",
    "JobRequirementsService",
    "QuestionGenerationService",
]
