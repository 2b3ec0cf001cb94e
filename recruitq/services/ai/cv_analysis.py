"""CV analysis against job requirements."""

import logging
import time

from recruitq.models.ai import CVAnalysisRequest, CVAnalysisResult
from recruitq.services.ai.base import BaseAIService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert HR analyst specializing in CV assessment. "
    "Provide detailed, objective analysis in valid JSON format only."
)


class CVAnalysisService(BaseAIService):
    """Scores a CV against the requirements of a role."""

    async def analyze_cv(self, request: CVAnalysisRequest) -> CVAnalysisResult:
        """Analyze a single CV, serving repeated requests from the cache."""
        start = time.monotonic()

        if self.cache:
            cached = await self.cache.get_cv_analysis(request.cv_text, request.job_requirements, request.user_id)
            if cached:
                logger.info(f"CV analysis served from cache for user {request.user_id}")
                return CVAnalysisResult.model_validate(cached)

        result = await self.retry.with_retry(lambda: self._generate(request), "cv_analysis")

        if self.cache:
            await self.cache.set_cv_analysis(
                request.cv_text,
                request.job_requirements,
                request.user_id,
                result.model_dump(by_alias=True),
            )

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"CV analysis generated in {duration_ms}ms (score={result.score}, match={result.match_percentage})",
            extra={"user_id": request.user_id, "duration_ms": duration_ms},
        )
        return result

    async def _generate(self, request: CVAnalysisRequest) -> CVAnalysisResult:
        user_prompt = f"""Analyze the following CV against the job requirements and provide a comprehensive assessment.

CV Text:
{request.cv_text}

Job Requirements:
{request.job_requirements}

Respond with a JSON object of this shape:
{{
  "score": number (0-100),
  "strengths": string[],
  "weaknesses": string[],
  "recommendations": string[],
  "keySkills": string[],
  "experience": {{"years": number, "relevantExperience": string[]}},
  "education": {{"degree": string, "relevantCourses": string[]}},
  "summary": string,
  "matchPercentage": number (0-100)
}}

Focus on relevant skills and experience, education alignment, career progression,
technical competencies, soft skills indicators and overall fit for the role."""

        content = await self.generate_completion(SYSTEM_PROMPT, user_prompt, temperature=0.3, max_tokens=2000)
        return self.parse_json_response(content, CVAnalysisResult, "cv_analysis")
