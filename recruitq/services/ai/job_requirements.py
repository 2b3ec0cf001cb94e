"""Job requirements drafting."""

import logging

from recruitq.models.ai import JobRequirementsRequest, JobRequirementsResult
from recruitq.services.ai.base import BaseAIService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an experienced technical recruiter who writes precise, realistic job requirements. "
    "Return valid JSON only."
)


class JobRequirementsService(BaseAIService):
    """Drafts a structured job posting from a title and a few hints."""

    async def generate_job_requirements(self, request: JobRequirementsRequest) -> JobRequirementsResult:
        cache_key = request.model_dump(exclude={"user_id"})
        if self.cache:
            cached = await self.cache.get_job_requirements(cache_key)
            if cached:
                logger.info(f"Job requirements for '{request.job_title}' served from cache")
                return JobRequirementsResult.model_validate(cached)

        result = await self.retry.with_retry(lambda: self._generate(request), "generate_job_requirements")

        if self.cache:
            await self.cache.set_job_requirements(cache_key, result.model_dump(by_alias=True))

        logger.info(f"Generated job requirements for '{request.job_title}'")
        return result

    async def _generate(self, request: JobRequirementsRequest) -> JobRequirementsResult:
        context = "\n".join(
            f"{label}: {value}"
            for label, value in (
                ("Industry", request.industry),
                ("Seniority", request.seniority),
                ("Company size", request.company_size),
                ("Location", request.location),
            )
            if value
        )
        user_prompt = f"""Write the requirements for a {request.job_title} position.
{context}

Respond with a JSON object of this shape:
{{
  "jobTitle": string,
  "summary": string,
  "keyResponsibilities": string[],
  "requiredSkills": {{"technical": string[], "soft": string[], "certifications": string[]}},
  "preferredSkills": {{"technical": string[], "soft": string[], "certifications": string[]}},
  "experience": {{"minimumYears": number, "preferredYears": number, "relevantExperience": string[]}},
  "education": {{"minimum": string, "preferred": string, "relevantFields": string[]}},
  "qualifications": {{"essential": string[], "desired": string[]}},
  "benefits": string[],
  "workEnvironment": string,
  "careerGrowth": string,
  "salaryRange": {{"min": number, "max": number, "currency": string}},
  "employmentType": string,
  "location": string,
  "remotePolicy": string
}}"""

        content = await self.generate_completion(SYSTEM_PROMPT, user_prompt, temperature=0.4, max_tokens=2500)
        return self.parse_json_response(content, JobRequirementsResult, "job_requirements")
