"""Interview question generation."""

import logging
from typing import List
from uuid import uuid4

from recruitq.models.ai import Question, QuestionGenerationRequest, QuestionSet
from recruitq.services.ai.base import BaseAIService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert interview designer specializing in creating highly relevant and specific "
    "interview questions. You understand different industries, job roles, and assessment techniques. "
    "Always return valid JSON only."
)

TYPE_GUIDANCE = {
    "technical": "All questions must be technical and test hands-on knowledge of the listed skills.",
    "behavioral": "All questions must be behavioral, probing past situations, teamwork and judgement.",
    "mixed": "Mix technical and behavioral questions, roughly half of each.",
}


class QuestionGenerationService(BaseAIService):
    """Generates interview questions for a role and skill set."""

    async def generate_questions(self, request: QuestionGenerationRequest) -> List[Question]:
        cache_key = request.model_dump(exclude={"user_id"})
        if self.cache:
            cached = await self.cache.get_questions(cache_key)
            if cached:
                logger.info(f"Questions for '{request.job_title}' served from cache")
                return [Question.model_validate(q) for q in cached]

        questions = await self.retry.with_retry(lambda: self._generate(request), "generate_questions")

        if self.cache:
            await self.cache.set_questions(cache_key, [q.model_dump(by_alias=True) for q in questions])

        logger.info(f"Generated {len(questions)} questions for '{request.job_title}'")
        return questions

    async def _generate(self, request: QuestionGenerationRequest) -> List[Question]:
        user_prompt = f"""Create {request.count} interview questions for a {request.job_title} position.

Skills to assess: {", ".join(request.skills)}
Difficulty: {request.difficulty}
{TYPE_GUIDANCE[request.type]}

Respond with a JSON object of this shape:
{{
  "questions": [
    {{
      "question": string,
      "type": "technical" | "behavioral",
      "difficulty": "easy" | "medium" | "hard",
      "expectedAnswer": string,
      "scoringCriteria": string[]
    }}
  ]
}}"""

        content = await self.generate_completion(SYSTEM_PROMPT, user_prompt, temperature=0.7, max_tokens=1500)
        question_set = self.parse_json_response(content, QuestionSet, "questions")

        questions = question_set.questions[: request.count]
        for question in questions:
            if not question.id:
                question.id = str(uuid4())
        return questions
