"""Scoring of completed interview sessions."""

import logging

from recruitq.models.ai import InterviewAnalysisRequest, InterviewAnalysisResult
from recruitq.services.ai.base import BaseAIService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert interview assessor. Provide fair, constructive feedback "
    "with specific examples. Return valid JSON only."
)


class InterviewAnalysisService(BaseAIService):
    """Scores each answer of an interview and summarises the candidate."""

    async def analyze_interview(self, request: InterviewAnalysisRequest) -> InterviewAnalysisResult:
        if self.cache:
            cached = await self.cache.get_interview_analysis(request.session_id, request.user_id)
            if cached:
                logger.info(f"Interview analysis for session {request.session_id} served from cache")
                return InterviewAnalysisResult.model_validate(cached)

        result = await self.retry.with_retry(lambda: self._generate(request), "analyze_interview")

        if self.cache:
            await self.cache.set_interview_analysis(
                request.session_id, request.user_id, result.model_dump(by_alias=True)
            )

        logger.info(f"Interview session {request.session_id} scored {result.overall_score}")
        return result

    def _format_session(self, request: InterviewAnalysisRequest) -> str:
        answers = {answer.question_id: answer for answer in request.answers}
        blocks = []
        for i, question in enumerate(request.questions, 1):
            answer = answers.get(question.id)
            blocks.append(
                f"Question {i} [id={question.id}] ({question.type}, {question.difficulty}): {question.question}\n"
                f"Answer: {answer.answer if answer else 'No answer provided'}\n"
                f"Duration: {answer.duration if answer else 0}ms\n"
                f"Expected: {question.expected_answer or 'Not specified'}"
            )
        return "\n\n".join(blocks)

    async def _generate(self, request: InterviewAnalysisRequest) -> InterviewAnalysisResult:
        user_prompt = f"""Analyze the following interview session and provide comprehensive feedback.

Questions and Answers:
{self._format_session(request)}

Respond with a JSON object of this shape:
{{
  "overallScore": number (0-100),
  "questionScores": [
    {{"questionId": string, "score": number (0-100), "feedback": string,
      "strengths": string[], "improvements": string[]}}
  ],
  "summary": string,
  "recommendations": string[],
  "strengths": string[],
  "weaknesses": string[]
}}

Evaluate technical accuracy, communication clarity, problem-solving approach and relevant experience.
Unanswered questions score 0."""

        content = await self.generate_completion(SYSTEM_PROMPT, user_prompt, temperature=0.3, max_tokens=2000)
        return self.parse_json_response(content, InterviewAnalysisResult, "interview_analysis")
