"""Shared OpenAI plumbing for the AI services."""

import logging
import re
from typing import Optional, Type, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from recruitq.core.config import settings
from recruitq.core.errors import MalformedResponseError, PermanentExternalError
from recruitq.services.cache_service import CacheService
from recruitq.services.retry import RetryExecutor

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class BaseAIService:
    """Base class holding the OpenAI client, retry executor and cache."""

    def __init__(
        self,
        cache: Optional[CacheService] = None,
        retry: Optional[RetryExecutor] = None,
        client: Optional[AsyncOpenAI] = None,
        model_name: Optional[str] = None,
    ):
        self.cache = cache
        self.retry = retry or RetryExecutor("openai")
        self.model_name = model_name or settings.openai_model
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        """Lazy load the OpenAI client."""
        if self._client is None:
            if not settings.openai_api_key.strip():
                raise PermanentExternalError("OPENAI_API_KEY is not configured")
            logger.info(f"Initializing OpenAI client with model: {self.model_name}")
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.openai_timeout_seconds,
                max_retries=0,  # RetryExecutor owns retries
            )
        return self._client

    async def generate_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
    ) -> str:
        """
        Run one chat completion asking for a JSON object.

        Returns:
            The raw message content
        """
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise MalformedResponseError("No response content from OpenAI")
        return content

    @staticmethod
    def parse_json_response(content: str, model: Type[M], operation: str) -> M:
        """
        Validate the model's answer, tolerating markdown code fences.

        Raises:
            MalformedResponseError: If the content is not valid JSON for `model`
        """
        cleaned = _CODE_FENCE.sub("", content.strip()).strip()
        try:
            return model.model_validate_json(cleaned)
        except PydanticValidationError as e:
            logger.warning(f"Failed to parse {operation} response: {e}", extra={"content": content[:500]})
            raise MalformedResponseError(f"Failed to parse {operation} response") from e
