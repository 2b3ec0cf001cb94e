"""Redis cache for AI results, shared by every worker process."""

import hashlib
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

from recruitq.core.config import settings

logger = logging.getLogger(__name__)


def cache_key(namespace: str, *parts: Any) -> str:
    """Namespace plus a digest of the request parts, independent of dict ordering."""
    canonical = json.dumps(parts, sort_keys=True, separators=(",", ":"), default=str)
    return f"{namespace}:{hashlib.sha256(canonical.encode()).hexdigest()[:32]}"


class CacheService:
    """
    Asynchronous cache of AI responses keyed by the normalised request.

    A cache failure never fails the AI call: lookups degrade to a miss and
    writes are dropped. Once Redis refuses connections the cache turns itself
    off for the life of the process.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.redis_url
        # No connection is opened until the first command
        self.client = aioredis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        self.enabled = True

    def _disable(self, error: RedisError) -> None:
        logger.warning(f"Cache disabled, Redis unreachable at {self.url}: {error}")
        self.enabled = False

    async def load(self, key: str) -> Optional[Any]:
        """Cached value for key, None on a miss or any cache error."""
        if not self.enabled:
            return None
        try:
            raw = await self.client.get(key)
        except RedisConnectionError as e:
            self._disable(e)
            return None
        except RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

        if raw is None:
            logger.debug(f"Cache miss {key}")
            return None
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt cache entry {key}")
            return None
        logger.debug(f"Cache hit {key}")
        return value

    async def store(self, key: str, value: Any, ttl: int) -> bool:
        """Write value for ttl seconds. Returns whether it was stored."""
        if not self.enabled:
            return False
        try:
            encoded = json.dumps(value)
        except TypeError as e:
            logger.warning(f"Not caching {key}, value is not JSON: {e}")
            return False
        try:
            await self.client.set(key, encoded, ex=ttl)
        except RedisConnectionError as e:
            self._disable(e)
            return False
        except RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False
        return True

    # CV analysis: the same CV scored by the same user against the same role

    async def get_cv_analysis(self, cv_text: str, job_requirements: str, user_id: str) -> Optional[dict]:
        return await self.load(cache_key("cv_analysis", cv_text, job_requirements, user_id))

    async def set_cv_analysis(self, cv_text: str, job_requirements: str, user_id: str, result: dict) -> bool:
        key = cache_key("cv_analysis", cv_text, job_requirements, user_id)
        return await self.store(key, result, settings.cache_ttl_cv_analysis)

    # Question generation: shared across users asking for the same set

    async def get_questions(self, request: dict) -> Optional[list]:
        return await self.load(cache_key("questions", request))

    async def set_questions(self, request: dict, questions: list) -> bool:
        return await self.store(cache_key("questions", request), questions, settings.cache_ttl_questions)

    # Interview analysis: one result per interview session

    async def get_interview_analysis(self, session_id: str, user_id: Optional[str]) -> Optional[dict]:
        return await self.load(cache_key("interview_analysis", session_id, user_id))

    async def set_interview_analysis(self, session_id: str, user_id: Optional[str], result: dict) -> bool:
        key = cache_key("interview_analysis", session_id, user_id)
        return await self.store(key, result, settings.cache_ttl_interview_analysis)

    # Job requirements: shared across users asking for the same role

    async def get_job_requirements(self, request: dict) -> Optional[dict]:
        return await self.load(cache_key("job_requirements", request))

    async def set_job_requirements(self, request: dict, result: dict) -> bool:
        key = cache_key("job_requirements", request)
        return await self.store(key, result, settings.cache_ttl_job_requirements)
