"""Unit tests for CacheService."""

import asyncio
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from recruitq.services.cache_service import CacheService, cache_key


@pytest.mark.unit
class TestCacheKey:
    """Test cache key derivation."""

    def test_same_inputs_same_key(self):
        assert cache_key("cv_analysis", "cv", "reqs", "user-1") == cache_key("cv_analysis", "cv", "reqs", "user-1")

    def test_user_is_part_of_the_key(self):
        assert cache_key("cv_analysis", "cv", "reqs", "user-1") != cache_key("cv_analysis", "cv", "reqs", "user-2")

    def test_dict_order_is_irrelevant(self):
        assert cache_key("questions", {"jobTitle": "Dev", "count": 3}) == cache_key(
            "questions", {"count": 3, "jobTitle": "Dev"}
        )

    def test_namespace_prefix(self):
        key = cache_key("job_requirements", {"jobTitle": "Dev"})
        namespace, digest = key.split(":")
        assert namespace == "job_requirements"
        assert len(digest) == 32


@pytest.mark.unit
class TestCacheService:
    """Test CacheService for Redis-based caching of AI results."""

    @pytest.fixture
    def cache_service(self, mock_redis):
        """Create a CacheService instance with mocked Redis."""
        return CacheService()

    def test_construction_does_not_touch_redis(self, cache_service, mock_redis):
        assert cache_service.enabled is True
        mock_redis.get.assert_not_called()
        mock_redis.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_and_get_cv_analysis(self, cache_service, mock_redis):
        """Test caching and retrieving a CV analysis."""
        result = {"score": 80, "matchPercentage": 75}

        assert await cache_service.set_cv_analysis("cv", "reqs", "user-1", result) is True

        key, payload = mock_redis.set.await_args.args
        assert key == cache_key("cv_analysis", "cv", "reqs", "user-1")
        assert mock_redis.set.await_args.kwargs == {"ex": 3600}
        assert json.loads(payload) == result

        mock_redis.get.return_value = payload
        assert await cache_service.get_cv_analysis("cv", "reqs", "user-1") == result
        mock_redis.get.assert_awaited_with(key)

    @pytest.mark.asyncio
    async def test_miss(self, cache_service, mock_redis):
        mock_redis.get.return_value = None
        assert await cache_service.get_cv_analysis("cv", "reqs", "user-1") is None

    @pytest.mark.asyncio
    async def test_domain_ttls(self, cache_service, mock_redis):
        await cache_service.set_questions({"jobTitle": "Dev"}, [{"id": "q1"}])
        assert mock_redis.set.await_args.kwargs["ex"] == 7200

        await cache_service.set_interview_analysis("session-1", "user-1", {"overallScore": 70})
        assert mock_redis.set.await_args.kwargs["ex"] == 3600

        await cache_service.set_job_requirements({"jobTitle": "Dev"}, {"jobTitle": "Dev"})
        assert mock_redis.set.await_args.kwargs["ex"] == 7200

    @pytest.mark.asyncio
    async def test_round_trip_through_questions_and_interviews(self, cache_service, mock_redis):
        questions = [{"id": "q1", "question": "Why Go?"}]
        mock_redis.get.return_value = json.dumps(questions)
        assert await cache_service.get_questions({"jobTitle": "Dev"}) == questions

        mock_redis.get.return_value = json.dumps({"overallScore": 70})
        assert await cache_service.get_interview_analysis("session-1", None) == {"overallScore": 70}

    @pytest.mark.asyncio
    async def test_command_errors_degrade_to_miss(self, cache_service, mock_redis):
        mock_redis.get.side_effect = ResponseError("WRONGTYPE")
        mock_redis.set.side_effect = ResponseError("OOM")

        assert await cache_service.load("any") is None
        assert await cache_service.store("any", {"a": 1}, ttl=60) is False
        assert cache_service.enabled is True

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_a_miss(self, cache_service, mock_redis):
        mock_redis.get.return_value = "{not json"
        assert await cache_service.load("any") is None

    @pytest.mark.asyncio
    async def test_unserialisable_value_is_not_stored(self, cache_service, mock_redis):
        assert await cache_service.store("any", {1, 2}, ttl=60) is False
        mock_redis.set.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_connection_refused_disables_cache(self, cache_service, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("refused")

        assert await cache_service.load("any") is None
        assert cache_service.enabled is False

        assert await cache_service.store("any", {"a": 1}, ttl=60) is False
        assert await cache_service.load("other") is None
        mock_redis.set.assert_not_awaited()
        assert mock_redis.get.await_count == 1

    @pytest.mark.asyncio
    async def test_slow_redis_does_not_block_the_event_loop(self, cache_service, mock_redis):
        """Other coroutines keep running while a cache read is waiting on Redis."""

        async def slow_get(key):
            await asyncio.sleep(0.2)
            return None

        mock_redis.get.side_effect = slow_get
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0.01)

        ticking = asyncio.create_task(ticker())
        try:
            assert await cache_service.get_cv_analysis("cv", "reqs", "user-1") is None
        finally:
            ticking.cancel()
            await asyncio.gather(ticking, return_exceptions=True)

        assert ticks >= 5
