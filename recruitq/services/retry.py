"""Bounded retries with exponential backoff for outbound calls."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
import openai

from recruitq.core.config import settings
from recruitq.core.errors import ExternalServiceError, PermanentExternalError, TransientExternalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 4xx statuses that still mean "try again later"
RETRYABLE_CLIENT_STATUSES = {408, 429}


def _status_is_retryable(status: Optional[int]) -> bool:
    if status is None:
        return False
    return status >= 500 or status in RETRYABLE_CLIENT_STATUSES


def is_retryable(error: BaseException) -> bool:
    """
    Classify a failure as transient (worth retrying) or permanent.

    Transient: network errors, timeouts, HTTP 5xx, 408 and 429.
    Permanent: other 4xx and anything we do not recognise.
    """
    if isinstance(error, TransientExternalError):
        return True
    if isinstance(error, PermanentExternalError):
        return False
    if isinstance(error, ExternalServiceError):
        return _status_is_retryable(error.status)

    # openai.APITimeoutError subclasses APIConnectionError
    if isinstance(error, openai.APIConnectionError):
        return True
    if isinstance(error, openai.APIStatusError):
        return _status_is_retryable(error.status_code)

    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return _status_is_retryable(error.response.status_code)

    return isinstance(error, (TimeoutError, ConnectionError))


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try and how long to wait in between."""

    max_attempts: int = 3
    base_delay_ms: int = 1000
    multiplier: float = 2.0
    classify: Callable[[BaseException], bool] = field(default=is_retryable)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be positive (got {self.max_attempts})")
        if self.base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must not be negative (got {self.base_delay_ms})")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(max_attempts=settings.retry_max_attempts, base_delay_ms=settings.retry_base_delay_ms)

    def delay_seconds(self, attempt: int) -> float:
        """Backoff after the given (1-based) failed attempt."""
        return self.base_delay_ms * (self.multiplier ** (attempt - 1)) / 1000


class RetryExecutor:
    """Runs an async operation with bounded retries, logging one telemetry record per attempt."""

    def __init__(
        self,
        service_name: str,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.service_name = service_name
        self.policy = policy or RetryPolicy.from_settings()
        self._sleep = sleep

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        operation_name: str,
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Call `operation` until it succeeds, fails permanently, or attempts run out.

        Args:
            operation: Zero-argument coroutine function
            operation_name: Label used in telemetry and error tags
            max_attempts: Overrides the policy's attempt count

        Returns:
            Whatever the operation returns

        Raises:
            The last error raised by the operation, tagged with the operation
            name and the number of attempts made
        """
        attempts = max_attempts if max_attempts is not None else self.policy.max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be positive (got {attempts})")

        for attempt in range(1, attempts + 1):
            started = time.monotonic()
            try:
                result = await operation()
            except Exception as e:
                self._record(operation_name, started, attempt, success=False, error=e)
                retryable = self.policy.classify(e)
                if not retryable or attempt == attempts:
                    self._tag(e, operation_name, attempt)
                    logger.error(
                        f"{self.service_name}.{operation_name} failed after {attempt} attempt(s): {e}",
                        extra={
                            "service": self.service_name,
                            "operation": operation_name,
                            "attempts": attempt,
                            "retryable": retryable,
                        },
                    )
                    raise

                delay = self.policy.delay_seconds(attempt)
                logger.info(f"Retrying {self.service_name}.{operation_name} in {delay:.2f}s")
                await self._sleep(delay)
            else:
                self._record(operation_name, started, attempt, success=True)
                return result

        # Unreachable: the final attempt either returns or raises
        raise RuntimeError(f"{operation_name} failed after {attempts} attempts")

    def _record(
        self,
        operation_name: str,
        started: float,
        attempt: int,
        success: bool,
        error: Optional[BaseException] = None,
    ) -> None:
        duration_ms = int((time.monotonic() - started) * 1000)
        extra = {
            "service": self.service_name,
            "operation": operation_name,
            "duration_ms": duration_ms,
            "success": success,
            "attempt": attempt,
        }
        if success:
            logger.info(f"External API call {self.service_name}.{operation_name} succeeded", extra=extra)
        else:
            extra["error"] = str(error)
            logger.warning(f"External API call {self.service_name}.{operation_name} failed: {error}", extra=extra)

    @staticmethod
    def _tag(error: Exception, operation_name: str, attempts: int) -> None:
        if isinstance(error, ExternalServiceError):
            error.operation = operation_name
            error.attempts = attempts
        error.add_note(f"operation={operation_name} attempts={attempts}")
