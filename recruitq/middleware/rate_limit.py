"""Rate limiting for job creation endpoints."""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from recruitq.core.config import settings

logger = logging.getLogger(__name__)


def rate_limit_key(request) -> str:
    """
    Key requests by authenticated user when the gateway forwards one,
    otherwise by client address.
    """
    user_id = request.headers.get("X-User-Id")
    if user_id:
        return f"user:{user_id}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=rate_limit_key,
    enabled=settings.rate_limit_enabled,
    headers_enabled=False,
)


def job_creation_limit() -> str:
    """Limit applied to POST /<domain>/async."""
    return settings.rate_limit_job_creation
