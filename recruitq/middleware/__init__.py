"""Middleware package."""

from recruitq.middleware.rate_limit import job_creation_limit, limiter

__all__ = ["job_creation_limit", "limiter"]
