"""recruitq: asynchronous AI job queue with retry and backoff."""

__version__ = "0.3.0"
