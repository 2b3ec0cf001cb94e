"""Error taxonomy shared by the queue engine, AI services and API layer."""

from typing import Optional


class RecruitQError(Exception):
    """Base class for errors with a machine-readable code and HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(RecruitQError):
    """Malformed or incomplete job creation request. Never enters the queue."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[list] = None):
        super().__init__(message)
        self.details = details or []


class NotFoundError(RecruitQError):
    """Status or progress query for a job id unknown to the queue."""

    code = "NOT_FOUND"
    status_code = 404


class QueueUnavailableError(RecruitQError):
    """Queue is draining, shut down, or not registered."""

    code = "QUEUE_UNAVAILABLE"
    status_code = 503


class InvalidTransitionError(RecruitQError):
    """Attempted a job state transition the state machine forbids."""

    code = "INVALID_TRANSITION"
    status_code = 409


class ExternalServiceError(RecruitQError):
    """Failure of an outbound dependency (OpenAI, HTTP APIs)."""

    code = "EXTERNAL_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        operation: Optional[str] = None,
        attempts: Optional[int] = None,
    ):
        super().__init__(message)
        self.status = status
        self.operation = operation
        self.attempts = attempts


class TransientExternalError(ExternalServiceError):
    """Retryable failure: network error, timeout, 5xx."""

    code = "EXTERNAL_UNAVAILABLE"


class PermanentExternalError(ExternalServiceError):
    """Non-retryable failure: the callee rejected the request (4xx)."""

    code = "EXTERNAL_REJECTED"


class MalformedResponseError(TransientExternalError):
    """The AI answered, but not with the JSON shape we asked for."""

    code = "MALFORMED_RESPONSE"


class ProcessingError(RecruitQError):
    """Any other failure raised while a job processor runs."""

    code = "PROCESSING_ERROR"


class JobTimeoutError(ProcessingError):
    """Job exceeded the configured job-level timeout."""

    code = "JOB_TIMEOUT"
