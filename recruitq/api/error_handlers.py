"""Global error handlers for FastAPI application."""

import logging
import uuid
from typing import Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from recruitq.core.config import settings
from recruitq.core.errors import RecruitQError, ValidationError

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


async def recruitq_error_handler(request: Request, exc: RecruitQError) -> JSONResponse:
    """
    Handle domain errors raised by queues and services.

    The status code and machine-readable code come from the exception class.
    """
    request_id = _request_id(request)

    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__}: {exc.message}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "code": exc.code,
        },
    )

    content = {
        "success": False,
        "error": exc.message,
        "code": exc.code,
        "request_id": request_id,
    }
    if isinstance(exc, ValidationError) and exc.details:
        content["details"] = exc.details

    return JSONResponse(status_code=exc.status_code, content=content)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions.

    In production, returns a generic error message without exposing internal details.
    In development, includes more information for debugging.
    """
    request_id = _request_id(request)

    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        },
    )

    if settings.app_env == "production":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "An unexpected error occurred. Please contact support if this persists.",
                "code": "INTERNAL_ERROR",
                "request_id": request_id,
            },
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": str(exc),
            "code": "INTERNAL_ERROR",
            "type": exc.__class__.__name__,
            "request_id": request_id,
        },
    )


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns structured validation error details.
    """
    request_id = _request_id(request)
    errors = exc.errors() if hasattr(exc, "errors") else [{"msg": str(exc)}]

    logger.warning(
        f"Validation error: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "Invalid request data",
            "code": "VALIDATION_ERROR",
            "details": _jsonable_errors(errors),
            "request_id": request_id,
        },
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """
    Handle ValueError exceptions.

    These are typically business logic errors that should be communicated to the user.
    """
    request_id = _request_id(request)

    logger.warning(
        f"ValueError: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": str(exc),
            "code": "BAD_REQUEST",
            "request_id": request_id,
        },
    )


def _jsonable_errors(errors: list) -> list:
    # pydantic may put exception instances in "ctx"
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg", "input")}
        for error in errors
    ]
