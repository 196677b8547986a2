"""
Error Handling
==============

Standardized error codes and exception handlers.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """Standardized error codes."""

    # Authentication
    AUTH_NOT_AUTHENTICATED = "AUTH_001"
    AUTH_INVALID_TOKEN = "AUTH_002"
    FORBIDDEN = "FORBIDDEN"

    # Tasks
    TASK_NOT_FOUND = "TASK_001"
    TASK_REORDER_ABORTED = "TASK_002"

    # General
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


# =============================================================================
# Custom Exceptions
# =============================================================================

class AppException(HTTPException):
    """Base application exception with structured error response."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        field: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        **extra,
    ):
        self.code = code
        self.message = message
        self.field = field
        self.extra = extra

        detail = {
            "code": code,
            "message": message,
        }

        if field:
            detail["field"] = field

        detail.update(extra)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


class AuthenticationError(AppException):
    """Missing or invalid session."""

    def __init__(
        self,
        code: str = ErrorCodes.AUTH_NOT_AUTHENTICATED,
        message: str = "unauthorized access",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code=code,
            message=message,
            headers={"WWW-Authenticate": "Bearer"},
            **extra,
        )


class ForbiddenError(AppException):
    """Access to another user's resources."""

    def __init__(
        self,
        code: str = ErrorCodes.FORBIDDEN,
        message: str = "Access denied",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code=code,
            message=message,
            **extra,
        )


class NotFoundError(AppException):
    """Resource not found errors."""

    def __init__(
        self,
        code: str = ErrorCodes.NOT_FOUND,
        message: str = "Resource not found",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=code,
            message=message,
            **extra,
        )


class ValidationError(AppException):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCodes.VALIDATION_ERROR,
            message=message,
            field=field,
            **extra,
        )


class TransactionAbortError(AppException):
    """A multi-row write was rolled back; nothing was persisted."""

    def __init__(
        self,
        message: str = "Reorder failed; no changes were applied",
        **extra,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code=ErrorCodes.TASK_REORDER_ABORTED,
            message=message,
            **extra,
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """Handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
        },
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException,
) -> JSONResponse:
    """Handler for standard HTTPException."""
    # Check if detail is already structured
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        error = exc.detail
    else:
        error = {
            "code": "HTTP_ERROR",
            "message": str(exc.detail),
        }

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": error,
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Handler for request validation errors.

    Bad input is reported as 400 with the first offending field so the
    client can show it inline.
    """
    from fastapi.exceptions import RequestValidationError
    from pydantic import ValidationError as PydanticValidationError

    if isinstance(exc, (RequestValidationError, PydanticValidationError)):
        errors = exc.errors()
        if errors:
            first_error = errors[0]
            loc = [str(part) for part in first_error.get("loc", [])]
            if loc and loc[0] in ("body", "query", "path"):
                loc = loc[1:]
            field = ".".join(loc) or None
            message = first_error.get("msg", "Validation error")
        else:
            field = None
            message = "Validation error"

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": {
                    "code": ErrorCodes.VALIDATION_ERROR,
                    "message": message,
                    "field": field,
                },
            },
        )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": str(exc),
            },
        },
    )


async def global_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled error method=%s path=%s: %s",
        request.method, request.url.path, exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            },
        },
    )


def setup_exception_handlers(app):
    """
    Register exception handlers with FastAPI app.

    Usage:
        from taskboard.core.errors import setup_exception_handlers
        setup_exception_handlers(app)
    """
    from pydantic import ValidationError as PydanticValidationError
    from fastapi.exceptions import RequestValidationError

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
