"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from taskboard.schemas.common import ErrorDetail, ErrorResponse
from taskboard.schemas.task import (
    ReorderItem,
    ReorderTasksRequest,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    # Task
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "ReorderItem",
    "ReorderTasksRequest",
]
