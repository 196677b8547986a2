"""
Board Client
============

Async API client and the optimistic board state manager built on it.
"""

from taskboard.client.api import (
    ApiError,
    ApiNotFoundError,
    ApiValidationError,
    ReorderAbortedError,
    TaskApiClient,
    TransientNetworkError,
)
from taskboard.client.board import TaskBoard, partition_tasks

__all__ = [
    # API client
    "TaskApiClient",
    "ApiError",
    "ApiValidationError",
    "ApiNotFoundError",
    "TransientNetworkError",
    "ReorderAbortedError",
    # Board
    "TaskBoard",
    "partition_tasks",
]
