"""
Tasks API Endpoints
===================

Handles task CRUD, single-task moves and the bulk reorder for the board.

Endpoints:
    GET    /tasks?userId=   - List the caller's tasks in board order
    POST   /tasks           - Create a task (appended to its category)
    PUT    /tasks/reorder   - Apply a batch of moves, all-or-nothing
    PUT    /tasks/{task_id} - Edit fields and/or move a task
    DELETE /tasks/{task_id} - Delete a task
"""

import logging
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from taskboard.core.errors import (
    ErrorCodes,
    ForbiddenError,
    NotFoundError,
    TransactionAbortError,
)
from taskboard.dependencies import CurrentUser, DBSession
from taskboard.schemas.common import ErrorResponse
from taskboard.schemas.task import ReorderTasksRequest, TaskCreate, TaskUpdate
from taskboard.services.task_service import ReorderFailedError, TaskService

logger = logging.getLogger(__name__)

router = APIRouter()


def _verify_user_ownership(current_user, user_id: Optional[str]) -> None:
    """
    Ensure an explicitly requested owner id is the authenticated user.

    Raises 403 if mismatched.
    """
    if user_id is not None and user_id != current_user.uid:
        raise ForbiddenError(message="Cannot access another user's tasks")


def _task_not_found() -> NotFoundError:
    return NotFoundError(code=ErrorCodes.TASK_NOT_FOUND, message="Task not found")


@router.get("")
async def list_tasks(
    current_user: CurrentUser,
    db: DBSession,
    user_id: Optional[str] = Query(default=None, alias="userId"),
):
    """
    Get all tasks of the authenticated user.

    Tasks come back ordered by position; the client partitions them by
    category.
    """
    _verify_user_ownership(current_user, user_id)

    task_service = TaskService(db)
    tasks = await task_service.list_tasks(current_user.uid)

    return {
        "success": True,
        "data": [t.to_api_dict() for t in tasks],
    }


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def create_task(
    task_data: TaskCreate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Create a new task.
    """
    _verify_user_ownership(current_user, task_data.user_id)

    task_service = TaskService(db)
    task = await task_service.create_task(
        user_id=current_user.uid,
        task_data=task_data,
    )

    return {
        "success": True,
        "data": task.to_api_dict(),
        "message": "Task created successfully",
    }


# Declared before /{task_id} so "reorder" is never parsed as an id
@router.put(
    "/reorder",
    responses={400: {"model": ErrorResponse}},
)
async def reorder_tasks(
    body: ReorderTasksRequest,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Apply a batch of category/position assignments.

    Either every listed task of the caller is updated or none is.
    """
    task_service = TaskService(db)
    try:
        await task_service.reorder_tasks(current_user.uid, body.tasks)
    except ReorderFailedError as exc:
        raise TransactionAbortError(
            message=f"Reorder failed; no changes were applied ({exc})",
        )

    return {
        "success": True,
        "message": "Tasks reordered successfully",
    }


@router.put(
    "/{task_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_task(
    task_id: uuid.UUID,
    task_data: TaskUpdate,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Update a task.

    Sending ``category`` and/or ``position`` moves the task; neighbours in
    the affected categories are shifted to keep the order total.
    """
    task_service = TaskService(db)
    task = await task_service.get_task_by_id(task_id, current_user.uid)

    if task is None:
        raise _task_not_found()

    updated_task = await task_service.update_task(task, task_data)

    return {
        "success": True,
        "data": updated_task.to_api_dict(),
        "message": "Task updated successfully",
    }


@router.delete(
    "/{task_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_task(
    task_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
):
    """
    Delete a task.
    """
    task_service = TaskService(db)
    task = await task_service.get_task_by_id(task_id, current_user.uid)

    if task is None:
        raise _task_not_found()

    await task_service.delete_task(task)

    return {
        "success": True,
        "message": "Task deleted successfully",
    }
