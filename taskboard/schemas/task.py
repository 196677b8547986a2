"""
Task Schemas
============

Pydantic schemas for the task endpoints.

The same models are used by the board client to build requests and to
parse responses, so both sides agree on field limits and names.
"""

from datetime import datetime, timezone
from typing import Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator

from taskboard.models.task import TaskCategory


TITLE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200


def _strip_title(value):
    # Runs before the length limits so surrounding whitespace is not counted
    if not isinstance(value, str):
        return value
    value = value.strip()
    if not value:
        raise ValueError("Title is required")
    return value


# =============================================================================
# Request Schemas
# =============================================================================

class TaskCreate(BaseModel):
    """Request schema for creating a task."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    category: TaskCategory = TaskCategory.TODO
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    user_id: Optional[str] = Field(
        None,
        alias="userId",
        description="Owner id; must match the authenticated user when sent.",
    )

    _title = field_validator("title", mode="before")(_strip_title)


class TaskUpdate(BaseModel):
    """
    Request schema for updating a task.

    Merge semantics: only fields present are updated. ``category`` and
    ``position`` together describe a move.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    category: Optional[TaskCategory] = None
    position: Optional[int] = Field(None, ge=0)
    due_date: Optional[datetime] = Field(None, alias="dueDate")

    _title = field_validator("title", mode="before")(_strip_title)


class ReorderItem(BaseModel):
    """Single entry of a bulk reorder request."""

    id: uuid.UUID
    category: TaskCategory
    position: int = Field(ge=0)


class ReorderTasksRequest(BaseModel):
    """
    Request schema for the bulk reorder.

    Maps to PUT /tasks/reorder
    """

    tasks: list[ReorderItem] = Field(min_length=1, max_length=500)


# =============================================================================
# Response Schemas
# =============================================================================

class TaskRead(BaseModel):
    """
    A task as returned by the API.

    Uses camelCase aliases to match the wire format of ``Task.to_api_dict``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(alias="userId")
    title: str
    description: Optional[str] = None
    category: TaskCategory
    position: int = 0
    due_date: Optional[datetime] = Field(None, alias="dueDate")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        """Display-only flag: the due date has passed."""
        if self.due_date is None:
            return False
        due = self.due_date
        if due.tzinfo is None:
            due = due.replace(tzinfo=timezone.utc)
        return due < (now or datetime.now(timezone.utc))
