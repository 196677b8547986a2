"""
Task Models
===========

SQLAlchemy model for board tasks.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.db.base import Base, TimestampMixin


# =============================================================================
# Enums
# =============================================================================

class TaskCategory(str, Enum):
    """Board column a task belongs to."""
    TODO = "To-Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


# =============================================================================
# Models
# =============================================================================

class Task(Base, TimestampMixin):
    """
    Task model.

    ``position`` orders a task inside its category only; it carries no
    meaning across categories.
    """

    __tablename__ = "tasks"

    # Primary Key
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Owner (identity-provider uid)
    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    # Task details
    title: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )
    category: Mapped[TaskCategory] = mapped_column(
        SQLEnum(
            TaskCategory,
            name="taskcategory",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=TaskCategory.TODO,
    )
    position: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Indexes
    __table_args__ = (
        Index("idx_task_user_category_position", "user_id", "category", "position"),
    )

    def __repr__(self) -> str:
        return f"<Task(task_id={self.task_id}, title={self.title[:30]})>"

    def to_api_dict(self) -> dict:
        """
        Serialize to the API response format expected by the board client.

        Maps internal field names to the API contract:
            task_id  → id
            user_id  → userId
            due_date → dueDate
        """
        return {
            "id": str(self.task_id),
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "position": self.position,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
