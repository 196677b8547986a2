"""
Database Models
===============

SQLAlchemy ORM models for all database entities.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata for migrations.
"""

from taskboard.models.user import User
from taskboard.models.task import Task, TaskCategory

__all__ = [
    # User
    "User",
    # Task
    "Task",
    "TaskCategory",
]
