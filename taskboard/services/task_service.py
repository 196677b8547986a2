"""
Task Service
============

Business logic for task CRUD, single-task moves and the bulk reorder.

Positions are kept contiguous per (owner, category): creates append,
deletes close the gap and moves shift the neighbours by one. The bulk
reorder writes the caller's full arrangement inside one transaction.
"""

import logging
from typing import Optional
import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.models.task import Task, TaskCategory
from taskboard.schemas.task import ReorderItem, TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)


class TaskService:
    """Service for task operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Core CRUD
    # =========================================================================

    async def get_task_by_id(
        self,
        task_id: uuid.UUID,
        user_id: str,
    ) -> Optional[Task]:
        """Get task by ID ensuring it belongs to user."""
        stmt = select(Task).where(
            Task.task_id == task_id,
            Task.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_tasks(self, user_id: str) -> list[Task]:
        """All tasks of a user, in board order."""
        stmt = (
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(Task.position, Task.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_task(
        self,
        user_id: str,
        task_data: TaskCreate,
    ) -> Task:
        """Create a new task at the end of its category."""
        position = await self._next_position(user_id, task_data.category)
        task = Task(
            user_id=user_id,
            title=task_data.title,
            description=task_data.description,
            category=task_data.category,
            position=position,
            due_date=task_data.due_date,
        )
        self.db.add(task)
        await self.db.flush()
        # Load server-generated timestamps while still in async context
        await self.db.refresh(task)
        return task

    async def update_task(
        self,
        task: Task,
        task_data: TaskUpdate,
    ) -> Task:
        """
        Update an existing task.

        Field edits are applied in place; a changed ``category`` or an
        explicit ``position`` turns the update into a move.
        """
        fields = task_data.model_fields_set

        if task_data.title is not None:
            task.title = task_data.title
        if "description" in fields:
            task.description = task_data.description
        if "due_date" in fields:
            task.due_date = task_data.due_date

        category = task_data.category or task.category
        if category != task.category or task_data.position is not None:
            return await self.move_task(task, category, task_data.position)

        await self.db.flush()
        await self.db.refresh(task)
        return task

    async def delete_task(self, task: Task) -> None:
        """Delete a task and close the gap it leaves in its category."""
        await self._shift(
            task.user_id,
            task.category,
            delta=-1,
            above=task.position,
            exclude=task.task_id,
        )
        await self.db.delete(task)
        await self.db.flush()

    # =========================================================================
    # Moves
    # =========================================================================

    async def move_task(
        self,
        task: Task,
        category: TaskCategory,
        position: Optional[int] = None,
    ) -> Task:
        """
        Move a task to ``position`` in ``category``.

        ``position`` defaults to the end of the destination and is clamped
        to its size. Neighbours shift by one so the destination keeps a
        total order and the source has no gap.
        """
        source = task.category
        old_position = task.position

        size = await self._count(task.user_id, category, exclude=task.task_id)
        if position is None:
            position = size
        position = max(0, min(position, size))

        if category == source:
            if position > old_position:
                await self._shift(
                    task.user_id, category, delta=-1,
                    above=old_position, up_to=position, exclude=task.task_id,
                )
            elif position < old_position:
                await self._shift(
                    task.user_id, category, delta=1,
                    from_=position, below=old_position, exclude=task.task_id,
                )
        else:
            await self._shift(
                task.user_id, source, delta=-1,
                above=old_position, exclude=task.task_id,
            )
            await self._shift(
                task.user_id, category, delta=1,
                from_=position, exclude=task.task_id,
            )

        task.category = category
        task.position = position
        await self.db.flush()
        await self.db.refresh(task)

        logger.info(
            "task_move task=%s user=%s from=%s:%d to=%s:%d",
            task.task_id, task.user_id, source.value, old_position,
            category.value, position,
        )
        return task

    # =========================================================================
    # Bulk reorder
    # =========================================================================

    async def reorder_tasks(
        self,
        user_id: str,
        items: list[ReorderItem],
    ) -> int:
        """
        Apply a batch of (category, position) assignments atomically.

        Every update is filtered by owner. The first failure, including an
        id that does not exist or belongs to another user, rolls back the
        whole batch and raises ``ReorderFailedError``. On success the
        transaction is committed before returning.
        """
        try:
            for item in items:
                await self._apply_reorder_item(user_id, item)
            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            logger.warning(
                "task_reorder aborted user=%s items=%d error=%s",
                user_id, len(items), exc,
            )
            raise ReorderFailedError(str(exc)) from exc

        logger.info("task_reorder user=%s items=%d", user_id, len(items))
        return len(items)

    async def _apply_reorder_item(self, user_id: str, item: ReorderItem) -> None:
        stmt = (
            update(Task)
            .where(Task.task_id == item.id, Task.user_id == user_id)
            .values(category=item.category, position=item.position)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            raise TaskNotFoundError(str(item.id))

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _next_position(self, user_id: str, category: TaskCategory) -> int:
        stmt = select(func.max(Task.position)).where(
            Task.user_id == user_id,
            Task.category == category,
        )
        result = await self.db.execute(stmt)
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def _count(
        self,
        user_id: str,
        category: TaskCategory,
        exclude: Optional[uuid.UUID] = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Task)
            .where(Task.user_id == user_id, Task.category == category)
        )
        if exclude is not None:
            stmt = stmt.where(Task.task_id != exclude)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def _shift(
        self,
        user_id: str,
        category: TaskCategory,
        delta: int,
        *,
        above: Optional[int] = None,
        up_to: Optional[int] = None,
        from_: Optional[int] = None,
        below: Optional[int] = None,
        exclude: Optional[uuid.UUID] = None,
    ) -> None:
        """
        Add ``delta`` to the position of a user's tasks in one category.

        Bounds: ``above`` (exclusive) / ``from_`` (inclusive) for the lower
        end, ``below`` (exclusive) / ``up_to`` (inclusive) for the upper end.
        """
        conditions = [Task.user_id == user_id, Task.category == category]
        if above is not None:
            conditions.append(Task.position > above)
        if from_ is not None:
            conditions.append(Task.position >= from_)
        if below is not None:
            conditions.append(Task.position < below)
        if up_to is not None:
            conditions.append(Task.position <= up_to)
        if exclude is not None:
            conditions.append(Task.task_id != exclude)

        stmt = (
            update(Task)
            .where(*conditions)
            .values(position=Task.position + delta)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(stmt)


# =============================================================================
# Custom Exceptions
# =============================================================================

class TaskNotFoundError(Exception):
    """Raised when a task ID is not found for the given user."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class ReorderFailedError(Exception):
    """Raised when a bulk reorder was rolled back."""
