"""
Board State Manager
===================

In-memory view of a user's tasks partitioned into the three board
columns, kept in sync with the API using optimistic updates.

Drag operations mutate the local columns first and persist afterwards.
When persisting fails the optimistic state is thrown away and the board
re-loads from the server; the failed request is never re-sent. A load
always wins: only the most recently issued load may replace the columns.

All mutations of ``columns`` happen synchronously between awaits, so on a
single event loop the columns are always the union of the optimistic
edits applied so far, whatever requests are still in flight.
"""

import logging
from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from taskboard.client.api import (
    ApiError,
    ApiNotFoundError,
    ApiValidationError,
    TaskApiClient,
)
from taskboard.models.task import TaskCategory
from taskboard.schemas.task import ReorderItem, TaskCreate, TaskRead, TaskUpdate

logger = logging.getLogger(__name__)

LOAD_ERROR = "Failed to fetch tasks. Please try again."
MOVE_ERROR = "Failed to update task position. The board has been refreshed."
REORDER_ERROR = "Failed to save the board order. The board has been refreshed."
CREATE_ERROR = "Failed to create task. Please try again."
UPDATE_ERROR = "Failed to update task. Please try again."
DELETE_ERROR = "Failed to delete task"

_CATEGORY_VALUES = {category.value for category in TaskCategory}

Columns = dict[TaskCategory, list[TaskRead]]
ItemId = Union[str, TaskCategory]


def empty_columns() -> Columns:
    return {category: [] for category in TaskCategory}


def partition_tasks(raw_tasks: Iterable[dict]) -> Columns:
    """
    Split raw API task dicts into board columns, preserving order.

    Entries with an unknown category, malformed entries and repeated ids
    are dropped so every task ends up in exactly one column.
    """
    columns = empty_columns()
    seen: set[str] = set()

    for raw in raw_tasks:
        category = raw.get("category") if isinstance(raw, dict) else None
        if category not in _CATEGORY_VALUES:
            logger.debug("Dropping task with unknown category: %r", category)
            continue
        try:
            task = TaskRead.model_validate(raw)
        except PydanticValidationError as exc:
            logger.debug("Dropping malformed task %r: %s", raw.get("id"), exc)
            continue
        if task.id in seen:
            continue
        seen.add(task.id)
        columns[task.category].append(task)

    return columns


def move_item(items: list, old_index: int, new_index: int) -> list:
    """Return a copy with the item at ``old_index`` moved to ``new_index``."""
    result = list(items)
    result.insert(new_index, result.pop(old_index))
    return result


def _describe(exc: ApiError, fallback: str) -> str:
    # Validation and not-found messages come from the server and are shown as is
    if isinstance(exc, (ApiValidationError, ApiNotFoundError)):
        return exc.message
    return fallback


class TaskBoard:
    """
    Client-side board state for one user.

    Column sentinels: a category (or its string value) passed as
    ``over_id`` means "the empty area of that column" and drops at its end.
    """

    def __init__(self, api: TaskApiClient, user_id: str):
        self.api = api
        self.user_id = user_id
        self.columns: Columns = empty_columns()
        self.active_id: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None

        # Last arrangement the server is known to hold
        self._acknowledged: Columns = empty_columns()

        self._load_generation = 0
        self._drag_origin: Optional[tuple[TaskCategory, int]] = None
        self._drag_snapshot: Optional[Columns] = None
        self._dragged_over = False

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def _is_sentinel(item_id: ItemId) -> bool:
        return isinstance(item_id, TaskCategory) or item_id in _CATEGORY_VALUES

    def find_container(self, item_id: Optional[ItemId]) -> Optional[TaskCategory]:
        """Column holding a task id, or the column a sentinel names."""
        if item_id is None:
            return None
        if self._is_sentinel(item_id):
            return TaskCategory(item_id)
        for category, tasks in self.columns.items():
            if any(task.id == item_id for task in tasks):
                return category
        return None

    def _index_of(self, category: TaskCategory, task_id: str) -> int:
        for index, task in enumerate(self.columns[category]):
            if task.id == task_id:
                return index
        return -1

    def _drop_index(self, category: TaskCategory, over_id: ItemId) -> int:
        if self._is_sentinel(over_id):
            return len(self.columns[category])
        index = self._index_of(category, over_id)
        return index if index >= 0 else len(self.columns[category])

    @property
    def active_task(self) -> Optional[TaskRead]:
        """The task being dragged, for overlay rendering."""
        category = self.find_container(self.active_id)
        if category is None:
            return None
        index = self._index_of(category, self.active_id)
        return self.columns[category][index] if index >= 0 else None

    def dismiss_error(self) -> None:
        self.error = None

    # =========================================================================
    # Local mutations
    # =========================================================================

    def _renumber(self, *categories: TaskCategory) -> None:
        for category in categories:
            self.columns[category] = [
                task
                if task.position == index and task.category == category
                else task.model_copy(update={"position": index, "category": category})
                for index, task in enumerate(self.columns[category])
            ]

    def _relocate(
        self,
        task_id: str,
        source: TaskCategory,
        target: TaskCategory,
        index: int,
    ) -> None:
        tasks = list(self.columns[source])
        task = tasks.pop(self._index_of(source, task_id))
        self.columns[source] = tasks

        target_tasks = list(self.columns[target])
        target_tasks.insert(index, task.model_copy(update={"category": target}))
        self.columns[target] = target_tasks

        self._renumber(source, target)

    def _copy_columns(self) -> Columns:
        return {category: list(tasks) for category, tasks in self.columns.items()}

    def _acknowledge(self) -> None:
        self._acknowledged = self._copy_columns()

    def _discard_optimistic(self) -> None:
        self.columns = {c: list(tasks) for c, tasks in self._acknowledged.items()}

    def _rebase_drag(self) -> None:
        """Re-anchor an in-progress drag on freshly loaded columns."""
        category = self.find_container(self.active_id)
        if category is None:
            self._drag_origin = None
            self._drag_snapshot = None
        else:
            self._drag_origin = (category, self._index_of(category, self.active_id))
            self._drag_snapshot = self._copy_columns()
        self._dragged_over = False

    def _clear_drag(self) -> None:
        self.active_id = None
        self._drag_origin = None
        self._drag_snapshot = None
        self._dragged_over = False

    # =========================================================================
    # Load
    # =========================================================================

    async def load(self) -> bool:
        """
        Replace the columns with the server's tasks.

        Safe to call repeatedly; this is the recovery path after any failed
        mutation. On failure the previous columns are kept and ``error`` is
        set. A response that arrives after a newer load was issued is
        ignored.
        """
        self._load_generation += 1
        generation = self._load_generation
        self.loading = True
        self.error = None

        try:
            raw_tasks = await self.api.list_tasks(self.user_id)
        except ApiError as exc:
            logger.warning("board_load failed user=%s error=%s", self.user_id, exc)
            if generation == self._load_generation:
                self.loading = False
                self.error = LOAD_ERROR
            return False

        if generation != self._load_generation:
            logger.debug("board_load superseded user=%s generation=%d", self.user_id, generation)
            return False

        self.columns = partition_tasks(raw_tasks)
        self._acknowledge()
        if self.active_id is not None:
            self._rebase_drag()
        self.loading = False
        return True

    async def _resync(self, message: str) -> None:
        if await self.load():
            self.error = message

    # =========================================================================
    # Drag and drop
    # =========================================================================

    def begin_drag(self, task_id: str) -> None:
        """Mark a task as being dragged. No network effect."""
        self._clear_drag()
        self.active_id = task_id

        category = self.find_container(task_id)
        if category is None:
            return

        self._drag_origin = (category, self._index_of(category, task_id))
        self._drag_snapshot = self._copy_columns()

    def drag_over(self, active_id: str, over_id: Optional[ItemId]) -> bool:
        """
        Move the dragged task into the hovered column while dragging.

        Only acts when the hover is in a different column than the one
        currently holding the task, so repeating the same event is a no-op.
        Returns True when the columns changed.
        """
        if over_id is None:
            return False

        source = self.find_container(active_id)
        target = self.find_container(over_id)
        if source is None or target is None or source == target:
            return False

        self._relocate(active_id, source, target, self._drop_index(target, over_id))
        self._dragged_over = True
        return True

    async def end_drag(self, active_id: str, over_id: Optional[ItemId]) -> bool:
        """
        Finish a drag and persist the new place of the task.

        Returns True when the move was persisted. Returns False when there
        was nothing to persist (cancelled drag, unchanged place) or when
        persisting failed and the board was re-loaded.
        """
        origin = self._drag_origin
        snapshot = self._drag_snapshot
        restorable = self._dragged_over and snapshot is not None
        self._clear_drag()

        source = self.find_container(active_id)
        target = self.find_container(over_id)
        if source is None or target is None:
            # Cancelled, or dropped somewhere that is not on the board
            if restorable:
                self.columns = snapshot
            return False

        active_index = self._index_of(source, active_id)
        if origin is None:
            origin = (source, active_index)

        if source != target:
            self._relocate(active_id, source, target, self._drop_index(target, over_id))
        else:
            if self._is_sentinel(over_id):
                new_index = len(self.columns[source]) - 1
            else:
                new_index = self._index_of(source, over_id)
            if new_index != active_index:
                self.columns[source] = move_item(self.columns[source], active_index, new_index)
                self._renumber(source)

        position = self._index_of(target, active_id)
        if (target, position) == origin:
            return False

        try:
            await self.api.update_task(
                active_id,
                TaskUpdate(category=target, position=position),
            )
        except ApiError as exc:
            logger.warning(
                "board_move failed task=%s to=%s:%d error=%s",
                active_id, target.value, position, exc,
            )
            self._discard_optimistic()
            await self._resync(MOVE_ERROR)
            return False

        self._acknowledge()
        return True

    async def save_order(self) -> bool:
        """
        Persist the whole board arrangement as one bulk reorder.

        The server applies it all-or-nothing; on failure the board is
        re-loaded.
        """
        self._renumber(*TaskCategory)
        items = [
            ReorderItem(id=task.id, category=category, position=task.position)
            for category, tasks in self.columns.items()
            for task in tasks
        ]
        if not items:
            return False

        try:
            await self.api.reorder_tasks(items)
        except ApiError as exc:
            logger.warning("board_reorder failed user=%s error=%s", self.user_id, exc)
            self._discard_optimistic()
            await self._resync(REORDER_ERROR)
            return False

        self._acknowledge()
        return True

    # =========================================================================
    # CRUD
    # =========================================================================

    async def add_task(self, task: TaskCreate) -> TaskRead:
        """
        Create a task and append it to its column.

        On failure ``error`` is set, the columns are untouched and the
        ``ApiError`` propagates so a form can show field errors.
        """
        if task.user_id is None:
            task = task.model_copy(update={"user_id": self.user_id})

        try:
            created = await self.api.create_task(task)
        except ApiError as exc:
            self.error = _describe(exc, CREATE_ERROR)
            raise

        self.columns[created.category] = [*self.columns[created.category], created]
        self._acknowledged[created.category] = [
            *self._acknowledged[created.category], created,
        ]
        return created

    async def edit_task(self, task_id: str, changes: TaskUpdate) -> TaskRead:
        """Edit a task, then re-load since the server may shift neighbours."""
        try:
            updated = await self.api.update_task(task_id, changes)
        except ApiError as exc:
            self.error = _describe(exc, UPDATE_ERROR)
            raise

        await self.load()
        return updated

    async def delete_task(self, task_id: str) -> None:
        """Delete a task and drop it from its column."""
        try:
            await self.api.delete_task(task_id)
        except ApiError as exc:
            self.error = _describe(exc, DELETE_ERROR)
            raise

        category = self.find_container(task_id)
        if category is not None:
            self.columns[category] = [
                task for task in self.columns[category] if task.id != task_id
            ]
            self._renumber(category)
        for category, tasks in self._acknowledged.items():
            self._acknowledged[category] = [t for t in tasks if t.id != task_id]
