"""
Board Integration Tests
=======================

TaskBoard driving the real API (ASGI app + in-memory database) through
TaskApiClient. After any sequence of acknowledged operations a fresh
load must show exactly what the board shows.
"""

import uuid

import httpx
import pytest
import pytest_asyncio

from taskboard.client.api import ApiValidationError, ReorderAbortedError, TaskApiClient
from taskboard.client.board import TaskBoard
from taskboard.core.security import create_session_token
from taskboard.models.task import TaskCategory
from taskboard.schemas.task import ReorderItem, TaskCreate, TaskUpdate

USER = "board-user"

TODO = TaskCategory.TODO
IN_PROGRESS = TaskCategory.IN_PROGRESS
DONE = TaskCategory.DONE


def _layout(board: TaskBoard) -> dict:
    return {
        category: [(task.title, task.position) for task in tasks]
        for category, tasks in board.columns.items()
    }


@pytest_asyncio.fixture
async def api(app):
    client = TaskApiClient(
        "http://test",
        token=create_session_token(USER),
        transport=httpx.ASGITransport(app=app),
    )
    async with client:
        yield client


@pytest_asyncio.fixture
async def board(api) -> TaskBoard:
    board = TaskBoard(api, USER)
    for title, category in [
        ("a", TODO), ("b", TODO), ("c", TODO),
        ("x", IN_PROGRESS), ("y", IN_PROGRESS),
    ]:
        await board.add_task(TaskCreate(title=title, category=category))
    return board


async def _reloaded(api) -> dict:
    fresh = TaskBoard(api, USER)
    assert await fresh.load() is True
    return _layout(fresh)


@pytest.mark.asyncio
async def test_added_tasks_match_server(board, api):
    assert _layout(board) == await _reloaded(api)
    assert [t for t, _ in _layout(board)[TODO]] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_acknowledged_moves_match_server(board, api):
    """Cross-column and same-column drags leave client and server equal."""
    by_title = {t.title: t.id for tasks in board.columns.values() for t in tasks}

    drags = [
        # (active, hover during drag, drop target)
        ("b", by_title["y"], by_title["b"]),
        ("a", DONE, DONE),
        ("c", None, by_title["x"]),
        ("y", TODO, by_title["c"]),
    ]
    for active, hover, drop in drags:
        board.begin_drag(by_title[active])
        if hover is not None:
            board.drag_over(by_title[active], hover)
        await board.end_drag(by_title[active], drop)

    assert board.error is None
    assert _layout(board) == await _reloaded(api)


@pytest.mark.asyncio
async def test_save_order_matches_server(board, api):
    board.begin_drag(board.columns[TODO][0].id)
    board.drag_over(board.columns[TODO][0].id, DONE)
    board.begin_drag(board.columns[IN_PROGRESS][1].id)
    board.drag_over(board.columns[IN_PROGRESS][1].id, TODO)

    assert await board.save_order() is True
    assert _layout(board) == await _reloaded(api)


@pytest.mark.asyncio
async def test_edit_and_delete_match_server(board, api):
    b = board.columns[TODO][1]

    await board.edit_task(b.id, TaskUpdate(title="b2", category=DONE))
    await board.delete_task(board.columns[TODO][0].id)

    assert _layout(board) == await _reloaded(api)
    assert _layout(board)[DONE] == [("b2", 0)]
    assert _layout(board)[TODO] == [("c", 0)]


@pytest.mark.asyncio
async def test_rejected_create_changes_nothing(board, api):
    before = _layout(board)

    with pytest.raises(ApiValidationError) as exc_info:
        await board.add_task(TaskCreate.model_construct(title="x" * 51, category=TODO))

    assert exc_info.value.field == "title"
    assert _layout(board) == before == await _reloaded(api)


@pytest.mark.asyncio
async def test_server_reorder_abort_maps_to_reorder_aborted(board, api):
    """The server's abort response reaches the caller as ReorderAbortedError."""
    before = await _reloaded(api)
    items = [
        ReorderItem(id=t.id, category=DONE, position=i)
        for i, t in enumerate(board.columns[TODO])
    ]
    items.append(ReorderItem(id=str(uuid.uuid4()), category=DONE, position=len(items)))

    with pytest.raises(ReorderAbortedError):
        await api.reorder_tasks(items)

    assert await _reloaded(api) == before
