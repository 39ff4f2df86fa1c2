# tests/test_sync_controller.py

from __future__ import annotations

import asyncio
from collections import Counter

import pytest

from taskdeck.api.errors import ApiError, TransportError, ValidationError
from taskdeck.tasks.intents import BoardScope, CreateTask, DeleteTask, LoadBoard, MoveTask, UpdateTask
from taskdeck.tasks.sync_controller import SyncController
from taskdeck.tasks.task_models import TaskStatus
from taskdeck.tasks.task_store import TaskStore

from .fakes import FakeBackend, make_task

TODO = TaskStatus.TODO
DOING = TaskStatus.IN_PROGRESS
DONE = TaskStatus.DONE


def seed(store: TaskStore, backend: FakeBackend, *tasks) -> None:
    for t in tasks:
        backend.tasks[t.id] = t
    store.replace_all(tasks)


# ---- load ----

@pytest.mark.asyncio
async def test_load_orders_columns_by_id(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    backend.tasks = {t.id: t for t in [make_task(3), make_task(1), make_task(7, "done"), make_task(2)]}

    result = await controller.handle(LoadBoard(BoardScope.personal()))

    assert result.ok
    assert store.column_ids() == {TODO: [1, 2, 3], DOING: [], DONE: [7]}
    store.check_partition()


@pytest.mark.asyncio
async def test_load_team_board_uses_team_endpoint(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    backend.team_tasks[5] = [make_task(11, "in-progress")]

    result = await controller.handle(LoadBoard(BoardScope.team(5, "core")))

    assert result.ok
    assert backend.called("get_team_tasks") == [(5,)]
    assert store.column_ids()[DOING] == [11]


@pytest.mark.asyncio
async def test_load_failure_keeps_current_board(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1))
    backend.fail["get_personal_tasks"] = TransportError("down")

    result = await controller.handle(LoadBoard(BoardScope.personal()))

    assert not result.ok
    assert "Network" in result.message
    assert 1 in store


# ---- create ----

@pytest.mark.asyncio
async def test_create_inserts_server_assigned_id(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1), make_task(2))
    backend.next_id = 41

    task = controller.submit(CreateTask(status=TODO, title="Write report"))
    # Nothing shown before the server answers.
    assert len(store) == 2

    result = await task

    assert result.ok and result.task is not None
    assert result.task.id == 42
    assert store.get(42) == result.task
    assert store.column_ids()[TODO] == [1, 2, 42]
    (user_id, fields), = backend.called("create_task")
    assert user_id == 1
    assert "id" not in fields
    assert fields["assignee"] == "alice"
    store.check_partition()


@pytest.mark.asyncio
async def test_create_on_team_board_posts_to_team(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    await controller.handle(LoadBoard(BoardScope.team(9, "ops")))

    result = await controller.handle(CreateTask(status=DONE, title="Ship it"))

    assert result.ok
    assert backend.called("create_task") == []
    assert backend.called("create_team_task")[0][0] == 9
    assert store.column_ids()[DONE] == [result.task.id]


@pytest.mark.asyncio
async def test_create_failure_changes_nothing(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1))
    backend.fail["create_task"] = ApiError(500, {"error": "db down"})

    result = await controller.handle(CreateTask(status=TODO, title="x"))

    assert not result.ok
    assert result.message == "Server error: db down"
    assert list(store.tasks()) == [1]


def test_create_rejects_blank_title(controller: SyncController, backend: FakeBackend) -> None:
    with pytest.raises(ValidationError):
        controller.submit(CreateTask(status=TODO, title="   "))
    assert backend.calls == []


def test_create_rejects_unknown_status(controller: SyncController, backend: FakeBackend) -> None:
    with pytest.raises(ValidationError):
        controller.submit(CreateTask(status="blocked", title="x"))  # type: ignore[arg-type]
    assert backend.calls == []


@pytest.mark.asyncio
async def test_create_targets_board_shown_at_submit(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    pending = controller.submit(CreateTask(status=TODO, title="personal one"))
    controller.submit(LoadBoard(BoardScope.team(9, "ops")))

    result = await pending
    await controller.drain()

    assert result.ok
    assert backend.called("create_team_task") == []
    assert backend.called("create_task")[0][0] == 1
    # The team board is now shown, so the personal task is not inserted into it.
    assert result.task.id not in store


# ---- update ----

@pytest.mark.asyncio
async def test_update_is_applied_before_the_request_completes(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(5, title="old"))

    pending = controller.submit(UpdateTask(task_id=5, changes={"title": "X"}))
    assert store.get(5).title == "X"

    result = await pending

    assert result.ok
    assert store.get(5).title == "X"
    assert backend.called("update_task") == [(5, {"title": "X"})]


@pytest.mark.asyncio
async def test_update_rejected_with_500_reverts_to_snapshot(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(4), make_task(5, title="old", description="keep"))
    before = store.get(5)
    backend.fail["update_task"] = ApiError(500, {})

    result = await controller.handle(UpdateTask(task_id=5, changes={"title": "X"}))

    assert not result.ok
    assert result.rolled_back
    assert store.get(5) == before
    assert store.get(5) is before


@pytest.mark.asyncio
async def test_status_edit_moves_column_and_rollback_restores_position(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(1), make_task(2), make_task(3), make_task(9, "done"))
    backend.fail["update_task"] = TransportError("timeout")

    pending = controller.submit(UpdateTask(task_id=2, changes={"status": "done"}))
    assert store.column_ids() == {TODO: [1, 3], DOING: [], DONE: [9, 2]}
    store.check_partition()

    result = await pending

    assert result.rolled_back
    assert store.column_ids() == {TODO: [1, 2, 3], DOING: [], DONE: [9]}
    store.check_partition()


def test_update_unknown_task_is_rejected_without_request(controller: SyncController, backend: FakeBackend) -> None:
    with pytest.raises(ValidationError):
        controller.submit(UpdateTask(task_id=404, changes={"title": "x"}))
    assert backend.calls == []


def test_update_rejects_read_only_fields(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1))
    with pytest.raises(ValidationError):
        controller.submit(UpdateTask(task_id=1, changes={"id": 2}))
    with pytest.raises(ValidationError):
        controller.submit(UpdateTask(task_id=1, changes={"status": "blocked"}))
    assert store.get(1) == make_task(1)


@pytest.mark.asyncio
async def test_failed_update_rollback_loses_later_local_edit(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    """Two updates in flight; the first fails after the second succeeded. Rollback wins."""
    original = make_task(5, title="v0")
    seed(store, backend, original)
    backend.hold = True

    first = controller.submit(UpdateTask(task_id=5, changes={"title": "v1"}))
    second = controller.submit(UpdateTask(task_id=5, changes={"description": "edited"}))
    await asyncio.sleep(0)
    assert len(backend.held) == 2

    backend.held[1].release()
    assert (await second).ok
    assert store.get(5).description == "edited"

    backend.held[0].release(ApiError(500, {}))
    result = await first

    assert result.rolled_back
    assert store.get(5) == original


# ---- delete ----

@pytest.mark.asyncio
async def test_delete_is_not_rolled_back_on_failure(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(1), make_task(2, "done"))
    backend.fail["delete_task"] = ApiError(500, {"error": "nope"})

    pending = controller.submit(DeleteTask(task_id=2))
    assert 2 not in store

    result = await pending

    assert not result.ok
    assert 2 not in store
    assert store.column_ids()[DONE] == []
    store.check_partition()


@pytest.mark.asyncio
async def test_delete_success(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1))

    result = await controller.handle(DeleteTask(task_id=1))

    assert result.ok
    assert len(store) == 0
    assert 1 not in backend.tasks


@pytest.mark.asyncio
async def test_failed_update_does_not_resurrect_deleted_task(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(1))
    backend.hold = True

    update = controller.submit(UpdateTask(task_id=1, changes={"title": "x"}))
    delete = controller.submit(DeleteTask(task_id=1))
    await asyncio.sleep(0)

    backend.held[1].release()
    backend.held[0].release(ApiError(500, {}))
    result = await update
    await delete

    assert not result.rolled_back
    assert 1 not in store
    store.check_partition()


# ---- move ----

@pytest.mark.asyncio
async def test_drag_across_columns_scenario(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1), make_task(2), make_task(3, "done"))

    pending = controller.submit(MoveTask(task_id=2, source=TODO, source_index=0, dest=DONE, dest_index=0))

    assert store.column_ids()[TODO] == [1]
    assert store.column_ids()[DONE] == [2, 3]
    assert store.get(2).status == DONE
    assert pending is not None

    result = await pending

    assert result.ok
    assert backend.called("update_task") == [(2, {"status": DONE})]
    store.check_partition()


def test_drag_within_column_only_reorders(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1), make_task(2), make_task(3))
    before = Counter(store.column_ids()[TODO])

    pending = controller.submit(MoveTask(task_id=3, source=TODO, source_index=2, dest=TODO, dest_index=0))

    assert pending is None
    assert store.column_ids()[TODO] == [3, 1, 2]
    assert Counter(store.column_ids()[TODO]) == before
    assert store.get(3).status == TODO
    assert backend.calls == []


@pytest.mark.asyncio
async def test_failed_cross_column_drag_restores_status_and_position(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(1), make_task(2), make_task(3), make_task(4, "in-progress"))
    controller.submit(MoveTask(task_id=3, source=TODO, source_index=2, dest=TODO, dest_index=0))
    backend.fail["update_task"] = ApiError(403, {"error": "Access denied"})

    result = await controller.handle(MoveTask(task_id=3, source=TODO, source_index=0, dest=DOING, dest_index=0))

    assert not result.ok and result.rolled_back
    assert store.get(3).status == TODO
    # The local drag order from before the failed move survives.
    assert store.column_ids() == {TODO: [3, 1, 2], DOING: [4], DONE: []}


@pytest.mark.asyncio
async def test_full_load_overwrites_local_drag_order(
    controller: SyncController, backend: FakeBackend, store: TaskStore
) -> None:
    seed(store, backend, make_task(1), make_task(2))
    controller.submit(MoveTask(task_id=2, source=TODO, source_index=1, dest=TODO, dest_index=0))
    assert store.column_ids()[TODO] == [2, 1]

    await controller.handle(LoadBoard(BoardScope.personal()))

    assert store.column_ids()[TODO] == [1, 2]


def test_move_from_wrong_column_is_rejected(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1))
    with pytest.raises(ValidationError):
        controller.submit(MoveTask(task_id=1, source=DONE, source_index=0, dest=TODO, dest_index=0))
    assert store.column_ids()[TODO] == [1]


# ---- results ----

@pytest.mark.asyncio
async def test_result_listeners_and_drain(controller: SyncController, backend: FakeBackend, store: TaskStore) -> None:
    seed(store, backend, make_task(1), make_task(2))
    seen = []
    controller.on_result(seen.append)
    backend.fail["update_task"] = ApiError(500, {})

    controller.submit(UpdateTask(task_id=1, changes={"title": "a"}))
    controller.submit(DeleteTask(task_id=2))
    assert controller.pending == 2

    await controller.drain()

    assert controller.pending == 0
    assert sorted(r.ok for r in seen) == [False, True]
