# tests/test_task_store.py

from __future__ import annotations

import pytest

from taskdeck.tasks.task_models import TaskStatus
from taskdeck.tasks.task_store import IdSequence, PartitionError, TaskStore

from .fakes import make_task

TODO = TaskStatus.TODO
DOING = TaskStatus.IN_PROGRESS
DONE = TaskStatus.DONE


def test_id_sequence_insert_is_clamped() -> None:
    seq = IdSequence([1, 2])
    assert seq.insert_at(99, 3) == 2
    assert seq.insert_at(-5, 0) == 0
    assert seq == [0, 1, 2, 3]
    assert seq.remove(7) is False
    assert seq.remove_at(1) == 1
    assert seq.to_list() == [0, 2, 3]


def test_full_load_partitions_and_sorts_by_id() -> None:
    store = TaskStore([make_task(9, "done"), make_task(4), make_task(2), make_task(5, "in-progress")])

    assert store.column_ids() == {TODO: [2, 4], DOING: [5], DONE: [9]}
    assert [c.title for c in store.columns()] == ["To do", "In progress", "Done"]
    store.check_partition()


def test_insert_appends_and_rejects_duplicates() -> None:
    store = TaskStore([make_task(5)])
    store.insert(make_task(3))

    assert store.column_ids()[TODO] == [5, 3]
    with pytest.raises(KeyError):
        store.insert(make_task(3))


def test_put_with_new_status_moves_to_end_of_column() -> None:
    store = TaskStore([make_task(1), make_task(2, "done"), make_task(3, "done")])

    old = store.put(make_task(1, "done", title="moved"))

    assert old.status == TODO
    assert store.column_ids() == {TODO: [], DOING: [], DONE: [2, 3, 1]}
    store.check_partition()


def test_move_removes_by_identity_when_index_is_stale() -> None:
    store = TaskStore([make_task(1), make_task(2), make_task(3)])

    moved = store.move(3, TODO, 0, DOING, 5)

    assert moved.status == DOING
    assert store.column_ids()[TODO] == [1, 2]
    assert store.column_ids()[DOING] == [3]
    store.check_partition()


def test_move_from_wrong_source_raises() -> None:
    store = TaskStore([make_task(1)])
    with pytest.raises(ValueError):
        store.move(1, DONE, 0, TODO, 0)


def test_restore_puts_back_position_but_not_removed_tasks() -> None:
    store = TaskStore([make_task(1), make_task(2), make_task(3)])
    snapshot = store.get(2)
    position = store.column_position(2)
    store.put(make_task(2, "done"))

    assert store.restore(snapshot, position) is True
    assert store.column_ids()[TODO] == [1, 2, 3]

    store.remove(2)
    assert store.restore(snapshot, position) is False
    assert 2 not in store
    store.check_partition()


def test_listeners_get_mutation_reasons() -> None:
    store = TaskStore()
    reasons: list[str] = []
    store.subscribe(reasons.append)

    store.replace_all([make_task(1)])
    store.insert(make_task(2))
    store.move(2, TODO, 1, TODO, 0)
    store.remove(1)
    store.unsubscribe(reasons.append)
    store.remove(2)

    assert reasons == ["load", "insert", "move", "delete"]


def test_check_partition_detects_corruption() -> None:
    store = TaskStore([make_task(1)])
    store.column(DONE).task_ids.append(1)
    with pytest.raises(PartitionError):
        store.check_partition()
