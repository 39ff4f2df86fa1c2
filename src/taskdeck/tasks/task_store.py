# src/taskdeck/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from ..core.ports import StoreListener
from .task_models import COLUMN_TITLES, Task, TaskStatus

logger = logging.getLogger(__name__)


class IdSequence:
    """Ordered task ids of one column, with list-splice style editing."""

    __slots__ = ("_ids",)

    def __init__(self, ids: Iterable[int] = ()) -> None:
        self._ids: list[int] = list(ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._ids

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IdSequence):
            return self._ids == other._ids
        if isinstance(other, list):
            return self._ids == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"IdSequence({self._ids!r})"

    def to_list(self) -> list[int]:
        return list(self._ids)

    def index(self, task_id: int) -> int:
        return self._ids.index(task_id)

    def remove_at(self, index: int) -> int:
        return self._ids.pop(index)

    def insert_at(self, index: int, task_id: int) -> int:
        """Insert with the index clamped to [0, len]. Returns the index actually used."""
        index = max(0, min(int(index), len(self._ids)))
        self._ids.insert(index, task_id)
        return index

    def append(self, task_id: int) -> None:
        self._ids.append(task_id)

    def remove(self, task_id: int) -> bool:
        try:
            self._ids.remove(task_id)
        except ValueError:
            return False
        return True


@dataclass(slots=True)
class Column:
    id: TaskStatus
    title: str
    task_ids: IdSequence


class PartitionError(AssertionError):
    pass


class TaskStore:
    """
    In-memory client view of the tasks on the current board.

    - tasks: id -> Task (records are immutable, edits replace them)
    - columns: one IdSequence per status; every task id is in exactly the column
      matching its status

    A full load orders each column by id; moves and inserts keep their local order
    until the next full load. Listeners are notified after every mutation.
    """

    def __init__(self, tasks: Iterable[Task] = ()) -> None:
        self._tasks: dict[int, Task] = {}
        self._columns: dict[TaskStatus, Column] = {}
        self._listeners: list[StoreListener] = []
        self._reset(tasks)

    # ---- read side ----

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def get(self, task_id: int) -> Task | None:
        return self._tasks.get(task_id)

    def tasks(self) -> dict[int, Task]:
        return dict(self._tasks)

    def column(self, status: TaskStatus) -> Column:
        return self._columns[TaskStatus(status)]

    def columns(self) -> list[Column]:
        return [self._columns[s] for s in TaskStatus]

    def column_ids(self) -> dict[TaskStatus, list[int]]:
        return {s: self._columns[s].task_ids.to_list() for s in TaskStatus}

    def column_position(self, task_id: int) -> tuple[TaskStatus, int] | None:
        for status, col in self._columns.items():
            if task_id in col.task_ids:
                return status, col.task_ids.index(task_id)
        return None

    def check_partition(self) -> None:
        """Raise PartitionError unless columns partition the task set by status."""
        seen: set[int] = set()
        for status, col in self._columns.items():
            for task_id in col.task_ids:
                if task_id in seen:
                    raise PartitionError(f"task {task_id} appears in more than one column")
                seen.add(task_id)
                task = self._tasks.get(task_id)
                if task is None:
                    raise PartitionError(f"column {status} references unknown task {task_id}")
                if task.status != status:
                    raise PartitionError(f"task {task_id} has status {task.status} but sits in {status}")
        missing = set(self._tasks) - seen
        if missing:
            raise PartitionError(f"tasks not in any column: {sorted(missing)}")

    # ---- listeners ----

    def subscribe(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, reason: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(reason)
            except Exception:
                logger.exception("Store listener failed (reason=%s)", reason)

    # ---- write side ----

    def _reset(self, tasks: Iterable[Task]) -> None:
        self._tasks = {}
        for t in tasks:
            if t.id in self._tasks:
                logger.warning("Duplicate task id %s in load; keeping the last one", t.id)
            self._tasks[t.id] = t
        buckets: dict[TaskStatus, list[int]] = {s: [] for s in TaskStatus}
        for t in self._tasks.values():
            buckets[t.status].append(t.id)
        self._columns = {
            s: Column(id=s, title=COLUMN_TITLES[s], task_ids=IdSequence(sorted(buckets[s])))
            for s in TaskStatus
        }

    def replace_all(self, tasks: Iterable[Task]) -> None:
        """Full load: discards local ordering."""
        self._reset(tasks)
        self._notify("load")

    def insert(self, task: Task) -> None:
        if task.id in self._tasks:
            raise KeyError(f"task {task.id} already exists")
        self._tasks[task.id] = task
        self._columns[task.status].task_ids.append(task.id)
        self._notify("insert")

    def put(self, task: Task) -> Task:
        """Overwrite an existing record; a status change moves the id to the end of its new column."""
        old = self._tasks.get(task.id)
        if old is None:
            raise KeyError(f"unknown task {task.id}")
        self._tasks[task.id] = task
        if old.status != task.status:
            self._columns[old.status].task_ids.remove(task.id)
            self._columns[task.status].task_ids.append(task.id)
        self._notify("update")
        return old

    def remove(self, task_id: int) -> Task | None:
        task = self._tasks.pop(task_id, None)
        for col in self._columns.values():
            col.task_ids.remove(task_id)
        if task is not None:
            self._notify("delete")
        return task

    def move(
        self,
        task_id: int,
        source: TaskStatus,
        source_index: int,
        dest: TaskStatus,
        dest_index: int,
    ) -> Task:
        """
        Splice a task id from one column position to another.

        The id is located by identity in the source column; source_index is only a hint.
        Across columns the task's status becomes the destination column id.
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise KeyError(f"unknown task {task_id}")
        source = TaskStatus(source)
        dest = TaskStatus(dest)
        if task.status != source:
            raise ValueError(f"task {task_id} is in {task.status}, not {source}")

        src_ids = self._columns[source].task_ids
        if 0 <= source_index < len(src_ids) and src_ids.index(task_id) == source_index:
            src_ids.remove_at(source_index)
        else:
            src_ids.remove(task_id)
        self._columns[dest].task_ids.insert_at(dest_index, task_id)

        if source != dest:
            task = replace(task, status=dest)
            self._tasks[task_id] = task
        self._notify("move")
        return task

    def restore(self, snapshot: Task, position: tuple[TaskStatus, int] | None = None) -> bool:
        """
        Put back a pre-mutation record (and its column position when given).

        A task removed in the meantime stays removed. Returns True if restored.
        """
        if snapshot.id not in self._tasks:
            logger.info("Not restoring task %s: it was removed meanwhile", snapshot.id)
            return False
        self._tasks[snapshot.id] = snapshot
        for col in self._columns.values():
            col.task_ids.remove(snapshot.id)
        if position is not None and position[0] == snapshot.status:
            self._columns[snapshot.status].task_ids.insert_at(position[1], snapshot.id)
        else:
            self._columns[snapshot.status].task_ids.append(snapshot.id)
        self._notify("rollback")
        return True
