# src/taskdeck/tasks/sync_controller.py

"""
Sync controller: optimistic task-state synchronization.

submit(intent) runs the synchronous part of an intent (store mutation) on the caller's
turn of the event loop and schedules the network part as an asyncio task:

- CreateTask: nothing local; the task is inserted only once the server returns it
  (with its server-assigned id), appended at the end of its status column.
- UpdateTask: snapshot, apply locally, PUT the changed fields. On failure the snapshot
  is restored (point-in-time rollback).
- DeleteTask: remove locally, then DELETE. A failed DELETE is logged and NOT rolled back.
- MoveTask: splice column sequences locally. Across columns the status is updated
  optimistically and PUT as {status}; failure restores status and column position.
- LoadBoard: full fetch, replaces store content and local ordering.

Known race (kept on purpose): requests are neither cancelled nor sequenced. If two
updates of the same task are in flight and the first one fails, its rollback restores
the record as it was before the first update, losing the second local edit even when
the second request succeeds.

No retries anywhere: a failure is logged, reported in SyncResult and that's it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from ..api.errors import TaskdeckError, ValidationError, friendly_api_error_message
from ..core.ports import TaskApi
from ..core.session import Session
from .intents import (
    BoardMode,
    BoardScope,
    CreateTask,
    DeleteTask,
    Intent,
    LoadBoard,
    MoveTask,
    SyncResult,
    UpdateTask,
)
from .task_models import EDITABLE_FIELDS, Task, TaskStatus, User, parse_timestamp
from .task_store import TaskStore

logger = logging.getLogger(__name__)

ResultListener = Callable[[SyncResult], None]


def _log_failure(what: str, err: BaseException) -> None:
    if isinstance(err, TaskdeckError):
        logger.warning("%s failed: %s", what, err)
    else:
        logger.exception("%s failed unexpectedly", what, exc_info=err)


def normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce a partial task edit (python field names)."""
    if not changes:
        raise ValidationError("Nothing to update.")
    out: dict[str, Any] = {}
    for name, value in changes.items():
        if name not in EDITABLE_FIELDS:
            raise ValidationError(f"Unknown or read-only field: {name}")
        if name == "status":
            try:
                value = value if isinstance(value, TaskStatus) else TaskStatus.parse(str(value))
            except ValueError:
                raise ValidationError(f"Invalid status: {value!r}") from None
        elif name == "title":
            value = str(value or "").strip()
            if not value:
                raise ValidationError("Title cannot be empty.")
        elif name == "due_date":
            if value in (None, ""):
                value = None
            else:
                parsed = parse_timestamp(value)
                if parsed is None:
                    raise ValidationError(f"Invalid due date: {value!r}")
                value = parsed
        else:
            value = "" if value is None else str(value)
        out[name] = value
    return out


class SyncController:
    def __init__(
        self,
        store: TaskStore,
        api: TaskApi,
        session: Session,
        *,
        scope: BoardScope | None = None,
    ) -> None:
        self.store = store
        self.api = api
        self.session = session
        self.scope = scope or BoardScope.personal()
        self._inflight: set[asyncio.Task[SyncResult]] = set()
        self._listeners: list[ResultListener] = []

    # ---- plumbing ----

    def on_result(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def _spawn(self, coro: Awaitable[SyncResult]) -> asyncio.Task[SyncResult]:
        task = asyncio.ensure_future(coro)
        self._inflight.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task[SyncResult]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Sync task crashed", exc_info=exc)
            return
        result = task.result()
        for listener in list(self._listeners):
            try:
                listener(result)
            except Exception:
                logger.exception("Sync result listener failed")

    @property
    def pending(self) -> int:
        return len(self._inflight)

    async def drain(self) -> None:
        """Wait for every in-flight network call to settle."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ---- entry points ----

    def submit(self, intent: Intent) -> asyncio.Task[SyncResult] | None:
        """
        Apply the local part of `intent` now and schedule its network part.

        Raises ValidationError synchronously (no request, no local change) on bad input.
        Returns None when the intent needs no request (same-column move).
        """
        if isinstance(intent, LoadBoard):
            self.scope = intent.scope
            return self._spawn(self._load(intent))
        if isinstance(intent, CreateTask):
            user = self.session.user
            if user is None:
                raise ValidationError("Sign in first.")
            fields = self._create_fields(intent, user)
            # Target board is fixed here, not when the request goes out.
            return self._spawn(self._create(intent, fields, self.scope, user.id))
        if isinstance(intent, UpdateTask):
            return self._apply_update(intent)
        if isinstance(intent, DeleteTask):
            return self._apply_delete(intent)
        if isinstance(intent, MoveTask):
            return self._apply_move(intent)
        raise TypeError(f"Unsupported intent: {intent!r}")

    async def handle(self, intent: Intent) -> SyncResult:
        task = self.submit(intent)
        if task is None:
            return SyncResult(intent=intent, ok=True, task=self._current(intent))
        return await task

    def _current(self, intent: Intent) -> Task | None:
        task_id = getattr(intent, "task_id", None)
        return self.store.get(task_id) if task_id is not None else None

    def _require(self, task_id: int) -> Task:
        task = self.store.get(task_id)
        if task is None:
            raise ValidationError(f"No task #{task_id} on this board.")
        return task

    # ---- load ----

    async def _load(self, intent: LoadBoard) -> SyncResult:
        scope = intent.scope
        try:
            if scope.mode == BoardMode.TEAM:
                tasks = await self.api.get_team_tasks(int(scope.team_id or 0))
            else:
                tasks = await self.api.get_personal_tasks()
        except Exception as e:
            _log_failure(f"load {scope.mode.value} board", e)
            return SyncResult(intent=intent, ok=False, message=friendly_api_error_message(e), error=e)

        if scope != self.scope:
            # The user switched boards while this fetch was in flight.
            logger.info("Discarding stale board load for %s", scope)
            return SyncResult(intent=intent, ok=False, message="Board changed while loading.")

        self.store.replace_all(tasks)
        logger.info("Loaded %d tasks (%s)", len(tasks), scope.title)
        return SyncResult(intent=intent, ok=True)

    # ---- create ----

    def _create_fields(self, intent: CreateTask, user: User) -> dict[str, Any]:
        title = (intent.title or "").strip()
        if not title:
            raise ValidationError("Title cannot be empty.")
        status = normalize_changes({"status": intent.status})["status"]
        fields: dict[str, Any] = {
            "title": title,
            "description": intent.description or "",
            "status": status,
            "assignee": intent.assignee if intent.assignee is not None else user.username,
        }
        fields.update(normalize_changes(intent.extra) if intent.extra else {})
        return fields

    async def _create(
        self,
        intent: CreateTask,
        fields: dict[str, Any],
        scope: BoardScope,
        user_id: int,
    ) -> SyncResult:
        try:
            if scope.mode == BoardMode.TEAM:
                created = await self.api.create_team_task(int(scope.team_id or 0), fields)
            else:
                created = await self.api.create_task(user_id, fields)
        except Exception as e:
            _log_failure("create task", e)
            return SyncResult(intent=intent, ok=False, message=friendly_api_error_message(e), error=e)

        if scope != self.scope:
            logger.info("Created task %s belongs to a board no longer shown", created.id)
            return SyncResult(intent=intent, ok=True, task=created)

        if created.id in self.store:
            self.store.put(created)
        else:
            self.store.insert(created)
        logger.info("Created task %s in %s", created.id, created.status.value)
        return SyncResult(intent=intent, ok=True, task=created)

    # ---- update ----

    def _apply_update(self, intent: UpdateTask) -> asyncio.Task[SyncResult]:
        snapshot = self._require(intent.task_id)
        changes = normalize_changes(intent.changes)
        position = self.store.column_position(snapshot.id)

        self.store.put(replace(snapshot, **changes))
        logger.debug("Optimistic update task=%s fields=%s", snapshot.id, sorted(changes))
        return self._spawn(self._send_update(intent, changes, snapshot, position))

    async def _send_update(
        self,
        intent: UpdateTask | MoveTask,
        changes: dict[str, Any],
        snapshot: Task,
        position: tuple[TaskStatus, int] | None,
    ) -> SyncResult:
        try:
            await self.api.update_task(snapshot.id, changes)
        except Exception as e:
            _log_failure(f"update task {snapshot.id}", e)
            rolled_back = self.store.restore(snapshot, position)
            return SyncResult(
                intent=intent,
                ok=False,
                task=self.store.get(snapshot.id),
                rolled_back=rolled_back,
                message=friendly_api_error_message(e),
                error=e,
            )
        return SyncResult(intent=intent, ok=True, task=self.store.get(snapshot.id))

    # ---- delete ----

    def _apply_delete(self, intent: DeleteTask) -> asyncio.Task[SyncResult]:
        self._require(intent.task_id)
        self.store.remove(intent.task_id)
        return self._spawn(self._send_delete(intent))

    async def _send_delete(self, intent: DeleteTask) -> SyncResult:
        try:
            await self.api.delete_task(intent.task_id)
        except Exception as e:
            # Deletes are fire-and-forget once confirmed: the row stays gone.
            _log_failure(f"delete task {intent.task_id}", e)
            return SyncResult(intent=intent, ok=False, message=friendly_api_error_message(e), error=e)
        return SyncResult(intent=intent, ok=True)

    # ---- move ----

    def _apply_move(self, intent: MoveTask) -> asyncio.Task[SyncResult] | None:
        snapshot = self._require(intent.task_id)
        if snapshot.status != intent.source:
            raise ValidationError(f"Task #{intent.task_id} is not in column {intent.source.value}.")
        position = self.store.column_position(snapshot.id)

        moved = self.store.move(intent.task_id, intent.source, intent.source_index, intent.dest, intent.dest_index)
        if not intent.crosses_columns:
            return None

        logger.debug("Optimistic move task=%s %s -> %s", moved.id, intent.source.value, intent.dest.value)
        return self._spawn(self._send_update(intent, {"status": moved.status}, snapshot, position))
