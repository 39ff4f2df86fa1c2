# src/taskdeck/tasks/task_filters.py

"""Filters and due-date helpers for the "all my tasks" view."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, time, timedelta
from enum import StrEnum

from .task_models import Task, TaskStatus


class TaskFilter(StrEnum):
    ALL = "all"
    PERSONAL = "personal"
    TEAM = "team"
    OVERDUE = "overdue"
    TODAY = "today"


def _now_like(due: datetime, now: datetime) -> datetime:
    """Compare naive with naive and aware with aware (server timestamps are usually naive local time)."""
    if due.tzinfo is None and now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    if due.tzinfo is not None and now.tzinfo is None:
        return now.astimezone()
    return now


def is_overdue(task: Task, now: datetime) -> bool:
    if task.due_date is None or task.status == TaskStatus.DONE:
        return False
    return task.due_date < _now_like(task.due_date, now)


def is_due_today(task: Task, now: datetime) -> bool:
    if task.due_date is None or task.status == TaskStatus.DONE:
        return False
    ref = _now_like(task.due_date, now)
    start = datetime.combine(ref.date(), time.min, tzinfo=ref.tzinfo)
    end = start + timedelta(days=1)
    return start <= task.due_date < end


def filter_tasks(tasks: Iterable[Task], which: TaskFilter | str, *, now: datetime | None = None) -> list[Task]:
    which = TaskFilter(which)
    now = now or datetime.now()
    out: list[Task] = []
    for t in tasks:
        if which == TaskFilter.PERSONAL and t.team is not None:
            continue
        if which == TaskFilter.TEAM and t.team is None:
            continue
        if which == TaskFilter.OVERDUE and not is_overdue(t, now):
            continue
        if which == TaskFilter.TODAY and not is_due_today(t, now):
            continue
        out.append(t)
    return out


def count_by_filter(tasks: Iterable[Task], *, now: datetime | None = None) -> dict[TaskFilter, int]:
    items = list(tasks)
    return {f: len(filter_tasks(items, f, now=now)) for f in TaskFilter}


def urgency(task: Task, now: datetime) -> str | None:
    """"overdue", "due-24h", "due-72h" or None."""
    if task.due_date is None:
        return None
    hours = (task.due_date - _now_like(task.due_date, now)).total_seconds() / 3600.0
    if hours < 0 and task.status != TaskStatus.DONE:
        return "overdue"
    # A finished task past its due date still counts as due soon.
    if hours < 24:
        return "due-24h"
    if hours < 72:
        return "due-72h"
    return None


def due_label(task: Task, now: datetime) -> str:
    if task.due_date is None:
        return ""
    delta = task.due_date - _now_like(task.due_date, now)
    hours = delta.total_seconds() / 3600.0
    days = hours / 24.0
    if hours < 0:
        return f"overdue by {abs(math.floor(days))} day(s)"
    if hours < 24:
        return f"due in {math.floor(hours)} hour(s)"
    if days < 7:
        return f"due in {math.floor(days)} day(s)"
    return task.due_date.date().isoformat()
