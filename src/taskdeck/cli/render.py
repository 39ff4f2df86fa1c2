# src/taskdeck/cli/render.py

"""Plain-text rendering of the board, task details, teams and members."""

from __future__ import annotations

from datetime import datetime

from ..tasks.intents import BoardScope
from ..tasks.task_filters import due_label, urgency
from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore
from ..teams.team_models import Team, TeamMember

_URGENCY_MARK = {"overdue": "!!", "due-24h": "! ", "due-72h": ". "}


def render_task_line(task: Task, now: datetime) -> str:
    mark = _URGENCY_MARK.get(urgency(task, now) or "", "  ")
    due = due_label(task, now)
    parts = [f"{mark}#{task.id} {task.title}"]
    if task.assignee:
        parts.append(f"@{task.assignee}")
    if due:
        parts.append(f"({due})")
    return " ".join(parts)


def render_board(store: TaskStore, scope: BoardScope, *, now: datetime | None = None) -> str:
    now = now or datetime.now()
    lines = [f"== {scope.title} =="]
    for col in store.columns():
        lines.append(f"[{col.id.value}] {col.title} ({len(col.task_ids)})")
        if not len(col.task_ids):
            lines.append("    (no tasks)")
        for i, task_id in enumerate(col.task_ids):
            task = store.get(task_id)
            if task is None:
                continue
            lines.append(f"  {i}. {render_task_line(task, now)}")
    return "\n".join(lines)


def render_task(task: Task, *, now: datetime | None = None) -> str:
    now = now or datetime.now()
    lines = [
        f"#{task.id} {task.title}",
        f"  status:      {task.status.value}",
        f"  assignee:    {task.assignee or '-'}",
        f"  description: {task.description or '-'}",
    ]
    if task.due_date is not None:
        lines.append(f"  due:         {task.due_date.isoformat(sep=' ', timespec='minutes')} ({due_label(task, now)})")
    if task.team is not None:
        lines.append(f"  team:        {task.team.name or task.team.id}")
    return "\n".join(lines)


def render_teams(teams: list[Team], selected: Team | None) -> str:
    if not teams:
        return "You are not in any team yet. Create one with /team new <name>."
    lines = ["Your teams:"]
    for t in teams:
        mark = "*" if selected is not None and selected.id == t.id else " "
        desc = f" - {t.description}" if t.description else ""
        lines.append(f" {mark} #{t.id} {t.name}{desc}")
    return "\n".join(lines)


def render_members(team: Team, members: list[TeamMember]) -> str:
    lines = [f"Members of {team.name}:"]
    for m in members:
        lines.append(f"  #{m.id} {m.user.username} [{m.role.value}]")
    if not members:
        lines.append("  (none)")
    return "\n".join(lines)


def render_overdue_banner(overdue: list[Task], *, limit: int = 3) -> str:
    """Warning block listing the first few overdue titles; empty when nothing is overdue."""
    if not overdue:
        return ""
    lines = [f"!! You have {len(overdue)} overdue task(s):"]
    for t in overdue[:limit]:
        lines.append(f"   - {t.title}")
    if len(overdue) > limit:
        lines.append(f"   ... and {len(overdue) - limit} more")
    return "\n".join(lines)
