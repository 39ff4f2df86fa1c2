# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task status; also the id of the board column the task lives in.

    The backend defaults a missing status to "todo", so unknown raw values map there too.
    """

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.TODO

    @classmethod
    def parse(cls, raw: str) -> TaskStatus:
        """Strict variant for user input: accepts "in-progress", "in_progress", "doing"."""
        s = (raw or "").strip().lower().replace("_", "-")
        if s == "doing":
            s = cls.IN_PROGRESS.value
        return cls(s)


COLUMN_TITLES: dict[TaskStatus, str] = {
    TaskStatus.TODO: "To do",
    TaskStatus.IN_PROGRESS: "In progress",
    TaskStatus.DONE: "Done",
}


def parse_timestamp(raw: Any) -> datetime | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw
    s = str(raw).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _opt_int(raw: Any) -> int | None:
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class UserRef:
    id: int | None
    username: str
    email: str | None = None

    @classmethod
    def from_wire(cls, data: Any) -> UserRef | None:
        if not isinstance(data, dict):
            return None
        return cls(
            id=_opt_int(data.get("id")),
            username=str(data.get("username") or ""),
            email=data.get("email"),
        )

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass(frozen=True, slots=True)
class TeamRef:
    id: int
    name: str

    @classmethod
    def from_wire(cls, data: Any) -> TeamRef | None:
        if not isinstance(data, dict):
            return None
        team_id = _opt_int(data.get("id"))
        if team_id is None:
            return None
        return cls(id=team_id, name=str(data.get("name") or ""))


@dataclass(frozen=True, slots=True)
class Task:
    """
    Client mirror of a server task.

    Immutable: an edit produces a new record, so a reference to the old one is a
    complete point-in-time snapshot.
    """

    id: int
    title: str
    description: str
    status: TaskStatus
    assignee: str = ""
    due_date: datetime | None = None
    owner: UserRef | None = None
    team: TeamRef | None = None
    assigned_to: UserRef | None = None

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Task:
        if not isinstance(data, dict):
            raise ValueError(f"Expected task object, got {type(data).__name__}")
        task_id = _opt_int(data.get("id"))
        if task_id is None:
            raise ValueError("Task payload has no id")
        return cls(
            id=task_id,
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            status=TaskStatus.from_raw(data.get("status")),
            assignee=str(data.get("assignee") or ""),
            due_date=parse_timestamp(data.get("dueDate")),
            owner=UserRef.from_wire(data.get("user")),
            team=TeamRef.from_wire(data.get("team")),
            assigned_to=UserRef.from_wire(data.get("assignedTo")),
        )


# Fields a client may send on create/update, python name -> wire name.
EDITABLE_FIELDS: dict[str, str] = {
    "title": "title",
    "description": "description",
    "status": "status",
    "assignee": "assignee",
    "due_date": "dueDate",
}


def changes_to_wire(changes: dict[str, Any]) -> dict[str, Any]:
    """Encode a partial task (python field names) as a JSON body."""
    body: dict[str, Any] = {}
    for name, value in changes.items():
        wire = EDITABLE_FIELDS.get(name)
        if wire is None:
            raise KeyError(f"Field is not editable: {name}")
        if isinstance(value, TaskStatus):
            value = value.value
        elif isinstance(value, datetime):
            value = format_timestamp(value)
        body[wire] = value
    return body


@dataclass(frozen=True, slots=True)
class User:
    id: int
    username: str
    email: str | None = None

    @classmethod
    def from_wire(cls, data: Any) -> User:
        if not isinstance(data, dict) or data.get("id") is None:
            raise ValueError("User payload has no id")
        return cls(id=int(data["id"]), username=str(data.get("username") or ""), email=data.get("email"))

    def to_wire(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "email": self.email}
