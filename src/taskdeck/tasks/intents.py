# src/taskdeck/tasks/intents.py

"""
User intents consumed by the sync controller.

Front-ends (console, tests, any UI) build these instead of calling store/API code directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .task_models import Task, TaskStatus


class BoardMode(str, Enum):
    PERSONAL = "personal"
    TEAM = "team"


@dataclass(slots=True, frozen=True)
class BoardScope:
    mode: BoardMode = BoardMode.PERSONAL
    team_id: int | None = None
    team_name: str = ""

    def __post_init__(self) -> None:
        if self.mode == BoardMode.TEAM and self.team_id is None:
            raise ValueError("team board requires team_id")

    @classmethod
    def personal(cls) -> BoardScope:
        return cls()

    @classmethod
    def team(cls, team_id: int, team_name: str = "") -> BoardScope:
        return cls(mode=BoardMode.TEAM, team_id=int(team_id), team_name=team_name)

    @property
    def title(self) -> str:
        if self.mode == BoardMode.PERSONAL:
            return "Personal tasks"
        return f"Team tasks - {self.team_name or f'#{self.team_id}'}"


@dataclass(slots=True, frozen=True)
class LoadBoard:
    scope: BoardScope


@dataclass(slots=True, frozen=True)
class CreateTask:
    status: TaskStatus
    title: str
    description: str = ""
    assignee: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True, frozen=True)
class UpdateTask:
    task_id: int
    changes: dict[str, Any]


@dataclass(slots=True, frozen=True)
class DeleteTask:
    task_id: int


@dataclass(slots=True, frozen=True)
class MoveTask:
    task_id: int
    source: TaskStatus
    source_index: int
    dest: TaskStatus
    dest_index: int

    @property
    def crosses_columns(self) -> bool:
        return self.source != self.dest


Intent = LoadBoard | CreateTask | UpdateTask | DeleteTask | MoveTask


@dataclass(slots=True, frozen=True)
class SyncResult:
    """Outcome of one intent after the network part finished."""

    intent: Intent
    ok: bool
    task: Task | None = None
    rolled_back: bool = False
    message: str = ""
    error: BaseException | None = None
