# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..api.client import ApiClient
from ..tasks.sync_controller import SyncController
from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore
from ..teams.membership import TeamManager
from .session import Session


@dataclass(slots=True)
class AppState:
    """
    Application state passed across modules (console connector, commands).

    Everything here is per-process and in memory; only the session is persisted.
    """

    settings: Any
    session: Session
    api: ApiClient
    store: TaskStore
    controller: SyncController
    teams: TeamManager

    # Last result of /all.
    all_tasks: list[Task] = field(default_factory=list)
