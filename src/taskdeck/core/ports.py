# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The sync controller and the team manager depend on Protocols instead of ApiClient.
This keeps them UI- and transport-agnostic and makes testing easier.
"""

from typing import Any, Protocol

from ..tasks.task_models import Task
from ..teams.team_models import Team, TeamMember


class TaskApi(Protocol):
    """Remote task endpoints the sync controller needs."""

    async def get_personal_tasks(self) -> list[Task]: ...
    async def get_team_tasks(self, team_id: int) -> list[Task]: ...
    async def get_all_tasks(self) -> list[Task]: ...

    async def create_task(self, user_id: int, fields: dict[str, Any], *, team_id: int | None = None) -> Task: ...
    async def create_team_task(self, team_id: int, fields: dict[str, Any]) -> Task: ...
    async def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None: ...
    async def delete_task(self, task_id: int) -> None: ...


class TeamApi(Protocol):
    """Remote team endpoints the team manager needs."""

    async def get_teams(self) -> list[Team]: ...
    async def create_team(self, name: str, description: str | None = None) -> Team: ...
    async def delete_team(self, team_id: int) -> None: ...
    async def get_team_members(self, team_id: int) -> list[TeamMember]: ...
    async def invite_member(self, team_id: int, username: str) -> TeamMember: ...
    async def remove_member(self, team_id: int, member_id: int) -> None: ...


class StoreListener(Protocol):
    def __call__(self, reason: str) -> None: ...
