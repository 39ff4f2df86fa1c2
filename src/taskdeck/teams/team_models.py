# src/taskdeck/teams/team_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..tasks.task_models import UserRef, parse_timestamp


class TeamRole(StrEnum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"

    @classmethod
    def from_raw(cls, raw: Any) -> TeamRole:
        try:
            return cls(str(raw or "").strip().upper())
        except ValueError:
            return cls.MEMBER


@dataclass(frozen=True, slots=True)
class Team:
    id: int
    name: str
    description: str | None = None
    created_by: UserRef | None = None
    created_at: datetime | None = None

    @classmethod
    def from_wire(cls, data: Any) -> Team:
        if not isinstance(data, dict) or data.get("id") is None:
            raise ValueError("Team payload has no id")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            created_by=UserRef.from_wire(data.get("createdBy")),
            created_at=parse_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class TeamMember:
    id: int
    team_id: int | None
    user: UserRef
    role: TeamRole
    joined_at: datetime | None = None

    @classmethod
    def from_wire(cls, data: Any) -> TeamMember:
        if not isinstance(data, dict) or data.get("id") is None:
            raise ValueError("Team member payload has no id")
        team = data.get("team")
        team_id = team.get("id") if isinstance(team, dict) else None
        user = UserRef.from_wire(data.get("user")) or UserRef(id=None, username="")
        return cls(
            id=int(data["id"]),
            team_id=int(team_id) if team_id is not None else None,
            user=user,
            role=TeamRole.from_raw(data.get("role")),
            joined_at=parse_timestamp(data.get("joinedAt")),
        )
