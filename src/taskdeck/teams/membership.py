# src/taskdeck/teams/membership.py

"""
Team membership rules and the team page state.

The role checks here are a UX gate only: they stop obviously forbidden requests before
they are sent. The server is the authority and re-checks every one of them.
"""

from __future__ import annotations

import logging

from ..api.errors import PermissionDeniedError, ValidationError
from ..core.ports import TeamApi
from ..core.session import Session
from .team_models import Team, TeamMember, TeamRole

logger = logging.getLogger(__name__)


def can_delete_team(role: TeamRole | None) -> bool:
    return role == TeamRole.OWNER


def can_manage_members(role: TeamRole | None) -> bool:
    return role in (TeamRole.OWNER, TeamRole.ADMIN)


def can_remove_member(actor_role: TeamRole | None, target: TeamMember) -> bool:
    # Nobody removes the owner through remove-member, not even the owner.
    if target.role == TeamRole.OWNER:
        return False
    return can_manage_members(actor_role)


class TeamManager:
    """Teams of the signed-in user, the selected team and its members."""

    def __init__(self, api: TeamApi, session: Session) -> None:
        self.api = api
        self.session = session
        self.teams: list[Team] = []
        self.selected: Team | None = None
        self.members: list[TeamMember] = []

    # ---- queries ----

    def find_team(self, team_id: int) -> Team | None:
        return next((t for t in self.teams if t.id == team_id), None)

    def current_role(self) -> TeamRole | None:
        user = self.session.user
        if self.selected is None or user is None:
            return None
        for m in self.members:
            if m.user.id == user.id:
                return m.role
        return None

    def _require_selected(self) -> Team:
        if self.selected is None:
            raise ValidationError("Select a team first.")
        return self.selected

    # ---- remote operations ----

    async def refresh(self) -> list[Team]:
        self.teams = await self.api.get_teams()
        if self.selected is not None and self.find_team(self.selected.id) is None:
            self.selected = None
            self.members = []
        if self.selected is None and self.teams:
            await self.select(self.teams[0].id)
        return self.teams

    async def select(self, team_id: int) -> Team:
        team = self.find_team(team_id)
        if team is None:
            raise ValidationError(f"Unknown team #{team_id}. Use /teams to list your teams.")
        self.selected = team
        self.members = []
        self.members = await self.api.get_team_members(team.id)
        return team

    async def reload_members(self) -> list[TeamMember]:
        team = self._require_selected()
        self.members = await self.api.get_team_members(team.id)
        return self.members

    async def create_team(self, name: str, description: str | None = None) -> Team:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Team name cannot be empty.")
        team = await self.api.create_team(name, (description or "").strip() or None)
        self.teams.append(team)
        await self.select(team.id)
        logger.info("Created team %s (%s)", team.id, team.name)
        return team

    async def invite(self, username: str) -> TeamMember:
        team = self._require_selected()
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username cannot be empty.")
        if not can_manage_members(self.current_role()):
            raise PermissionDeniedError("Only the team owner or an admin can invite members.")
        member = await self.api.invite_member(team.id, username)
        self.members.append(member)
        logger.info("Invited %s to team %s", username, team.id)
        return member

    async def remove(self, member_id: int) -> TeamMember:
        team = self._require_selected()
        target = next((m for m in self.members if m.id == member_id), None)
        if target is None:
            raise ValidationError(f"No member #{member_id} in {team.name}.")
        if target.role == TeamRole.OWNER:
            raise PermissionDeniedError("The team owner cannot be removed.")
        if not can_remove_member(self.current_role(), target):
            raise PermissionDeniedError("Only the team owner or an admin can remove members.")
        await self.api.remove_member(team.id, member_id)
        self.members = [m for m in self.members if m.id != member_id]
        logger.info("Removed member %s from team %s", member_id, team.id)
        return target

    async def delete_selected(self) -> Team:
        team = self._require_selected()
        if not can_delete_team(self.current_role()):
            raise PermissionDeniedError("Only the team owner can delete the team.")
        await self.api.delete_team(team.id)
        self.teams = [t for t in self.teams if t.id != team.id]
        self.selected = None
        self.members = []
        logger.info("Deleted team %s (%s)", team.id, team.name)
        return team
