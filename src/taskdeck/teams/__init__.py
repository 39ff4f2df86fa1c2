"""
Team subsystem.

- team_models.py: Team, TeamMember, TeamRole
- membership.py: role gates and the team page state (TeamManager)
"""
