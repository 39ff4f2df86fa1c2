# src/taskdeck/api/client.py

"""
Async REST client for the task/team backend.

Every request:
- carries Content-Type: application/json,
- carries Authorization: Bearer <token> when the session holds one (read per request,
  so a cleared session never leaks a stale header),
- raises ApiError(status, data) on non-2xx, AuthError on 401/403 after clearing the session,
- raises TransportError when no response was received.

No retries: every failure is terminal for the action that triggered it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from ..core.session import Session
from ..tasks.task_models import Task, User, changes_to_wire
from ..teams.team_models import Team, TeamMember
from .errors import ApiError, AuthError, TransportError, ValidationError

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = frozenset({401, 403})

T = TypeVar("T")


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _parse_error_body(response: httpx.Response) -> Any:
    """Best-effort JSON decode of an error body: {} if unparsable, a JSON string becomes {"error": s}."""
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return {}
    if isinstance(data, str):
        return {"error": data}
    return data if data is not None else {}


def _decode(parse: Callable[[Any], T], raw: Any) -> T:
    """Run a from_wire parser; a malformed payload becomes ApiError like any other bad response."""
    try:
        return parse(raw)
    except (TypeError, ValueError) as e:
        raise ApiError(200, {"error": f"Malformed response: {e}"}) from e


def _decode_list(parse: Callable[[Any], T], raw: Any, what: str) -> list[T]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ApiError(200, {"error": f"Expected a list of {what}, got {type(raw).__name__}"})
    return [_decode(parse, item) for item in raw]


class ApiClient:
    """Thin wrapper around httpx.AsyncClient bound to one Session."""

    def __init__(
        self,
        session: Session,
        *,
        base_url: str,
        connect_timeout: float = 5.0,
        read_timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=_make_timeout(connect_timeout, read_timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, session: Session, **kwargs: Any) -> ApiClient:
        return cls(
            session,
            base_url=str(settings.api_base_url),
            connect_timeout=float(getattr(settings, "connect_timeout_seconds", 5.0)),
            read_timeout=float(getattr(settings, "read_timeout_seconds", 20.0)),
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ---- low-level ----

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = self.session.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None for an empty body)."""
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            response = await self._http.request(
                method,
                path,
                json=json_body,
                params=clean_params or None,
                headers=self._headers(),
            )
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e.__class__.__name__)
            raise TransportError(f"{method} {path}: {e.__class__.__name__}") from e

        if not response.is_success:
            if response.status_code in AUTH_FAILURE_STATUSES:
                self.session.clear()
                err: ApiError = AuthError(response.status_code, _parse_error_body(response))
            else:
                err = ApiError(response.status_code, _parse_error_body(response))
            logger.info("%s %s -> %s %s", method, path, response.status_code, err.detail)
            raise err

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, {"error": "Response is not valid JSON"}) from e

    # ---- auth ----

    async def _start_session(self, path: str, username: str, password: str) -> User:
        if not username.strip() or not password.strip():
            raise ValidationError("Username and password are required.")
        raw = await self.request("POST", path, json_body={"username": username, "password": password})
        if not isinstance(raw, dict) or not raw.get("token"):
            raise ApiError(200, {"error": "Auth response has no token"})
        user = _decode(User.from_wire, raw.get("user"))
        self.session.begin(user, str(raw["token"]))
        return user

    async def register(self, username: str, password: str) -> User:
        return await self._start_session("/auth/register", username, password)

    async def login(self, username: str, password: str) -> User:
        return await self._start_session("/auth/login", username, password)

    def logout(self) -> None:
        self.session.clear()

    async def get_profile(self) -> User:
        return _decode(User.from_wire, await self.request("GET", "/auth/me"))

    # ---- tasks ----

    async def get_tasks(self, user_id: int, *, mode: str | None = None) -> list[Task]:
        raw = await self.request("GET", "/tasks", params={"userId": user_id, "mode": mode})
        return _decode_list(Task.from_wire, raw, "tasks")

    async def get_personal_tasks(self) -> list[Task]:
        raw = await self.request("GET", "/tasks/personal")
        return _decode_list(Task.from_wire, raw, "tasks")

    async def get_all_tasks(self) -> list[Task]:
        raw = await self.request("GET", "/tasks/all")
        return _decode_list(Task.from_wire, raw, "tasks")

    async def create_task(self, user_id: int, fields: dict[str, Any], *, team_id: int | None = None) -> Task:
        raw = await self.request(
            "POST",
            "/tasks",
            params={"userId": user_id, "teamId": team_id},
            json_body=changes_to_wire(fields),
        )
        return _decode(Task.from_wire, raw)

    async def update_task(self, task_id: int, changes: dict[str, Any]) -> Task | None:
        raw = await self.request("PUT", f"/tasks/{int(task_id)}", json_body=changes_to_wire(changes))
        return _decode(Task.from_wire, raw) if isinstance(raw, dict) else None

    async def delete_task(self, task_id: int) -> None:
        await self.request("DELETE", f"/tasks/{int(task_id)}")

    # ---- teams ----

    async def get_teams(self) -> list[Team]:
        raw = await self.request("GET", "/teams")
        return _decode_list(Team.from_wire, raw, "teams")

    async def create_team(self, name: str, description: str | None = None) -> Team:
        raw = await self.request("POST", "/teams", json_body={"name": name, "description": description})
        return _decode(Team.from_wire, raw)

    async def get_team(self, team_id: int) -> Team:
        return _decode(Team.from_wire, await self.request("GET", f"/teams/{int(team_id)}"))

    async def delete_team(self, team_id: int) -> None:
        await self.request("DELETE", f"/teams/{int(team_id)}")

    async def get_team_tasks(self, team_id: int) -> list[Task]:
        raw = await self.request("GET", f"/teams/{int(team_id)}/tasks")
        return _decode_list(Task.from_wire, raw, "tasks")

    async def create_team_task(self, team_id: int, fields: dict[str, Any]) -> Task:
        raw = await self.request("POST", f"/teams/{int(team_id)}/tasks", json_body=changes_to_wire(fields))
        return _decode(Task.from_wire, raw)

    async def get_team_members(self, team_id: int) -> list[TeamMember]:
        raw = await self.request("GET", f"/teams/{int(team_id)}/members")
        return _decode_list(TeamMember.from_wire, raw, "members")

    async def invite_member(self, team_id: int, username: str) -> TeamMember:
        raw = await self.request("POST", f"/teams/{int(team_id)}/members", json_body={"username": username})
        return _decode(TeamMember.from_wire, raw)

    async def remove_member(self, team_id: int, member_id: int) -> None:
        await self.request("DELETE", f"/teams/{int(team_id)}/members/{int(member_id)}")
