# src/taskdeck/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import cast

from ..api.errors import TaskdeckError, ValidationError, friendly_api_error_message
from ..core.state import AppState
from ..tasks.intents import BoardScope, CreateTask, DeleteTask, LoadBoard, MoveTask, UpdateTask
from ..tasks.task_filters import TaskFilter, count_by_filter, filter_tasks
from ..tasks.task_models import TaskStatus
from .render import (
    render_board,
    render_members,
    render_overdue_banner,
    render_task,
    render_task_line,
    render_teams,
)

CommandEmitter = Callable[[str], None]
CommandReply = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandReply]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandReply]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /board, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Client-side and API errors become the reply; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                reply = cast(CommandHandler3, handler)(state, args, emit)
            else:
                reply = cast(CommandHandler2, handler)(state, args)
            if inspect.isawaitable(reply):
                reply = await reply
        except TaskdeckError as e:
            logger.info("/%s failed: %s", name, e)
            return friendly_api_error_message(e)
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----

def _parse_id(raw: str, what: str = "task id") -> int:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        raise ValidationError(f"Invalid {what}: {raw!r}") from None


def _parse_status(raw: str) -> TaskStatus:
    try:
        return TaskStatus.parse(raw)
    except ValueError:
        choices = ", ".join(s.value for s in TaskStatus)
        raise ValidationError(f"Unknown column {raw!r}. Use one of: {choices}.") from None


_EDIT_KEYS = {
    "title": "title",
    "description": "description",
    "desc": "description",
    "status": "status",
    "assignee": "assignee",
    "due": "due_date",
    "due_date": "due_date",
}


def _parse_edits(args: list[str]) -> dict[str, str]:
    changes: dict[str, str] = {}
    for item in args:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValidationError(f"Expected key=value, got {item!r}.")
        field_name = _EDIT_KEYS.get(key.strip().lower())
        if field_name is None:
            raise ValidationError(f"Unknown field {key!r}. Editable: title, desc, status, assignee, due.")
        changes[field_name] = value
    return changes


def _require_login(state: AppState) -> None:
    if not state.session.is_authenticated:
        raise ValidationError("Not signed in. Use /login <username> <password> or /register.")


# ---- auth ----

async def _after_sign_in(state: AppState) -> str:
    await state.controller.handle(LoadBoard(BoardScope.personal()))
    try:
        await state.teams.refresh()
    except TaskdeckError as e:
        logger.info("Team list unavailable after sign-in: %s", e)
    return render_board(state.store, state.controller.scope)


async def cmd_register(state: AppState, args: list[str]) -> str:
    """/register <username> <password>"""
    if len(args) != 2:
        return "Usage: /register <username> <password>"
    try:
        user = await state.api.register(args[0], args[1])
    except TaskdeckError as e:
        if isinstance(e, ValidationError):
            raise
        return "Registration failed: " + friendly_api_error_message(e)
    board = await _after_sign_in(state)
    return f"Welcome, {user.username}!\n{board}"


async def cmd_login(state: AppState, args: list[str]) -> str:
    """/login <username> <password>"""
    if len(args) != 2:
        return "Usage: /login <username> <password>"
    state.api.logout()
    try:
        user = await state.api.login(args[0], args[1])
    except TaskdeckError as e:
        if getattr(e, "status", None) in (401, 403):
            return "Wrong username or password."
        raise
    board = await _after_sign_in(state)
    return f"Signed in as {user.username}.\n{board}"


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.api.logout()
    state.controller.scope = BoardScope.personal()
    state.store.replace_all([])
    state.teams.teams = []
    state.teams.selected = None
    state.teams.members = []
    state.all_tasks = []
    return "Signed out."


async def cmd_me(state: AppState, args: list[str]) -> str:
    _require_login(state)
    user = await state.api.get_profile()
    email = f" <{user.email}>" if user.email else ""
    return f"#{user.id} {user.username}{email}"


# ---- board ----

async def cmd_board(state: AppState, args: list[str]) -> str:
    """
    /board               -> show current board
    /board personal      -> load personal board
    /board team <id>     -> load a team board
    """
    _require_login(state)
    if args:
        sub = args[0].lower()
        if sub == "personal":
            scope = BoardScope.personal()
        elif sub == "team":
            if len(args) < 2:
                return "Usage: /board team <team_id>"
            team_id = _parse_id(args[1], "team id")
            if not state.teams.teams:
                await state.teams.refresh()
            team = await state.teams.select(team_id)
            scope = BoardScope.team(team.id, team.name)
        else:
            return "Usage: /board [personal | team <team_id>]"
        result = await state.controller.handle(LoadBoard(scope))
        if not result.ok:
            return f"Could not load board: {result.message}"
    return render_board(state.store, state.controller.scope)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <column> <title...>"""
    _require_login(state)
    if len(args) < 2:
        return "Usage: /add <todo|in-progress|done> <title...>"
    status = _parse_status(args[0])
    result = await state.controller.handle(CreateTask(status=status, title=" ".join(args[1:])))
    if not result.ok or result.task is None:
        return f"Could not create task: {result.message}"
    return f"Created #{result.task.id} in {result.task.status.value}."


def cmd_show(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /show <task_id>"
    task = state.store.get(_parse_id(args[0]))
    if task is None:
        return f"No task {args[0]} on this board."
    return render_task(task)


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> key=value ... (applied locally at once, reverted if the server refuses)"""
    _require_login(state)
    if len(args) < 2:
        return "Usage: /edit <task_id> title=... desc=... status=... assignee=... due=YYYY-MM-DDTHH:MM"
    task_id = _parse_id(args[0])
    state.controller.submit(UpdateTask(task_id=task_id, changes=_parse_edits(args[1:])))
    return f"Updated #{task_id}.\n{render_board(state.store, state.controller.scope)}"


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <id> <column> [index]"""
    _require_login(state)
    if len(args) not in (2, 3):
        return "Usage: /move <task_id> <column> [index]"
    task_id = _parse_id(args[0])
    dest = _parse_status(args[1])
    position = state.store.column_position(task_id)
    if position is None:
        return f"No task #{task_id} on this board."
    source, source_index = position
    if len(args) == 3:
        dest_index = _parse_id(args[2], "index")
    else:
        dest_index = len(state.store.column(dest).task_ids)
    state.controller.submit(
        MoveTask(task_id=task_id, source=source, source_index=source_index, dest=dest, dest_index=dest_index)
    )
    return render_board(state.store, state.controller.scope)


def cmd_rm(state: AppState, args: list[str]) -> str:
    _require_login(state)
    if len(args) != 1:
        return "Usage: /rm <task_id>"
    task_id = _parse_id(args[0])
    state.controller.submit(DeleteTask(task_id=task_id))
    return f"Deleted #{task_id}."


async def cmd_all(state: AppState, args: list[str]) -> str:
    """/all [all|personal|team|overdue|today]"""
    _require_login(state)
    try:
        which = TaskFilter(args[0].lower()) if args else TaskFilter.ALL
    except ValueError:
        return "Usage: /all [" + "|".join(f.value for f in TaskFilter) + "]"
    state.all_tasks = await state.api.get_all_tasks()
    now = datetime.now()
    counts = count_by_filter(state.all_tasks, now=now)
    lines = ["  ".join(f"{f.value}({counts[f]})" for f in TaskFilter)]
    banner = render_overdue_banner(filter_tasks(state.all_tasks, TaskFilter.OVERDUE, now=now))
    if banner:
        lines.append(banner)
    shown = filter_tasks(state.all_tasks, which, now=now)
    if not shown:
        lines.append(f"No tasks match '{which.value}'.")
        return "\n".join(lines)
    for t in shown:
        lines.append(f"  [{t.status.value}] {render_task_line(t, now)}")
    return "\n".join(lines)


# ---- teams ----

async def cmd_teams(state: AppState, args: list[str]) -> str:
    _require_login(state)
    teams = await state.teams.refresh()
    return render_teams(teams, state.teams.selected)


async def cmd_team(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /team new <name> [description...]
    /team select <id>
    /team members
    /team invite <username>
    /team kick <member_id>
    /team delete
    """
    _require_login(state)
    usage = (
        "Usage:\n"
        "  /team new <name> [description...]\n"
        "  /team select <team_id>\n"
        "  /team members\n"
        "  /team invite <username>\n"
        "  /team kick <member_id>\n"
        "  /team delete\n"
    )
    if not args:
        return usage

    sub = args[0].lower()
    mgr = state.teams

    if sub == "new":
        if len(args) < 2:
            return "Usage: /team new <name> [description...]"
        team = await mgr.create_team(args[1], " ".join(args[2:]) or None)
        return f"Team '{team.name}' created (#{team.id})."

    if sub == "select":
        if len(args) != 2:
            return "Usage: /team select <team_id>"
        if not mgr.teams:
            await mgr.refresh()
        team = await mgr.select(_parse_id(args[1], "team id"))
        return render_members(team, mgr.members)

    if sub == "members":
        if mgr.selected is None:
            return "Select a team first: /team select <team_id>"
        await mgr.reload_members()
        return render_members(mgr.selected, mgr.members)

    if sub == "invite":
        if len(args) != 2:
            return "Usage: /team invite <username>"
        try:
            member = await mgr.invite(args[1])
        except TaskdeckError as e:
            if isinstance(e, ValidationError):
                raise
            return "Invite failed: " + friendly_api_error_message(e)
        return f"{member.user.username or args[1]} joined the team."

    if sub == "kick":
        if len(args) != 2:
            return "Usage: /team kick <member_id>"
        removed = await mgr.remove(_parse_id(args[1], "member id"))
        return f"{removed.user.username} was removed from the team."

    if sub == "delete":
        team = mgr.selected
        if team is None:
            return "Select a team first: /team select <team_id>"
        if emit:
            emit(f"Deleting team '{team.name}'. Unfinished tasks must be completed first; done tasks are deleted too.")
        deleted = await mgr.delete_selected()
        if state.controller.scope.team_id == deleted.id:
            await state.controller.handle(LoadBoard(BoardScope.personal()))
        return f"Team '{deleted.name}' deleted."

    return usage


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("register", cmd_register, help_text="Create an account: /register <username> <password>.")
registry.register("login", cmd_login, help_text="Sign in: /login <username> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out and forget the saved session.")
registry.register("me", cmd_me, help_text="Show the signed-in profile.")
registry.register("board", cmd_board, help_text="Show or switch board: /board [personal | team <id>].", aliases=["b"])
registry.register("add", cmd_add, help_text="Create a task: /add <column> <title...>.")
registry.register("show", cmd_show, help_text="Show task details: /show <id>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> key=value ...")
registry.register("move", cmd_move, help_text="Move a task: /move <id> <column> [index].", aliases=["mv"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("all", cmd_all, help_text="All accessible tasks: /all [all|personal|team|overdue|today].")
registry.register("teams", cmd_teams, help_text="List your teams.")
registry.register("team", cmd_team, help_text="Team management: /team new|select|members|invite|kick|delete.")
