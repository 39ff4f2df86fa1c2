# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data dir exists,
- restores the persisted session,
- wires ApiClient / TaskStore / SyncController / TeamManager into AppState.
"""

from __future__ import annotations

import logging

import httpx

from ..api.client import ApiClient
from ..config import get_settings
from ..core.session import Session
from ..core.state import AppState
from ..tasks.sync_controller import SyncController
from ..tasks.task_store import TaskStore
from ..teams.membership import TeamManager

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.session_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the HTTP transport) injectable makes the app easy to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    session = Session(settings.session_path)
    if session.load():
        logger.info("Using saved session for %s", session.user.username if session.user else "?")

    api = ApiClient.from_settings(settings, session, transport=transport)
    store = TaskStore()

    return AppState(
        settings=settings,
        session=session,
        api=api,
        store=store,
        controller=SyncController(store, api, session),
        teams=TeamManager(api, session),
    )
