# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.core.session import Session
from taskdeck.core.state import AppState
from taskdeck.tasks.sync_controller import SyncController
from taskdeck.tasks.task_models import User
from taskdeck.tasks.task_store import TaskStore
from taskdeck.teams.membership import TeamManager

from .fakes import FakeBackend


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap code.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="taskdeck-test",
        log_level="DEBUG",
        api_base_url="http://testserver/api",
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
        data_dir=tmp_path,
        session_path=tmp_path / "session.json",
        log_file=tmp_path / "taskdeck.log",
    )


@pytest.fixture()
def session(tmp_path: Path) -> Session:
    s = Session(tmp_path / "session.json")
    s.begin(User(id=1, username="alice"), "token-alice")
    return s


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def store() -> TaskStore:
    return TaskStore()


@pytest.fixture()
def controller(store: TaskStore, backend: FakeBackend, session: Session) -> SyncController:
    return SyncController(store, backend, session)


@pytest.fixture()
def state(settings, session, backend, store, controller) -> AppState:
    """AppState wired with the in-memory backend instead of a real ApiClient."""
    backend.session = session
    return AppState(
        settings=settings,
        session=session,
        api=backend,  # type: ignore[arg-type]
        store=store,
        controller=controller,
        teams=TeamManager(backend, session),
    )
