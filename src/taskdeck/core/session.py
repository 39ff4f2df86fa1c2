# src/taskdeck/core/session.py

"""
Process-wide credential state.

The token and the user profile live in one Session object that is passed to the API
client explicitly. Transitions:
- begin(user, token): after a successful login/register
- clear(): on logout or on any 401/403 from the server

The session file contains a bearer token; it is written atomically with 0600 permissions
under the gitignored data dir.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

from ..tasks.task_models import User

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(Exception):
        os.chmod(path, 0o600)


class Session:
    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._token: str | None = None
        self._user: User | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token) and self._user is not None

    def begin(self, user: User, token: str) -> None:
        if not token or not token.strip():
            raise ValueError("token is required")
        self._user = user
        self._token = token.strip()
        logger.info("Session started user=%s id=%s", user.username, user.id)
        self._persist()

    def clear(self) -> None:
        had = self._token is not None
        self._token = None
        self._user = None
        if self._path is not None:
            with contextlib.suppress(FileNotFoundError):
                self._path.unlink()
        if had:
            logger.info("Session cleared.")

    def load(self) -> bool:
        """Restore a persisted session. Returns True if credentials were found."""
        if self._path is None or not self._path.exists():
            return False
        try:
            raw = json.loads(self._path.read_text("utf-8"))
            token = raw.get("token") if isinstance(raw, dict) else None
            if not isinstance(token, str) or not token.strip():
                raise ValueError("session file has no token")
            user = User.from_wire(raw.get("user"))
        except Exception:
            logger.warning("Ignoring unreadable session file %s", self._path, exc_info=True)
            self.clear()
            return False
        self._token = token.strip()
        self._user = user
        logger.info("Session restored user=%s", user.username)
        return True

    def _persist(self) -> None:
        if self._path is None or self._user is None or self._token is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write_json(self._path, {"token": self._token, "user": self._user.to_wire()})
        except OSError:
            # The in-memory session still works; only restart persistence is lost.
            logger.exception("Failed to persist session to %s", self._path)
