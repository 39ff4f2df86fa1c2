# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No credentials required at import time (the session file holds the token).
- Every component accepts an injected settings object, get_settings() is only the default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKDECK"

DEFAULT_API_BASE_URL = "http://localhost:8080/api"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Remote API ----
    api_base_url: str
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    session_path: Path
    log_file: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck").strip() or "taskdeck"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_base_url = _env(_k("API_BASE_URL"), DEFAULT_API_BASE_URL).strip() or DEFAULT_API_BASE_URL
        connect_timeout = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("READ_TIMEOUT_SECONDS"), 20.0)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))
        session_path = _env_path(_k("SESSION_PATH"), data_dir / "session.json")
        log_file = _env_path(_k("LOG_FILE"), data_dir / "taskdeck.log")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_base_url=api_base_url.rstrip("/"),
            connect_timeout_seconds=max(0.1, connect_timeout),
            read_timeout_seconds=max(0.1, read_timeout),
            data_dir=data_dir,
            session_path=session_path,
            log_file=log_file,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
