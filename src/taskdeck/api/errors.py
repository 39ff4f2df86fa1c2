# src/taskdeck/api/errors.py

from __future__ import annotations

from typing import Any


class TaskdeckError(Exception):
    """Base class for every error this package raises on purpose."""


class TransportError(TaskdeckError):
    """The request never produced an HTTP response (DNS, connect, read timeout, ...)."""


class ApiError(TaskdeckError):
    """HTTP response outside 2xx. `data` is the best-effort parsed body ({} if unparsable)."""

    def __init__(self, status: int, data: Any) -> None:
        self.status = int(status)
        self.data = data if data is not None else {}
        super().__init__(f"HTTP {self.status}: {self.detail or 'no details'}")

    @property
    def detail(self) -> str:
        d = self.data
        if isinstance(d, dict):
            for key in ("error", "message"):
                v = d.get(key)
                if isinstance(v, str) and v.strip():
                    return v.strip()
            return ""
        if isinstance(d, str):
            return d.strip()
        return ""


class AuthError(ApiError):
    """401/403. The session has already been cleared when this is raised."""


class ValidationError(TaskdeckError):
    """Client-side input problem; no request was sent."""


class PermissionDeniedError(ValidationError):
    """Client-side role gate refused the action; no request was sent."""


def friendly_api_error_message(err: BaseException) -> str:
    """Turn any error from the API layer into a one-line user-visible message."""
    if isinstance(err, ValidationError):
        return str(err) or "Invalid input."
    if isinstance(err, TransportError):
        return "Network problem: cannot reach the server. Check your connection."
    if isinstance(err, ApiError):
        detail = err.detail
        if err.status == 401:
            return "Not signed in or session expired. Use /login."
        if err.status == 403:
            return detail or "Access denied."
        if err.status == 429:
            return "Too many attempts. Try again later."
        if err.status >= 500:
            return f"Server error: {detail}" if detail else "Server error. Try again later."
        return detail or f"Request failed (HTTP {err.status})."
    return str(err).strip() or err.__class__.__name__
