# errors.py
from __future__ import annotations


class WorkValueError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(WorkValueError):
    """A wage config or certification plan field is out of range."""
    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class AlreadyWorkingError(WorkValueError):
    """start_work called while a session is already active."""
    def __init__(self, session_id: str):
        super().__init__(f"A work session is already active ({session_id})")
        self.session_id = session_id


class NotWorkingError(WorkValueError):
    """end_work called without an active session."""
    def __init__(self):
        super().__init__("No active work session")


class NotFoundError(WorkValueError):
    def __init__(self, plan_id: str):
        super().__init__(f"Certification plan not found: {plan_id}")
        self.plan_id = plan_id


class PersistenceError(WorkValueError):
    """Read/write failure of the key-value store, or a corrupt record."""
    def __init__(self, message: str, key: str | None = None):
        super().__init__(f"{message} (key={key})" if key else message)
        self.key = key


class NotificationDispatchError(WorkValueError):
    """Raised by gateways; the dispatcher logs and swallows it."""


__all__ = [
    "WorkValueError",
    "ValidationError",
    "AlreadyWorkingError",
    "NotWorkingError",
    "NotFoundError",
    "PersistenceError",
    "NotificationDispatchError",
]
