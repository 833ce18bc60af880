"""Failure taxonomy shared by the client and every controller."""

from __future__ import annotations

from typing import Any, Optional

GENERIC_MESSAGE = "Request failed"


class ConsoleError(Exception):
    """Base class; ``message`` is safe to show to the user as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(ConsoleError):
    """Credentials are missing or were rejected; the caller must log in again."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ValidationError(ConsoleError):
    """Client-side precondition failed; nothing was sent."""


class ConfirmationRequired(ValidationError):
    def __init__(self, operation: str):
        super().__init__(f"Operation '{operation}' requires confirmation")
        self.operation = operation


class PreconditionError(ValidationError):
    """The session is not in a state that allows the operation."""


class ConflictError(ConsoleError):
    """The task's status does not allow the requested transition."""

    def __init__(self, message: str, task_id: Optional[str] = None, status: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id
        self.status = status


class TransportError(ConsoleError):
    def __init__(self, message: str = "Unable to reach the transcoding service"):
        super().__init__(message)


class DomainError(ConsoleError):
    """Well-formed error response from the backend."""

    def __init__(self, message: str, status_code: int, payload: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload or {}

    @classmethod
    def from_response(cls, status_code: int, payload: Any, fallback: str = GENERIC_MESSAGE) -> "DomainError":
        body = payload if isinstance(payload, dict) else {}
        message = body.get("error") or fallback
        return cls(str(message), status_code, body)
