# src/todo_companion/core/errors.py

from __future__ import annotations


class TodoError(Exception):
    """Base class for errors raised by todo_companion."""


class ValidationError(TodoError, ValueError):
    """Input rejected locally; no request was issued."""


class RemoteError(TodoError, RuntimeError):
    """
    Structured failure reported by the backend.

    `message` is the backend's human-readable text and is shown to the user verbatim.
    """

    def __init__(self, message: str, *, status: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class AuthError(RemoteError):
    """Sign-in / sign-up / sign-out rejected by the auth backend."""
