# src/todo_companion/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the hosted backend, the local backend and the terminal swappable
and makes testing easier.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Awaitable, Protocol

if TYPE_CHECKING:
    from .session import User

TaskRow = dict[str, Any]
# Raw task record as the backend returns it: {"id", "task_title", "user_id", "created_at"}.

AuthListener = Callable[[str, "User | None"], None]
# Called with (event, user): event is one of SIGNED_IN / SIGNED_OUT / TOKEN_REFRESHED.

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthBackend(Protocol):
    """Identity side of the backend. Failures raise AuthError."""

    async def sign_in(self, email: str, password: str) -> User: ...
    async def sign_up(self, email: str, password: str) -> User: ...
    async def sign_out(self) -> None: ...
    async def current_user(self) -> User | None: ...

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]: ...


class TaskBackend(Protocol):
    """
    Remote data service contract for the tasks table.

    Every call either returns its payload or raises RemoteError carrying
    the backend's message. Ownership filtering is enforced by the backend.
    """

    async def select_tasks(self, user_id: str) -> list[TaskRow] | None: ...
    async def insert_task(self, row: TaskRow) -> TaskRow: ...
    async def update_task(self, task_id: Any, fields: dict[str, Any]) -> None: ...
    async def delete_task(self, task_id: Any) -> None: ...


class Notifier(Protocol):
    """Blocking, modal-style user notification."""

    def alert(self, title: str, message: str) -> None: ...


class Confirmer(Protocol):
    """Explicit confirmation step before a destructive action."""

    def confirm(
            self,
            title: str,
            message: str,
            *,
            confirm_label: str = "OK",
            cancel_label: str = "Cancel",
            destructive: bool = False,
    ) -> Awaitable[bool]: ...
