# tests/fakes.py

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from todo_companion.core.errors import AuthError
from todo_companion.core.ports import SIGNED_IN, SIGNED_OUT, AuthListener, TaskRow
from todo_companion.core.session import User

BASE_TIME = datetime(2024, 3, 5, 12, 0, 0, tzinfo=timezone.utc)


class FakeTaskBackend:
    """
    In-memory TaskBackend.

    - Captures calls for assertions
    - `fail_next[op] = exc` makes the next call of that op raise exc
    - `gates[op]` (an asyncio.Event) holds that op until the test releases it
    - created_at advances one minute per insert, so ordering is deterministic
    """

    def __init__(self, rows: list[TaskRow] | None = None) -> None:
        self.rows: list[TaskRow] = [dict(r) for r in rows or []]
        self.calls: list[tuple[str, Any]] = []
        self.fail_next: dict[str, Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.select_returns_none = False
        self._ids = itertools.count(1)
        self._clock = itertools.count(len(self.rows) + 1)

    async def _enter(self, op: str, arg: Any) -> None:
        self.calls.append((op, arg))
        gate = self.gates.get(op)
        if gate is not None:
            await gate.wait()
        exc = self.fail_next.pop(op, None)
        if exc is not None:
            raise exc

    def calls_of(self, op: str) -> list[Any]:
        return [arg for name, arg in self.calls if name == op]

    async def select_tasks(self, user_id: str) -> list[TaskRow] | None:
        await self._enter("select", user_id)
        if self.select_returns_none:
            return None
        own = [dict(r) for r in self.rows if r["user_id"] == user_id]
        return sorted(own, key=lambda r: r["created_at"], reverse=True)

    async def insert_task(self, row: TaskRow) -> TaskRow:
        await self._enter("insert", dict(row))
        stored = {
            "id": f"t{next(self._ids)}",
            "task_title": row["task_title"],
            "user_id": row["user_id"],
            "created_at": (BASE_TIME + timedelta(minutes=next(self._clock))).isoformat(),
        }
        self.rows.append(stored)
        return dict(stored)

    async def update_task(self, task_id: Any, fields: dict[str, Any]) -> None:
        await self._enter("update", (task_id, dict(fields)))
        for r in self.rows:
            if r["id"] == task_id:
                r.update(fields)

    async def delete_task(self, task_id: Any) -> None:
        await self._enter("delete", task_id)
        self.rows = [r for r in self.rows if r["id"] != task_id]


class FakeAuthBackend:
    """In-memory AuthBackend with a fixed set of accounts."""

    def __init__(self, accounts: dict[str, str] | None = None, current: User | None = None) -> None:
        self.accounts = dict(accounts or {"ann@example.com": "secret1"})
        self.user = current
        self.sign_out_error: Exception | None = None
        self._listeners: list[AuthListener] = []

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def push(self, event: str, user: User | None) -> None:
        for listener in list(self._listeners):
            listener(event, user)

    async def current_user(self) -> User | None:
        return self.user

    async def sign_in(self, email: str, password: str) -> User:
        if self.accounts.get(email) != password:
            raise AuthError("Invalid login credentials", status=400)
        self.user = User(id=f"user-{email.split('@')[0]}", email=email)
        self.push(SIGNED_IN, self.user)
        return self.user

    async def sign_up(self, email: str, password: str) -> User:
        if email in self.accounts:
            raise AuthError("User already registered", status=422)
        self.accounts[email] = password
        return await self.sign_in(email, password)

    async def sign_out(self) -> None:
        self.user = None
        self.push(SIGNED_OUT, None)
        if self.sign_out_error is not None:
            raise self.sign_out_error


@dataclass(slots=True)
class FakeNotifier:
    alerts: list[tuple[str, str]] = field(default_factory=list)

    def alert(self, title: str, message: str) -> None:
        self.alerts.append((title, message))

    @property
    def messages(self) -> list[str]:
        return [m for _, m in self.alerts]


@dataclass(slots=True)
class FakeConfirmer:
    answer: bool = True
    prompts: list[dict[str, Any]] = field(default_factory=list)

    async def confirm(
        self,
        title: str,
        message: str,
        *,
        confirm_label: str = "OK",
        cancel_label: str = "Cancel",
        destructive: bool = False,
    ) -> bool:
        self.prompts.append(
            {
                "title": title,
                "message": message,
                "confirm_label": confirm_label,
                "cancel_label": cancel_label,
                "destructive": destructive,
            }
        )
        return self.answer
