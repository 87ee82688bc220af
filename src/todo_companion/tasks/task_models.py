# src/todo_companion/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from ..core.ports import TaskRow


def parse_timestamp(raw: Any) -> datetime:
    """
    Parse a server timestamp into an aware datetime.

    Accepts datetime objects, epoch seconds and ISO-8601 strings (with a trailing "Z"
    or more than 6 fractional digits, both of which PostgREST may return).
    """
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(float(raw), tz=timezone.utc)
    if not raw:
        return datetime.fromtimestamp(0, tz=timezone.utc)

    s = str(raw).strip().replace("Z", "+00:00")
    if "." in s:
        head, _, tail = s.partition(".")
        digits = ""
        rest = tail
        while rest and rest[0].isdigit():
            digits += rest[0]
            rest = rest[1:]
        s = f"{head}.{digits[:6].ljust(6, '0')}{rest}"

    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class Task:
    id: Any
    task_title: str
    user_id: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: TaskRow) -> Task:
        if "id" not in row:
            raise ValueError("task row has no id")
        return cls(
            id=row["id"],
            task_title=str(row.get("task_title") or ""),
            user_id=str(row.get("user_id") or ""),
            created_at=parse_timestamp(row.get("created_at")),
        )

    def with_title(self, title: str) -> Task:
        return replace(self, task_title=title)


@dataclass(frozen=True, slots=True)
class TaskListState:
    """
    Immutable snapshot of the task screen.

    Notes:
    - `tasks` is a cached projection of the server, newest first; it is not authoritative.
    - `editing_task_id` / `edit_text` exist only while one row is in edit mode.
    """

    tasks: tuple[Task, ...] = ()
    input_text: str = ""
    editing_task_id: Any | None = None
    edit_text: str = ""
    loading: bool = False
    refreshing: bool = False

    def is_editing(self, task_id: Any) -> bool:
        return self.editing_task_id is not None and self.editing_task_id == task_id

    def find(self, task_id: Any) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    @property
    def show_loading_indicator(self) -> bool:
        # Pull-to-refresh has its own indicator.
        return self.loading and not self.refreshing
