# src/todo_companion/tasks/task_controller.py

from __future__ import annotations

"""
Task list controller.

Owns the task screen state (collection, input buffer, edit target, flags)
and binds each user action to one backend call:
- validates input locally (empty titles never reach the backend),
- awaits the backend,
- reconciles local state with the response in a single replacement,
- reports failures through the Notifier port and leaves state in its
  pre-operation shape.

Operations are independent coroutines; their completions may race. Each
completion is applied to the *current* snapshot, never to the one the
operation started from.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, TypeVar

from ..core.errors import RemoteError, ValidationError
from ..core.observable import Observable
from ..core.ports import Confirmer, Notifier, TaskBackend
from ..core.session import SessionProvider, SessionState, User
from .task_models import Task, TaskListState

logger = logging.getLogger(__name__)

T = TypeVar("T")

ERROR_TITLE = "Error"
EMPTY_NEW_TITLE_MESSAGE = "Please enter a task title"
EMPTY_EDIT_TITLE_MESSAGE = "Task title cannot be empty"

DELETE_CONFIRM_TITLE = "Delete Task"
DELETE_CONFIRM_MESSAGE = "Are you sure you want to delete this task?"

# op -> (what failed, what was going on)
_OP_WORDING: dict[str, tuple[str, str]] = {
    "fetch": ("fetch tasks", "fetching tasks"),
    "add": ("add task", "adding task"),
    "update": ("update task", "updating task"),
    "delete": ("delete task", "deleting task"),
}


def failure_message(op: str, backend_message: str) -> str:
    what, _ = _OP_WORDING[op]
    return f"Failed to {what}: {backend_message}"


def unexpected_message(op: str) -> str:
    _, doing = _OP_WORDING[op]
    return f"An unexpected error occurred while {doing}"


def require_title(raw: str, empty_message: str) -> str:
    clean = (raw or "").strip()
    if not clean:
        raise ValidationError(empty_message)
    return clean


class TaskListController:
    def __init__(
            self,
            backend: TaskBackend,
            session: SessionProvider,
            notifier: Notifier,
            confirmer: Confirmer,
    ) -> None:
        self._backend = backend
        self._session = session
        self._notifier = notifier
        self._confirmer = confirmer

        self._state = Observable(TaskListState())
        # Bumped on every reset; completions from an older epoch are dropped.
        self._epoch = 0
        self._user_id = session.user.id if session.user else None
        self._unsubscribe_session: Callable[[], None] | None = session.subscribe(
            self._on_session_change
        )

    # ---- observation ----

    @property
    def state(self) -> TaskListState:
        return self._state.value

    def subscribe(
            self,
            listener: Callable[[TaskListState], None],
            *,
            emit_current: bool = False,
    ) -> Callable[[], None]:
        return self._state.subscribe(listener, emit_current=emit_current)

    def dispose(self) -> None:
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None

    def reset(self) -> None:
        """Discard all per-user state (called when the signed-in user changes)."""
        self._epoch += 1
        self._state.emit(TaskListState())

    # ---- fetch ----

    async def mount(self) -> bool:
        """Initial load of the task screen."""
        return await self.fetch_tasks()

    async def fetch_tasks(self) -> bool:
        """
        Replace the collection with the server's view (newest first).

        On failure the collection is left untouched.
        """
        epoch = self._epoch
        self._update(loading=True)

        async def _select() -> tuple[Task, ...]:
            user = self._require_user()
            rows = await self._backend.select_tasks(user.id)
            return tuple(Task.from_row(r) for r in rows or ())

        ok, tasks = await self._run("fetch", _select)

        if epoch != self._epoch:
            logger.debug("Dropping fetch result from a previous session.")
            return False

        if not ok or tasks is None:
            self._update(loading=False)
            return False

        self._update(tasks=tasks, loading=False)
        logger.info("Fetched %d tasks", len(tasks))
        return True

    async def refresh(self) -> bool:
        """Pull-to-refresh: same fetch routine, with its own indicator."""
        epoch = self._epoch
        self._update(refreshing=True)
        try:
            return await self.fetch_tasks()
        finally:
            if epoch == self._epoch:
                self._update(refreshing=False)

    # ---- buffers ----

    def set_input(self, text: str) -> None:
        self._update(input_text=text)

    def set_edit_text(self, text: str) -> None:
        self._update(edit_text=text)

    # ---- add / update / delete ----

    async def add_task(self, title: str | None = None) -> bool:
        """
        Insert a task for the current user and prepend the row the server returns.

        `title` defaults to the input buffer. The buffer is cleared only on success,
        so a failed add can be retried without retyping.
        """
        raw = self.state.input_text if title is None else title
        epoch = self._epoch

        async def _insert() -> Task:
            clean = require_title(raw, EMPTY_NEW_TITLE_MESSAGE)
            user = self._require_user()
            row = await self._backend.insert_task({"task_title": clean, "user_id": user.id})
            return Task.from_row(row)

        ok, task = await self._run("add", _insert)
        if not ok or task is None or epoch != self._epoch:
            return False

        self._update(tasks=(task, *self.state.tasks), input_text="")
        logger.info("Added task id=%s", task.id)
        return True

    async def update_task(self, task_id: Any, new_title: str | None = None) -> bool:
        """
        Rename a task. `new_title` defaults to the edit buffer.

        Edit mode stays active when the title is empty or the backend rejects the change.
        """
        raw = self.state.edit_text if new_title is None else new_title
        epoch = self._epoch

        async def _update_title() -> str:
            clean = require_title(raw, EMPTY_EDIT_TITLE_MESSAGE)
            await self._backend.update_task(task_id, {"task_title": clean})
            return clean

        ok, clean = await self._run("update", _update_title)
        if not ok or clean is None or epoch != self._epoch:
            return False

        s = self.state
        changes: dict[str, Any] = {
            "tasks": tuple(t.with_title(clean) if t.id == task_id else t for t in s.tasks),
        }
        # Another row may have entered edit mode while this request was in flight.
        if s.editing_task_id is None or s.is_editing(task_id):
            changes.update(editing_task_id=None, edit_text="")
        self._update(**changes)
        logger.info("Updated task id=%s", task_id)
        return True

    async def delete_task(self, task_id: Any) -> bool:
        """Ask for confirmation, then delete exactly the row with `task_id`."""
        try:
            confirmed = await self._confirmer.confirm(
                DELETE_CONFIRM_TITLE,
                DELETE_CONFIRM_MESSAGE,
                confirm_label="Delete",
                cancel_label="Cancel",
                destructive=True,
            )
        except Exception:
            logger.exception("Delete confirmation failed task_id=%s", task_id)
            self._alert(unexpected_message("delete"))
            return False

        if not confirmed:
            logger.debug("Delete cancelled task_id=%s", task_id)
            return False

        epoch = self._epoch

        async def _delete() -> None:
            await self._backend.delete_task(task_id)

        ok, _ = await self._run("delete", _delete)
        if not ok or epoch != self._epoch:
            return False

        s = self.state
        changes: dict[str, Any] = {"tasks": tuple(t for t in s.tasks if t.id != task_id)}
        # The row being edited is gone: leave edit mode instead of editing a ghost.
        if s.is_editing(task_id):
            changes.update(editing_task_id=None, edit_text="")
        self._update(**changes)
        logger.info("Deleted task id=%s", task_id)
        return True

    # ---- edit mode ----

    def start_editing(self, task: Task) -> None:
        self._update(editing_task_id=task.id, edit_text=task.task_title)

    def cancel_editing(self) -> None:
        self._update(editing_task_id=None, edit_text="")

    # ---- internals ----

    def _require_user(self) -> User:
        user = self._session.user
        if user is None:
            raise RuntimeError("No signed-in user.")
        return user

    async def _run(self, op: str, call: Callable[[], Awaitable[T]]) -> tuple[bool, T | None]:
        """Await one backend call and report its failure (if any) to the user."""
        try:
            return True, await call()
        except ValidationError as e:
            # Rejected before any request was issued.
            logger.debug("%s rejected: %s", op, e)
            self._alert(str(e))
        except RemoteError as e:
            logger.info("%s failed: %s", op, e.message)
            self._alert(failure_message(op, e.message))
        except Exception:
            logger.exception("%s failed unexpectedly", op)
            self._alert(unexpected_message(op))
        return False, None

    def _alert(self, message: str) -> None:
        try:
            self._notifier.alert(ERROR_TITLE, message)
        except Exception:
            logger.exception("Notifier failed to show: %s", message)

    def _update(self, **changes: Any) -> None:
        self._state.emit(replace(self._state.value, **changes))

    def _on_session_change(self, session: SessionState) -> None:
        user_id = session.user.id if session.user else None
        if user_id == self._user_id:
            return
        logger.info("Session user changed %s -> %s; clearing task list.", self._user_id, user_id)
        self._user_id = user_id
        self.reset()
