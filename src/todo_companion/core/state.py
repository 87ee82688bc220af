# src/todo_companion/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_controller import TaskListController
from .ports import AuthBackend, Confirmer, Notifier, TaskBackend
from .session import SessionProvider


@dataclass
class AppState:
    """
    Runtime container shared by the console connector and command handlers.

    `backend` implements both AuthBackend and TaskBackend (hosted or local).
    """

    settings: Any
    backend: Any
    session: SessionProvider
    controller: TaskListController
    notifier: Notifier
    confirmer: Confirmer

    @property
    def auth(self) -> AuthBackend:
        return self.backend

    @property
    def tasks(self) -> TaskBackend:
        return self.backend
