# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio

from todo_companion.cli.bootstrap import create_initial_state
from todo_companion.core.session import SessionProvider
from todo_companion.core.state import AppState
from todo_companion.tasks.task_controller import TaskListController

from .fakes import FakeAuthBackend, FakeConfirmer, FakeNotifier, FakeTaskBackend


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and connectors.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's .env.
    """
    return SimpleNamespace(
        app_name="My Tasks",
        log_level="INFO",
        console_enabled=False,
        backend_url="",
        backend_key=None,
        tasks_table="tasks",
        http_timeout_seconds=5.0,
        hosted_backend_configured=False,
        auto_sign_in_email="",
        auto_sign_in_password="",
        data_dir=tmp_path,
        local_db_path=tmp_path / "todo.sqlite3",
    )


@pytest.fixture()
def task_backend() -> FakeTaskBackend:
    return FakeTaskBackend()


@pytest.fixture()
def auth() -> FakeAuthBackend:
    return FakeAuthBackend()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def confirmer() -> FakeConfirmer:
    return FakeConfirmer()


@pytest_asyncio.fixture()
async def session(auth: FakeAuthBackend) -> SessionProvider:
    """Session provider already signed in as ann@example.com."""
    provider = SessionProvider(auth)
    await provider.start()
    await provider.sign_in("ann@example.com", "secret1")
    return provider


@pytest.fixture()
def controller(
    task_backend: FakeTaskBackend,
    session: SessionProvider,
    notifier: FakeNotifier,
    confirmer: FakeConfirmer,
) -> TaskListController:
    return TaskListController(task_backend, session, notifier, confirmer)


@pytest.fixture()
def app_state(settings: SimpleNamespace, tmp_path: Path) -> AppState:
    """AppState wired with the real local SQLite backend and fake terminal ports."""
    return create_initial_state(
        settings=settings,
        notifier=FakeNotifier(),
        confirmer=FakeConfirmer(),
    )
