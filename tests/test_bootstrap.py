# tests/test_bootstrap.py

from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

import pytest

from todo_companion.backend.local_backend import LocalBackend
from todo_companion.backend.rest_client import RestBackend
from todo_companion.cli.bootstrap import create_backend, create_initial_state, shutdown
from todo_companion.config import Settings
from todo_companion.core.observable import Observable

from .fakes import FakeConfirmer, FakeNotifier


def test_local_backend_when_hosted_is_not_configured(settings: SimpleNamespace) -> None:
    assert isinstance(create_backend(settings), LocalBackend)
    assert settings.local_db_path.exists()


@pytest.mark.asyncio
async def test_hosted_backend_when_url_and_key_are_set(settings: SimpleNamespace) -> None:
    settings.backend_url = "https://demo.backend.test"
    settings.backend_key = "anon-key"
    settings.hosted_backend_configured = True

    state = create_initial_state(settings=settings, notifier=FakeNotifier(), confirmer=FakeConfirmer())

    assert isinstance(state.backend, RestBackend)
    assert state.auth is state.backend and state.tasks is state.backend
    await shutdown(state)


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("TODO_BACKEND_URL", "https://x.backend.test/")
    monkeypatch.setenv("TODO_BACKEND_KEY", "k")
    monkeypatch.setenv("TODO_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TODO_HTTP_TIMEOUT_SECONDS", "not-a-number")

    s = Settings.from_env()

    assert s.backend_url == "https://x.backend.test"
    assert s.hosted_backend_configured
    assert s.http_timeout_seconds == 15.0
    assert s.local_db_path == tmp_path / "todo.sqlite3"
    assert not replace(s, backend_key=None).hosted_backend_configured


def test_observable_isolates_failing_listeners() -> None:
    obs = Observable(0)
    seen: list[int] = []

    def broken(_value: int) -> None:
        raise RuntimeError("listener bug")

    obs.subscribe(broken)
    unsubscribe = obs.subscribe(seen.append, emit_current=True)
    obs.emit(1)
    unsubscribe()
    obs.emit(2)

    assert seen == [0, 1]
    assert obs.value == 2
    assert len(obs) == 1
