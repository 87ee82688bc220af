# tests/test_session.py

from __future__ import annotations

import pytest

from todo_companion.core.errors import AuthError, RemoteError
from todo_companion.core.ports import SIGNED_IN, SIGNED_OUT
from todo_companion.core.session import SessionProvider, SessionState, User, root_view

from .fakes import FakeAuthBackend


def test_root_view_selection() -> None:
    assert root_view(SessionState()) == "loading"
    assert root_view(SessionState(user=None, loading=False)) == "auth"
    assert root_view(SessionState(user=User(id="u1"), loading=False)) == "tasks"


@pytest.mark.asyncio
async def test_start_resolves_loading_and_existing_user() -> None:
    auth = FakeAuthBackend(current=User(id="u1", email="u1@example.com"))
    provider = SessionProvider(auth)
    assert provider.loading is True

    state = await provider.start()

    assert state == SessionState(user=User(id="u1", email="u1@example.com"), loading=False)
    assert auth.listener_count == 1


@pytest.mark.asyncio
async def test_start_twice_subscribes_once() -> None:
    auth = FakeAuthBackend()
    provider = SessionProvider(auth)
    await provider.start()
    await provider.start()
    assert auth.listener_count == 1


@pytest.mark.asyncio
async def test_sign_in_and_out_emit_snapshots() -> None:
    provider = SessionProvider(FakeAuthBackend())
    await provider.start()
    seen: list[SessionState] = []
    provider.subscribe(seen.append)

    user = await provider.sign_in(" ann@example.com ", "secret1")
    assert provider.user == user
    await provider.sign_out()

    assert [s.user for s in seen] == [user, None]
    assert provider.state == SessionState(user=None, loading=False)


@pytest.mark.asyncio
async def test_bad_credentials_propagate_to_caller() -> None:
    provider = SessionProvider(FakeAuthBackend())
    await provider.start()

    with pytest.raises(AuthError, match="Invalid login credentials"):
        await provider.sign_in("ann@example.com", "wrong")

    assert provider.user is None


@pytest.mark.asyncio
async def test_sign_out_clears_user_even_when_backend_fails() -> None:
    auth = FakeAuthBackend()
    provider = SessionProvider(auth)
    await provider.start()
    await provider.sign_in("ann@example.com", "secret1")
    auth.sign_out_error = RemoteError("network down")

    with pytest.raises(RemoteError):
        await provider.sign_out()

    assert provider.user is None


@pytest.mark.asyncio
async def test_backend_notifications_drive_state_until_disposed() -> None:
    auth = FakeAuthBackend()
    provider = SessionProvider(auth)
    await provider.start()

    auth.push(SIGNED_IN, User(id="u9"))
    assert provider.user == User(id="u9")

    auth.push(SIGNED_OUT, User(id="u9"))
    assert provider.user is None

    provider.dispose()
    assert auth.listener_count == 0


@pytest.mark.asyncio
async def test_sign_up_signs_in_new_account() -> None:
    provider = SessionProvider(FakeAuthBackend())
    await provider.start()

    user = await provider.sign_up("bob@example.com", "hunter22")

    assert provider.user == user
    assert root_view(provider.state) == "tasks"
