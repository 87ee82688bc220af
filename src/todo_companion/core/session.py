# src/todo_companion/core/session.py

"""
Session provider.

Holds the current authenticated identity and the loading flag, and exposes
sign-in / sign-up / sign-out to the rest of the app. It is constructed
explicitly and injected; downstream views subscribe to it and treat loss of
the user as a reset of any per-user data.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from .observable import Observable
from .ports import SIGNED_OUT, AuthBackend

logger = logging.getLogger(__name__)

RootView = Literal["loading", "auth", "tasks"]


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str = ""


@dataclass(frozen=True, slots=True)
class SessionState:
    user: User | None = None
    loading: bool = True


def root_view(state: SessionState) -> RootView:
    """Which top-level view mounts for this session state."""
    if state.loading:
        return "loading"
    return "tasks" if state.user is not None else "auth"


class SessionProvider:
    def __init__(self, auth: AuthBackend) -> None:
        self._auth = auth
        self._state = Observable(SessionState())
        self._unsubscribe_auth: Callable[[], None] | None = None

    @property
    def state(self) -> SessionState:
        return self._state.value

    @property
    def user(self) -> User | None:
        return self._state.value.user

    @property
    def loading(self) -> bool:
        return self._state.value.loading

    def subscribe(
            self,
            listener: Callable[[SessionState], None],
            *,
            emit_current: bool = False,
    ) -> Callable[[], None]:
        return self._state.subscribe(listener, emit_current=emit_current)

    async def start(self) -> SessionState:
        """
        Subscribe to auth notifications and resolve the initial session.

        Safe to call twice; the second call only re-reads the current user.
        """
        if self._unsubscribe_auth is None:
            self._unsubscribe_auth = self._auth.on_auth_state_change(self._on_auth_event)

        user: User | None = None
        try:
            user = await self._auth.current_user()
        except Exception:
            # No session is a valid initial state; the auth screen takes it from here.
            logger.exception("Failed to resolve the initial session.")

        self._set(user=user, loading=False)
        logger.info("Session resolved user=%s", user.id if user else None)
        return self.state

    async def sign_in(self, email: str, password: str) -> User:
        user = await self._auth.sign_in(email.strip(), password)
        self._set(user=user, loading=False)
        logger.info("Signed in user=%s", user.id)
        return user

    async def sign_up(self, email: str, password: str) -> User:
        user = await self._auth.sign_up(email.strip(), password)
        self._set(user=user, loading=False)
        logger.info("Signed up user=%s", user.id)
        return user

    async def sign_out(self) -> None:
        """
        Clear the session.

        The local user is dropped even if the backend call fails; the error
        is still raised so the caller can report it.
        """
        try:
            await self._auth.sign_out()
        finally:
            prev = self.user
            self._set(user=None, loading=False)
            logger.info("Signed out user=%s", prev.id if prev else None)

    def dispose(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None

    # ---- internals ----

    def _on_auth_event(self, event: str, user: User | None) -> None:
        logger.debug("Auth event %s user=%s", event, user.id if user else None)
        if event == SIGNED_OUT:
            user = None
        self._set(user=user, loading=False)

    def _set(self, *, user: User | None, loading: bool) -> None:
        new = SessionState(user=user, loading=loading)
        if new == self._state.value:
            return
        self._state.emit(new)
