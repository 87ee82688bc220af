# src/todo_companion/backend/rest_client.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from ..core.errors import AuthError, RemoteError
from ..core.ports import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, AuthListener, TaskRow
from ..core.session import User

logger = logging.getLogger(__name__)

# PostgREST: ask for a single JSON object instead of an array.
SINGLE_OBJECT = "application/vnd.pgrst.object+json"

# Refresh the access token this many seconds before it expires.
REFRESH_MARGIN_SECONDS = 60.0


def _make_timeout(seconds: float) -> httpx.Timeout:
    seconds = max(1.0, float(seconds))
    return httpx.Timeout(seconds, connect=min(seconds, 5.0))


def backend_error_message(resp: httpx.Response) -> str:
    """
    Pull the human-readable message out of an error response.

    PostgREST returns {"message", "code", "details", "hint"}; the auth service
    uses "msg", "error_description" or "error" depending on the endpoint.
    """
    try:
        data = resp.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        for key in ("message", "msg", "error_description", "error"):
            val = data.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()

    text = (resp.text or "").strip()
    if text and len(text) <= 200:
        return text
    return resp.reason_phrase or f"HTTP {resp.status_code}"


def _error_code(resp: httpx.Response) -> str | None:
    with contextlib.suppress(ValueError):
        data = resp.json()
        if isinstance(data, dict):
            code = data.get("code") or data.get("error_code")
            return str(code) if code is not None else None
    return None


class RestBackend:
    """
    Hosted backend adapter (Supabase-compatible REST + auth API) over httpx.

    - Auth: password grant / signup / logout under /auth/v1
    - Data: PostgREST under /rest/v1/<table>

    The session (access + refresh token) is kept in memory only. The access
    token is renewed with the refresh_token grant shortly before it expires,
    or once after a 401; if renewal fails the session is dropped and
    SIGNED_OUT is sent. Transport failures
    (httpx.HTTPError) propagate unchanged; HTTP error responses become
    RemoteError / AuthError carrying the backend's message.
    """

    def __init__(
            self,
            base_url: str,
            api_key: str,
            *,
            table: str = "tasks",
            timeout_seconds: float = 15.0,
            transport: httpx.AsyncBaseTransport | None = None,
            clock: Callable[[], float] = time.time,
    ) -> None:
        if not base_url or not base_url.strip():
            raise RuntimeError("Backend URL is not set. Set TODO_BACKEND_URL in your .env.")
        if not api_key or not api_key.strip():
            raise RuntimeError("Backend API key is not set. Set TODO_BACKEND_KEY in your .env.")

        self._api_key = api_key.strip()
        self._table = table
        self._client = httpx.AsyncClient(
            base_url=base_url.strip().rstrip("/"),
            timeout=_make_timeout(timeout_seconds),
            headers={"apikey": self._api_key},
            transport=transport,
        )
        self._clock = clock
        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._expires_at: float | None = None
        self._refresh_lock = asyncio.Lock()
        self._user: User | None = None
        self._listeners: list[AuthListener] = []

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> RestBackend:
        return cls(
            str(getattr(settings, "backend_url", "") or ""),
            str(getattr(settings, "backend_key", "") or ""),
            table=str(getattr(settings, "tasks_table", "tasks") or "tasks"),
            timeout_seconds=float(getattr(settings, "http_timeout_seconds", 15.0)),
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---- low-level helpers ----

    def _auth_headers(self) -> dict[str, str]:
        # Without a user token PostgREST runs as the anon role.
        token = self._access_token or self._api_key
        return {"Authorization": f"Bearer {token}"}

    async def _request(
            self,
            method: str,
            url: str,
            *,
            error_cls: type[RemoteError] = RemoteError,
            headers: dict[str, str] | None = None,
            **kwargs: Any,
    ) -> httpx.Response:
        merged = {**self._auth_headers(), **(headers or {})}
        resp = await self._client.request(method, url, headers=merged, **kwargs)
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        if resp.is_error:
            msg = backend_error_message(resp)
            logger.info("Backend error %s %s: %s (%s)", method, url, msg, resp.status_code)
            raise error_cls(msg, status=resp.status_code, code=_error_code(resp))
        return resp

    async def _data_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Data call with the session renewed when it is about to expire, or once after a 401."""
        await self._ensure_fresh_session()
        token = self._access_token
        try:
            return await self._request(method, url, **kwargs)
        except RemoteError as e:
            if e.status != 401 or self._refresh_token is None:
                raise
            logger.info("Access token rejected; refreshing session.")
        await self._refresh_session(token)
        return await self._request(method, url, **kwargs)

    @staticmethod
    def _user_from_payload(data: Any) -> User:
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        if not isinstance(data, dict) or not data.get("id"):
            raise AuthError("Auth response did not contain a user.")
        return User(id=str(data["id"]), email=str(data.get("email") or ""))

    # ---- AuthBackend ----

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, user: User | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, user)
            except Exception:
                logger.exception("Auth listener failed event=%s", event)

    def _set_session(self, data: Any, *, event: str = SIGNED_IN) -> User:
        user = self._user_from_payload(data)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            # Signup with email confirmation enabled returns a user but no session.
            raise AuthError("Check your email to confirm the account, then sign in.")
        self._access_token = str(token)
        self._refresh_token = str(data.get("refresh_token") or "") or None
        self._expires_at = self._session_expiry(data)
        self._user = user
        self._notify(event, user)
        return user

    def _session_expiry(self, data: dict[str, Any]) -> float | None:
        expires_at = data.get("expires_at")
        if isinstance(expires_at, (int, float)):
            return float(expires_at)
        expires_in = data.get("expires_in")
        if isinstance(expires_in, (int, float)):
            return self._clock() + float(expires_in)
        return None

    def _clear_session(self) -> None:
        self._access_token = None
        self._refresh_token = None
        self._expires_at = None
        self._user = None
        self._notify(SIGNED_OUT, None)

    async def _ensure_fresh_session(self) -> None:
        if self._access_token is None or self._refresh_token is None or self._expires_at is None:
            return
        if self._clock() >= self._expires_at - REFRESH_MARGIN_SECONDS:
            logger.info("Access token is about to expire; refreshing session.")
            await self._refresh_session(self._access_token)

    async def _refresh_session(self, stale_token: str | None) -> None:
        async with self._refresh_lock:
            if self._access_token != stale_token or self._refresh_token is None:
                # Another call already renewed (or dropped) the session.
                return
            try:
                resp = await self._request(
                    "POST",
                    "/auth/v1/token",
                    params={"grant_type": "refresh_token"},
                    json={"refresh_token": self._refresh_token},
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    error_cls=AuthError,
                )
                self._set_session(resp.json(), event=TOKEN_REFRESHED)
            except AuthError as e:
                logger.warning("Session refresh failed (%s); signing out.", e.message)
                self._clear_session()
                raise
            logger.debug("Session refreshed user=%s", self._user.id if self._user else None)

    async def current_user(self) -> User | None:
        return self._user

    async def sign_in(self, email: str, password: str) -> User:
        resp = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            error_cls=AuthError,
        )
        return self._set_session(resp.json())

    async def sign_up(self, email: str, password: str) -> User:
        resp = await self._request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password},
            error_cls=AuthError,
        )
        return self._set_session(resp.json())

    async def sign_out(self) -> None:
        if self._access_token is None:
            return
        try:
            await self._request("POST", "/auth/v1/logout", error_cls=AuthError)
        finally:
            self._clear_session()

    # ---- TaskBackend ----

    @property
    def _table_url(self) -> str:
        return f"/rest/v1/{self._table}"

    async def select_tasks(self, user_id: str) -> list[TaskRow] | None:
        resp = await self._data_request(
            "GET",
            self._table_url,
            params={
                "select": "*",
                "user_id": f"eq.{user_id}",
                "order": "created_at.desc",
            },
        )
        data = resp.json()
        if data is None:
            return None
        if not isinstance(data, list):
            raise RemoteError("Unexpected response shape for task list.")
        return data

    async def insert_task(self, row: TaskRow) -> TaskRow:
        resp = await self._data_request(
            "POST",
            self._table_url,
            json=[row],
            headers={"Prefer": "return=representation", "Accept": SINGLE_OBJECT},
        )
        data = resp.json()
        if isinstance(data, list) and len(data) == 1:
            data = data[0]
        if not isinstance(data, dict):
            raise RemoteError("JSON object requested, multiple (or no) rows returned")
        return data

    async def update_task(self, task_id: Any, fields: dict[str, Any]) -> None:
        await self._data_request(
            "PATCH",
            self._table_url,
            params={"id": f"eq.{task_id}"},
            json=fields,
            headers={"Prefer": "return=minimal"},
        )

    async def delete_task(self, task_id: Any) -> None:
        await self._data_request(
            "DELETE",
            self._table_url,
            params={"id": f"eq.{task_id}"},
            headers={"Prefer": "return=minimal"},
        )
