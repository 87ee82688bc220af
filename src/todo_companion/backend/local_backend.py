# src/todo_companion/backend/local_backend.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import bcrypt

from ..core.errors import AuthError, RemoteError
from ..core.ports import SIGNED_IN, SIGNED_OUT, AuthListener, TaskRow
from ..core.session import User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes.
    return (password or "").encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash (row written by an older schema).
        return False


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalBackend:
    """
    SQLite stand-in for the hosted backend (auth + tasks table).

    Used in demo mode when no hosted backend is configured, and in tests.
    It behaves like the hosted service where the client can observe it:
    - rows are owned by user_id and a session only sees/mutates its own rows
    - inserts return the stored row (server-assigned id/created_at)
    - failures raise RemoteError / AuthError with a human-readable message

    The schema is created if missing and missing columns are added with
    ALTER TABLE. Each call opens its own connection and runs in a worker
    thread so the event loop never blocks on disk I/O.
    """

    def __init__(self, db_path: str | Path = "todo.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        self._user: User | None = None
        self._listeners: list[AuthListener] = []
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("LocalBackend ready db=%s total_tasks=%s", self._db_path, total)

    async def aclose(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    task_title TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("LocalBackend migration: added column %s", name)

            add_col("task_title", "TEXT NOT NULL DEFAULT ''")
            add_col("user_id", "TEXT NOT NULL DEFAULT ''")
            add_col("created_at", "TEXT NOT NULL DEFAULT ''")

            # Older databases kept a separate salt column; bcrypt hashes embed the salt.
            cur.execute("PRAGMA table_info(users)")
            if "password_salt" in {row["name"] for row in cur.fetchall()}:
                cur.execute("ALTER TABLE users DROP COLUMN password_salt")
                logger.info("LocalBackend migration: dropped column users.password_salt")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_created ON tasks(user_id, created_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_dict(row: sqlite3.Row) -> TaskRow:
        return {
            "id": row["id"],
            "task_title": row["task_title"],
            "user_id": row["user_id"],
            "created_at": row["created_at"],
        }

    def _require_session(self) -> User:
        if self._user is None:
            raise RemoteError("JWT expired or missing: sign in again", status=401)
        return self._user

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

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

    async def current_user(self) -> User | None:
        return self._user

    async def sign_up(self, email: str, password: str) -> User:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise AuthError("Unable to validate email address: invalid format", status=400)
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters.", status=422
            )

        def _insert() -> User:
            user_id = str(uuid.uuid4())
            conn = self._get_conn()
            try:
                try:
                    conn.execute(
                        """
                        INSERT INTO users(id, email, password_hash, created_at)
                        VALUES (?, ?, ?, ?)
                        """,
                        (user_id, email, hash_password(password), _now_iso()),
                    )
                    conn.commit()
                except sqlite3.IntegrityError as e:
                    raise AuthError("User already registered", status=422) from e
            finally:
                conn.close()
            return User(id=user_id, email=email)

        user = await asyncio.to_thread(_insert)
        logger.info("LocalBackend: registered user=%s", user.id)
        self._user = user
        self._notify(SIGNED_IN, user)
        return user

    async def sign_in(self, email: str, password: str) -> User:
        email = (email or "").strip().lower()

        def _check() -> User:
            conn = self._get_conn()
            try:
                row = conn.execute(
                    "SELECT id, email, password_hash FROM users WHERE email = ?",
                    (email,),
                ).fetchone()
            finally:
                conn.close()
            if row is None:
                raise AuthError("Invalid login credentials", status=400)
            if not verify_password(password, row["password_hash"]):
                raise AuthError("Invalid login credentials", status=400)
            return User(id=row["id"], email=row["email"])

        user = await asyncio.to_thread(_check)
        self._user = user
        self._notify(SIGNED_IN, user)
        return user

    async def sign_out(self) -> None:
        if self._user is None:
            return
        self._user = None
        self._notify(SIGNED_OUT, None)

    # ---- TaskBackend ----

    async def select_tasks(self, user_id: str) -> list[TaskRow] | None:
        session_user = self._require_session()
        # Row-level security: a session never sees someone else's rows.
        if user_id != session_user.id:
            return []

        def _select() -> list[TaskRow]:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    """
                    SELECT id, task_title, user_id, created_at
                    FROM tasks
                    WHERE user_id = ?
                    ORDER BY created_at DESC, rowid DESC
                    """,
                    (session_user.id,),
                )
                return [self._row_to_dict(r) for r in cur.fetchall()]
            finally:
                conn.close()

        return await asyncio.to_thread(_select)

    async def insert_task(self, row: TaskRow) -> TaskRow:
        session_user = self._require_session()
        title = str(row.get("task_title") or "")
        owner = str(row.get("user_id") or "")
        if owner != session_user.id:
            raise RemoteError(
                'new row violates row-level security policy for table "tasks"',
                status=403,
                code="42501",
            )
        if not title.strip():
            raise RemoteError(
                'null value in column "task_title" violates not-null constraint',
                status=400,
                code="23502",
            )

        def _insert() -> TaskRow:
            task_id = str(uuid.uuid4())
            created_at = _now_iso()
            conn = self._get_conn()
            try:
                conn.execute(
                    "INSERT INTO tasks(id, task_title, user_id, created_at) VALUES (?, ?, ?, ?)",
                    (task_id, title, owner, created_at),
                )
                conn.commit()
                stored = conn.execute(
                    "SELECT id, task_title, user_id, created_at FROM tasks WHERE id = ?",
                    (task_id,),
                ).fetchone()
            finally:
                conn.close()
            if stored is None:
                raise RemoteError("JSON object requested, multiple (or no) rows returned", status=406)
            return self._row_to_dict(stored)

        out = await asyncio.to_thread(_insert)
        logger.debug("LocalBackend: task inserted id=%s user=%s", out["id"], owner)
        return out

    async def update_task(self, task_id: Any, fields: dict[str, Any]) -> None:
        session_user = self._require_session()
        allowed = {k: v for k, v in fields.items() if k == "task_title"}
        if not allowed:
            return

        def _update() -> int:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "UPDATE tasks SET task_title = ? WHERE id = ? AND user_id = ?",
                    (str(allowed["task_title"]), str(task_id), session_user.id),
                )
                conn.commit()
                return cur.rowcount
            finally:
                conn.close()

        # Like the hosted service: filtering out foreign/missing rows is not an error.
        n = await asyncio.to_thread(_update)
        logger.debug("LocalBackend: update id=%s rows=%s", task_id, n)

    async def delete_task(self, task_id: Any) -> None:
        session_user = self._require_session()

        def _delete() -> int:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "DELETE FROM tasks WHERE id = ? AND user_id = ?",
                    (str(task_id), session_user.id),
                )
                conn.commit()
                return cur.rowcount
            finally:
                conn.close()

        n = await asyncio.to_thread(_delete)
        logger.debug("LocalBackend: delete id=%s rows=%s", task_id, n)
