# src/todo_companion/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Without a hosted backend configured the app runs against a local SQLite backend.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "TODO"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connectors ----
    console_enabled: bool

    # ---- Hosted backend ----
    backend_url: str
    backend_key: Optional[str]
    tasks_table: str
    http_timeout_seconds: float

    # ---- Optional auto sign-in ----
    auto_sign_in_email: str
    auto_sign_in_password: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    local_db_path: Path

    @property
    def hosted_backend_configured(self) -> bool:
        return bool(self.backend_url.strip()) and bool((self.backend_key or "").strip())

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "My Tasks") or "My Tasks"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        # Accept the SUPABASE_* names as well, that is what most projects already have in .env.
        backend_url = (_first_env(_k("BACKEND_URL"), "SUPABASE_URL", default="") or "").strip().rstrip("/")
        backend_key = _first_env(_k("BACKEND_KEY"), "SUPABASE_ANON_KEY", "SUPABASE_KEY", default=None)
        tasks_table = _env(_k("TASKS_TABLE"), "tasks").strip() or "tasks"
        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 15.0)

        auto_sign_in_email = _env(_k("EMAIL"), "").strip()
        auto_sign_in_password = _env(_k("PASSWORD"), "")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo"))
        local_db_path = _env_path(_k("LOCAL_DB_PATH"), data_dir / "todo.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            backend_url=backend_url,
            backend_key=backend_key,
            tasks_table=tasks_table,
            http_timeout_seconds=http_timeout_seconds,
            auto_sign_in_email=auto_sign_in_email,
            auto_sign_in_password=auto_sign_in_password,
            data_dir=data_dir,
            local_db_path=local_db_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
