# src/todo_companion/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the hosted backend when configured, the local SQLite backend otherwise,
- wires session provider and task controller into AppState.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any

from ..backend.local_backend import LocalBackend
from ..backend.rest_client import RestBackend
from ..config import get_settings
from ..core.ports import Confirmer, Notifier
from ..core.session import SessionProvider
from ..core.state import AppState
from ..tasks.task_controller import TaskListController

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.local_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_backend(settings) -> Any:
    if getattr(settings, "hosted_backend_configured", False):
        try:
            backend = RestBackend.from_settings(settings)
            logger.info("Using hosted backend at %s", settings.backend_url)
            return backend
        except Exception:
            logger.exception("Hosted backend could not be configured; falling back to local.")

    # Fallback for demos / local runs without external services.
    logger.info("Using local backend db=%s", settings.local_db_path)
    return LocalBackend(settings.local_db_path)


def create_initial_state(
        *,
        settings=None,
        notifier: Notifier,
        confirmer: Confirmer,
        backend: Any = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and backend injectable makes the app easier to test and avoids
    hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if backend is None:
        _ensure_local_dirs(settings)
        backend = create_backend(settings)

    session = SessionProvider(backend)
    controller = TaskListController(backend, session, notifier, confirmer)

    return AppState(
        settings=settings,
        backend=backend,
        session=session,
        controller=controller,
        notifier=notifier,
        confirmer=confirmer,
    )


async def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    with contextlib.suppress(Exception):
        state.controller.dispose()
    with contextlib.suppress(Exception):
        state.session.dispose()

    try:
        close = getattr(state.backend, "aclose", None)
        if close is not None:
            await close()
    except Exception:
        logger.debug("Backend close failed.", exc_info=True)
