# src/todo_companion/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, resolves the session (optionally signing
in from env), then runs the console connector until /exit.
"""

from __future__ import annotations

import asyncio
import logging

from ..config import get_settings
from ..connectors.console_connector import ConsoleConfirmer, ConsoleNotifier, run_console_loop
from ..core.errors import AuthError
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state, shutdown

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    notifier = ConsoleNotifier()
    state = create_initial_state(
        settings=settings,
        notifier=notifier,
        confirmer=ConsoleConfirmer(),
    )

    try:
        await state.session.start()

        email = getattr(settings, "auto_sign_in_email", "")
        password = getattr(settings, "auto_sign_in_password", "")
        if email and password and state.session.user is None:
            try:
                await state.session.sign_in(email, password)
            except AuthError as e:
                notifier.alert("Error", e.message)

        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run.")
    finally:
        await shutdown(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    file_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, file_level=file_level)

    logger.info("Starting %s...", settings.app_name)
    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
