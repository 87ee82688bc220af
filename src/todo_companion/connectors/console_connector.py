# src/todo_companion/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.session import SessionState, root_view
from ..core.state import AppState
from ..tasks.task_models import TaskListState

logger = logging.getLogger(__name__)

EMPTY_LIST_TEXT = "No tasks yet. Add one above!"
RULE = "-" * 48


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


async def _ainput(prompt: str) -> str:
    # input() blocks; keep the event loop free for in-flight requests.
    return await asyncio.to_thread(input, prompt)


def format_task_date(dt: datetime) -> str:
    """Creation date as a local calendar date."""
    return dt.astimezone().strftime("%Y-%m-%d")


def _indent_block(text: str, prefix: str) -> list[str]:
    lines = text.splitlines() or [""]
    pad = " " * len(prefix)
    return [prefix + lines[0], *(pad + ln for ln in lines[1:])]


# ---- pure renderers ----


def render_auth_screen(app_name: str = "My Tasks") -> str:
    return "\n".join(
        [
            RULE,
            f" {app_name}",
            RULE,
            " Sign in to see your tasks.",
            "   /signin <email> <password>",
            "   /signup <email> <password>",
            RULE,
        ]
    )


def render_task_screen(
        session: SessionState,
        state: TaskListState,
        *,
        app_name: str = "My Tasks",
) -> str:
    user = session.user
    who = (user.email or user.id) if user else ""
    lines = [RULE, f" {app_name}   [{who}]   /signout", RULE]

    if state.input_text:
        lines.extend(_indent_block(state.input_text, " New task: "))
        lines.append("   /add to save it")
    else:
        lines.append(" New task: /add <title>")
    lines.append(RULE)

    if state.show_loading_indicator:
        lines.append(" Loading tasks...")
        lines.append(RULE)
        return "\n".join(lines)

    if state.refreshing:
        lines.append(" Refreshing...")

    if not state.tasks:
        lines.append(f" {EMPTY_LIST_TEXT}")

    for i, task in enumerate(state.tasks, start=1):
        if state.is_editing(task.id):
            lines.extend(_indent_block(state.edit_text, f" {i:>3}. [editing] "))
            lines.append("      /save [new title] to save, /cancel to cancel")
            continue
        title_lines = task.task_title.splitlines() or [""]
        lines.append(f" {i:>3}. {title_lines[0]}")
        lines.extend(f"      {ln}" for ln in title_lines[1:])
        lines.append(f"      {format_task_date(task.created_at)}   /edit {i}   /delete {i}")

    lines.append(RULE)
    return "\n".join(lines)


# ---- ports on a terminal ----


class ConsoleNotifier:
    """Notifier port: alerts are printed immediately, before the next prompt."""

    def alert(self, title: str, message: str) -> None:
        _print_ts(f"[{title}] {message}")


class ConsoleConfirmer:
    """Confirmer port: a y/N prompt; anything but an explicit yes cancels."""

    async def confirm(
            self,
            title: str,
            message: str,
            *,
            confirm_label: str = "OK",
            cancel_label: str = "Cancel",
            destructive: bool = False,
    ) -> bool:
        warning = " This cannot be undone." if destructive else ""
        prompt = f"[{title}] {message}{warning} ({confirm_label} = y, {cancel_label} = N): "
        try:
            answer = await _ainput(prompt)
        except (EOFError, KeyboardInterrupt):
            print()
            return False
        return answer.strip().lower() in {"y", "yes", confirm_label.lower()}


# ---- view ----


class ConsoleView:
    """
    Subscribes to session and controller snapshots and redraws the active screen.

    Snapshots arrive on every transition; redraws are coalesced to one per user command.
    """

    def __init__(self, state: AppState) -> None:
        self._state = state
        self._app_name = str(getattr(state.settings, "app_name", "My Tasks"))
        self._dirty = True
        self._unsubscribers = [
            state.session.subscribe(self._on_snapshot),
            state.controller.subscribe(self._on_snapshot),
        ]

    def _on_snapshot(self, _snapshot: object) -> None:
        self._dirty = True

    def render(self) -> str | None:
        view = root_view(self._state.session.state)
        if view == "loading":
            return None
        if view == "auth":
            return render_auth_screen(self._app_name)
        return render_task_screen(
            self._state.session.state,
            self._state.controller.state,
            app_name=self._app_name,
        )

    def flush(self, *, force: bool = False) -> None:
        if not (self._dirty or force):
            return
        self._dirty = False
        text = self.render()
        if text is not None:
            print(text, flush=True)

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    view = ConsoleView(state)
    session = state.session
    controller = state.controller

    if session.loading:
        await session.start()

    mounted_for: str | None = None

    def emit(text: str) -> None:
        _print_ts(text)

    try:
        while True:
            # Mount the task screen (initial fetch) whenever a user becomes signed in.
            user = session.user
            current = user.id if user else None
            if current is not None and current != mounted_for:
                mounted_for = current
                view.flush(force=True)
                await controller.mount()
            elif current is None:
                mounted_for = None

            view.flush()

            try:
                user_input = (await _ainput(">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                if root_view(session.state) == "tasks":
                    # Plain text is typing into the new-task box.
                    controller.set_input(user_input)
                else:
                    _print_ts("Sign in first: /signin <email> <password>")
                continue

            try:
                reply = await command_registry.handle(state, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply is not None:
                _print_ts(reply)
    finally:
        view.close()
        logger.info("Console connector finished.")
