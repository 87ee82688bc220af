# src/todo_companion/cli/commands.py

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, cast

from ..core.errors import AuthError, RemoteError
from ..core.session import root_view
from ..core.state import AppState
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandResult = str | None | Awaitable[str | None]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

Screen = Literal["auth", "tasks", "any"]

logger = logging.getLogger(__name__)

# "/name rest of line": one separator after the name is dropped, the rest kept verbatim.
_COMMAND_LINE = re.compile(r"\s*(\S+)\s?(.*)", re.DOTALL)


@dataclass(slots=True, frozen=True)
class _Command:
    handler: CommandHandler
    help_text: str
    screen: Screen
    raw_args: bool = False


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._commands: dict[str, _Command] = {}
        self._help: dict[str, _Command] = {}

    def register(
            self,
            name: str,
            handler: CommandHandler,
            help_text: str,
            *,
            screen: Screen = "any",
            aliases: list[str] | None = None,
            raw_args: bool = False,
    ) -> None:
        """
        `raw_args=True` hands the handler the rest of the line as one argument,
        with its spacing intact (for free text such as task titles).
        """
        aliases = aliases or []
        cmd = _Command(handler=handler, help_text=help_text, screen=screen, raw_args=raw_args)
        key = name.lower()
        self._commands[key] = cmd
        self._help[key] = cmd
        for alias in aliases:
            self._commands[alias.lower()] = cmd

    async def handle(
            self,
            state: AppState,
            line: str,
            emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command (or nothing to say).
        """
        if not line.startswith("/"):
            return None

        m = _COMMAND_LINE.match(line[1:])
        if m is None:
            return "Empty command. Use /help to list available commands."

        name = m.group(1).lower()
        rest = m.group(2)

        cmd = self._commands.get(name)
        if not cmd:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if cmd.raw_args:
            args = [rest] if rest.strip() else []
        else:
            args = rest.split()

        screen = root_view(state.session.state)
        if cmd.screen != "any" and cmd.screen != screen:
            where = "signed in" if cmd.screen == "tasks" else "signed out"
            return f"/{name} is only available when {where}."

        try:
            nparams = len(inspect.signature(cmd.handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, cmd.handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, cmd.handler)(state, args)

        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self, screen: str | None = None) -> str:
        lines = ["Available commands:"]
        for name, cmd in self._help.items():
            if screen is not None and cmd.screen not in ("any", screen):
                continue
            lines.append(f"  /{name} - {cmd.help_text}")
        lines.append("  /exit - Quit.")
        return "\n".join(lines)


registry = CommandRegistry()


def _task_at(state: AppState, args: list[str]) -> Task | str:
    """Resolve a 1-based row number (as shown on screen) into a task."""
    if not args:
        return "Which task? Give its number from the list, e.g. /edit 2."
    try:
        n = int(args[0])
    except ValueError:
        return f"Not a task number: {args[0]}"
    tasks = state.controller.state.tasks
    if n < 1 or n > len(tasks):
        return f"No task #{n} (the list has {len(tasks)})."
    return tasks[n - 1]


# ---- any screen ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help(root_view(state.session.state))


def cmd_status(state: AppState, args: list[str]) -> str:
    user = state.session.user
    kind = "hosted" if getattr(state.settings, "hosted_backend_configured", False) else "local"
    return (
        "Status:\n"
        f"  Backend: {kind}\n"
        f"  User: {user.email or user.id if user else '(signed out)'}\n"
        f"  Tasks loaded: {len(state.controller.state.tasks)}"
    )


# ---- auth screen ----


async def _auth(state: AppState, args: list[str], mode: str) -> str | None:
    if len(args) < 2:
        return f"Usage: /{mode} <email> <password>"
    email, password = args[0], " ".join(args[1:])
    try:
        if mode == "signup":
            await state.session.sign_up(email, password)
        else:
            await state.session.sign_in(email, password)
    except AuthError as e:
        state.notifier.alert("Error", e.message)
    return None


async def cmd_signin(state: AppState, args: list[str]) -> str | None:
    return await _auth(state, args, "signin")


async def cmd_signup(state: AppState, args: list[str]) -> str | None:
    return await _auth(state, args, "signup")


# ---- task screen ----


async def cmd_add(state: AppState, args: list[str]) -> str | None:
    """
    /add <title>  -> put <title> into the input box and add it
    /add          -> add whatever is in the input box
    """
    if args:
        state.controller.set_input(args[0])
    await state.controller.add_task()
    return None


def cmd_edit(state: AppState, args: list[str]) -> str | None:
    task = _task_at(state, args)
    if isinstance(task, str):
        return task
    state.controller.start_editing(task)
    return None


async def cmd_save(state: AppState, args: list[str]) -> str | None:
    """
    /save          -> save the edit buffer
    /save <title>  -> replace the edit buffer with <title>, then save
    """
    ctl = state.controller
    task_id = ctl.state.editing_task_id
    if task_id is None:
        return "Nothing is being edited. Use /edit <n> first."
    if args:
        ctl.set_edit_text(args[0])
    await ctl.update_task(task_id)
    return None


def cmd_cancel(state: AppState, args: list[str]) -> str | None:
    if state.controller.state.editing_task_id is None:
        return "Nothing is being edited."
    state.controller.cancel_editing()
    return None


async def cmd_delete(state: AppState, args: list[str]) -> str | None:
    task = _task_at(state, args)
    if isinstance(task, str):
        return task
    await state.controller.delete_task(task.id)
    return None


async def cmd_refresh(state: AppState, args: list[str]) -> str | None:
    await state.controller.refresh()
    return None


async def cmd_signout(
        state: AppState,
        args: list[str],
        emit: CommandEmitter | None = None,
) -> str | None:
    try:
        await state.session.sign_out()
    except RemoteError as e:
        # The local session is gone either way.
        logger.info("Sign-out failed on the backend: %s", e.message)
        if emit is not None:
            emit(f"Signed out locally; the server said: {e.message}")
    return None


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend, user and task count.")
registry.register(
    "signin", cmd_signin, help_text="Sign in: /signin <email> <password>.", screen="auth", aliases=["login"]
)
registry.register(
    "signup", cmd_signup, help_text="Create an account: /signup <email> <password>.", screen="auth"
)
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <title> (or type text, then /add).",
    screen="tasks",
    raw_args=True,
)
registry.register("edit", cmd_edit, help_text="Edit task #n: /edit <n>.", screen="tasks")
registry.register(
    "save",
    cmd_save,
    help_text="Save the edited title: /save [new title].",
    screen="tasks",
    raw_args=True,
)
registry.register("cancel", cmd_cancel, help_text="Leave edit mode without saving.", screen="tasks")
registry.register(
    "delete", cmd_delete, help_text="Delete task #n (asks first): /delete <n>.", screen="tasks", aliases=["rm"]
)
registry.register("refresh", cmd_refresh, help_text="Reload tasks from the server.", screen="tasks")
registry.register(
    "signout", cmd_signout, help_text="Sign out.", screen="tasks", aliases=["logout"]
)
