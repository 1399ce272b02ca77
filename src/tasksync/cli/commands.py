# src/tasksync/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..tasks.task_api import format_task_list, resolve_task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Quit.")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    auth_state = state.auth.state.value
    email = state.auth.email.value or "-"
    feed = "LIVE" if state.task_store.is_loaded else "OFF"
    return (
        "Status:\n"
        f"  Backend: {state.backend_name}\n"
        f"  Auth: {auth_state.status.value}"
        f"{' (' + auth_state.message + ')' if auth_state.message else ''}\n"
        f"  User: {email}\n"
        f"  Task feed: {feed} ({len(state.task_store.tasks.value)} task(s))"
    )


def _credentials(args: list[str]) -> tuple[str, str]:
    email = args[0] if len(args) > 0 else ""
    password = args[1] if len(args) > 1 else ""
    return email, password


def cmd_login(state: AppState, args: list[str]) -> str:
    """/login <email> <password>"""
    email, password = _credentials(args)
    handle = state.auth.login(email, password)
    if handle is None:
        return state.auth.state.value.message
    return f"Signing in as {email}..."


def cmd_signup(state: AppState, args: list[str]) -> str:
    """/signup <email> <password>"""
    email, password = _credentials(args)
    handle = state.auth.signup(email, password)
    if handle is None:
        return state.auth.state.value.message
    return f"Creating account {email}..."


def cmd_logout(state: AppState, args: list[str]) -> str:
    if not state.auth.state.value.is_authenticated:
        return "Not signed in."
    state.auth.signout()
    return "Signed out."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    if not state.auth.state.value.is_authenticated:
        return "Sign in first: /login <email> <password>."
    return format_task_list(state.task_store.tasks.value)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title...>"""
    title = " ".join(args).strip()
    if not title:
        return "Task title must not be empty. Usage: /add <title>."
    if state.task_store.add(title) is None:
        return "Sign in first: /login <email> <password>."
    return f"Adding: {title}"


def cmd_toggle(state: AppState, args: list[str]) -> str:
    """/toggle <n|id>"""
    if not args:
        return "Usage: /toggle <number|id>."
    task = resolve_task(state.task_store.tasks.value, args[0])
    if task is None:
        return f"No task {args[0]!r}. Use /tasks to list them."
    if state.task_store.toggle(task) is None:
        return "Sign in first: /login <email> <password>."
    return f"Marking {'not done' if task.done else 'done'}: {task.title or task.id}"


def cmd_delete(state: AppState, args: list[str]) -> str:
    """/delete <n|id>"""
    if not args:
        return "Usage: /delete <number|id>."
    task = resolve_task(state.task_store.tasks.value, args[0])
    if task is None:
        return f"No task {args[0]!r}. Use /tasks to list them."
    if state.task_store.delete(task) is None:
        return "Sign in first: /login <email> <password>."
    return f"Deleting: {task.title or task.id}"


def cmd_reload(state: AppState, args: list[str]) -> str:
    if not state.task_store.load():
        return "Sign in first: /login <email> <password>."
    return "Task feed restarted."


def cmd_errors(state: AppState, args: list[str]) -> str:
    """
    /errors        -> show the last task error
    /errors clear  -> forget it
    """
    if args and args[0].lower() == "clear":
        state.task_store.clear_error()
        return "Task error cleared."

    err = state.task_store.error.value
    if err is None:
        return "No task errors."
    return f"Last task error: {err.describe()} [{err.code}]"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend, sign-in and feed status.", aliases=["whoami"])
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("signup", cmd_signup, help_text="Create an account: /signup <email> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out.", aliases=["signout"])
registry.register("tasks", cmd_tasks, help_text="List your tasks.", aliases=["ls", "list"])
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register("toggle", cmd_toggle, help_text="Toggle done: /toggle <number|id>.", aliases=["done"])
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <number|id>.", aliases=["rm"])
registry.register("reload", cmd_reload, help_text="Restart the live task feed.")
registry.register("errors", cmd_errors, help_text="Show or clear the last task error: /errors [clear].")
