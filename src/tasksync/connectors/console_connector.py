# src/tasksync/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..auth.session import AuthState, AuthStatus
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_api import format_task_list
from ..tasks.task_models import StoreError, Task

logger = logging.getLogger(__name__)

PROMPT = ">>> "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _watch_state(state: AppState) -> list:
    """
    Print observable changes as they arrive (the console's "UI").
    Returns the unsubscribe callables.
    """

    def on_auth(auth_state: AuthState) -> None:
        if auth_state.status is AuthStatus.AUTHENTICATED:
            _print_ts(f"[AUTH] Signed in as {state.auth.email.value or '?'}.")
        elif auth_state.status is AuthStatus.ERROR:
            _print_ts(f"[AUTH] {auth_state.message}")

    def on_tasks(tasks: tuple[Task, ...]) -> None:
        if state.auth.state.value.is_authenticated:
            _print_ts("[TASKS] " + format_task_list(tasks))

    def on_error(err: StoreError | None) -> None:
        if err is not None:
            _print_ts(f"[ERROR] {err.describe()} (use /errors clear to dismiss)")

    return [
        state.auth.state.subscribe(on_auth),
        state.task_store.tasks.subscribe(on_tasks),
        state.task_store.error.subscribe(on_error),
    ]


async def run_console_loop(state: AppState) -> None:
    """
    Async REPL: input() runs in a worker thread so feed pushes and writes
    keep flowing on the event loop while we wait for the next line.
    """
    logger.info("Console connector started (backend=%s).", state.backend_name)
    _print_ts("[CONSOLE] Use /signup or /login, then /add, /tasks, /toggle, /delete. /help lists all. /exit quits.\n")

    unsubscribers = _watch_state(state)

    def emit(text: str) -> None:
        _print_ts(text)

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, PROMPT)).strip()
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

            try:
                response = command_registry.handle(state, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is None:
                response = "Commands start with '/'. Use /help to list them."

            if response:
                _print_ts(response)

            # Let freshly scheduled writes/sign-ins start before the next prompt.
            await asyncio.sleep(0)
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()

    logger.info("Console connector finished.")
