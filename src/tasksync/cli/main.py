# src/tasksync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState inside the event loop, then runs the
console connector until /exit (or waits for Ctrl+C when the console is disabled).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        await asyncio.wait_for(state.task_store.wait_pending(), timeout=10.0)
    except Exception:
        logger.exception("Pending task writes did not finish cleanly.")

    for cleanup in state.cleanups:
        try:
            cleanup()
        except Exception:
            logger.debug("Cleanup failed.", exc_info=True)

    state.task_store.close()


async def run(settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled. Nothing else to run; press Ctrl+C to stop.")
            await asyncio.Event().wait()
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
