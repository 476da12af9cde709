# src/tasksync/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console view on one
asyncio event loop until /exit, EOF or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import close_state, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import level_from_name, setup_logging

logger = logging.getLogger(__name__)


async def _run(state: AppState) -> None:
    try:
        await run_console_loop(state)
    finally:
        await close_state(state)


def main() -> None:
    settings = get_settings()
    log_file = setup_logging(
        log_dir=settings.log_dir,
        console_level=level_from_name(settings.log_level),
    )
    logger.info("Starting %s (log file: %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
