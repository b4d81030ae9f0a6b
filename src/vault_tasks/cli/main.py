# src/vault_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs one event loop with:
- the vault change watcher as a background task,
- the console REPL in the foreground.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..documents.watcher import run_change_watcher
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _run(state: AppState) -> None:
    service = state.service
    await service.initialize()
    for warning in service.warnings():
        print(f"[WARN] {warning}")

    service.warm_up()
    watcher = asyncio.create_task(
        run_change_watcher(state.store, interval_seconds=state.settings.watch_interval_seconds),
        name="vault-tasks-watcher",
    )

    try:
        await run_console_loop(state)
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
        await service.close()


def main() -> None:
    settings = get_settings()

    log_dir = getattr(settings, "data_dir", ".local/vault-tasks")
    log_file = setup_logging(log_dir=log_dir, console_level=getattr(settings, "log_level", "INFO"))

    logger.info("Starting %s (log file %s)...", getattr(settings, "app_name", "vault-tasks"), log_file)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
