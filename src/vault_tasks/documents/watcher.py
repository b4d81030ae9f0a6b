# src/vault_tasks/documents/watcher.py

from __future__ import annotations

"""
Document change watcher.

A small polling loop that:
- snapshots file modification times,
- pushes created/modified/deleted changes to store subscribers.

Deciding whether a change warrants a full reset belongs to the subscriber, not the watcher.
"""

import asyncio
import logging
from typing import Protocol

from ..core.ports import DocumentChange

logger = logging.getLogger(__name__)


class PollingStore(Protocol):
    async def poll_changes(self) -> list[DocumentChange]: ...


async def run_change_watcher(store: PollingStore, *, interval_seconds: float = 5.0) -> None:
    """
    Poll the store every interval_seconds.

    Failures are logged and the loop keeps going. To stop the watcher, cancel the coroutine/task.
    """
    sleep_s = max(0.05, float(interval_seconds))

    while True:
        try:
            changes = await store.poll_changes()
            if changes:
                logger.info("Vault changed: %d document(s)", len(changes))
        except Exception:
            logger.exception("poll_changes failed")

        await asyncio.sleep(sleep_s)
