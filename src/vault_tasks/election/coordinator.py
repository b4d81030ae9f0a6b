# src/vault_tasks/election/coordinator.py

from __future__ import annotations

"""
Top-task election over the whole corpus.

Paginated windows can miss a higher-priority task whose document was not loaded
yet, so the default election scans every active source in the background:
- each strategy's documents are scanned separately,
- the per-strategy lists go through the merger (duplicates across sources collapse),
- the merged set is elected.

Results are cached per (engine generation, grammar version, invalidation epoch). Window elections stay
available as an explicit fast path and are always flagged stale.
"""

import asyncio
import contextlib
import logging
from collections.abc import Iterable

from ..core.errors import DocumentReadError
from ..core.models import TaskLine
from ..scanning.engine import ScanEngine
from ..scanning.merge import merge_task_lines
from ..scanning.scanner import scan_document
from .elector import ContenderMode, Election, ElectionScope, run_election

logger = logging.getLogger(__name__)


class TopTaskElector:
    def __init__(self, engine: ScanEngine, *, contenders: ContenderMode = ContenderMode.GROUP) -> None:
        self._engine = engine
        self._contenders = contenders
        self._cached: tuple[tuple[int, int, int], Election] | None = None
        self._pending: tuple[tuple[int, int, int], asyncio.Task[Election]] | None = None
        self._epoch = 0

    @property
    def contenders(self) -> ContenderMode:
        return self._contenders

    def set_contenders(self, mode: ContenderMode) -> None:
        self._contenders = mode
        self.invalidate()

    def _key(self) -> tuple[int, int, int]:
        return (self._engine.generation, self._engine.grammar.version, self._epoch)

    def invalidate(self) -> None:
        """Forget the cached election (documents changed under the same generation)."""
        self._epoch += 1
        self._cached = None

    def current(self) -> Election | None:
        """Last finished corpus election, if it still matches the engine generation and rules."""
        if self._cached is not None and self._cached[0] == self._key():
            return self._cached[1]
        return None

    async def _collect(self) -> list[TaskLine]:
        engine = self._engine
        grammar = engine.grammar.compiled()
        groups: list[list[TaskLine]] = []
        for name, docs in await engine.registry.enumerate_by_strategy(engine.date_filter):
            lines: list[TaskLine] = []
            for doc in docs:
                try:
                    text = await engine.store.read(doc.path)
                except (DocumentReadError, OSError):
                    logger.warning("Election skipped unreadable document %s", doc.path, exc_info=True)
                    continue
                lines.extend(scan_document(doc, text, grammar, source_name=name))
            groups.append(lines)
        return merge_task_lines(*groups)

    async def elect_corpus(self) -> Election:
        cached = self.current()
        if cached is not None:
            return cached

        key = self._key()
        candidates = await self._collect()
        election = run_election(
            candidates,
            self._engine.grammar.rules,
            contenders=self._contenders,
            scope=ElectionScope.CORPUS,
        )
        if key == self._key():
            self._cached = (key, election)
        else:
            logger.debug("Corpus election finished for an outdated generation; not cached")

        winner = election.winner
        if winner is not None:
            logger.info("Top task: %s:%d %s", winner.document.path, winner.line_number, winner.raw_line.strip())
        else:
            logger.info("No top task in %d candidate(s)", len(candidates))
        return election

    def elect_window(self, displayed: Iterable[TaskLine]) -> Election:
        return run_election(
            displayed,
            self._engine.grammar.rules,
            contenders=self._contenders,
            scope=ElectionScope.WINDOW,
        )

    def schedule(self) -> asyncio.Task[Election]:
        """
        Start a background corpus election, or reuse the one already running for the
        current generation. Requires a running event loop.
        """
        key = self._key()
        if self._pending is not None:
            pending_key, pending = self._pending
            if pending_key == key and not pending.done():
                return pending

        task = asyncio.create_task(self.elect_corpus(), name="vault-tasks-corpus-election")

        def _done(t: asyncio.Task[Election]) -> None:
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error("Background corpus election failed", exc_info=exc)

        task.add_done_callback(_done)
        self._pending = (key, task)
        return task

    async def close(self) -> None:
        pending = self._pending
        self._pending = None
        if pending is None:
            return
        task = pending[1]
        if task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
