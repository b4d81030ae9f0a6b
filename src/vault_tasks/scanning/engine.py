# src/vault_tasks/scanning/engine.py

from __future__ import annotations

"""
Cursor-paginated scan engine.

Walks the ordered corpus from a cursor, reading and scanning documents on demand:
- documents are always rescanned fresh (no cached matches between calls),
- a batch stops as soon as batch_size matches were collected,
- the cursor remembers how many matches of the current document were consumed.

advance() is the pure state transition; ScanEngine owns one ScanState, guards
against overlapping calls and discards results of a stale generation.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace

from ..core.errors import DocumentReadError
from ..core.models import EngineState, ScanState, TaskLine
from ..core.ports import DocumentStore, ReadText
from ..sources.dates import DateFilter
from ..sources.registry import StrategyRegistry
from .grammar import CompiledGrammar, StatusGrammar
from .scanner import scan_document

logger = logging.getLogger(__name__)


async def advance(
    state: ScanState,
    batch_size: int,
    *,
    read: ReadText,
    grammar: CompiledGrammar,
    owners: Mapping[str, str] | None = None,
) -> tuple[list[TaskLine], ScanState]:
    """
    Load up to batch_size task lines starting at the cursor of `state`.

    Returns the batch and the next state; `state` itself is never mutated.
    Unreadable or vanished documents are skipped. A batch shorter than batch_size
    means the end of the corpus was reached.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    if not state.loaded or state.exhausted:
        return [], state

    owners = owners or {}
    docs = state.documents
    out: list[TaskLine] = []
    doc_index = state.document_index
    skip = state.task_index

    while doc_index < len(docs):
        doc = docs[doc_index]
        try:
            text = await read(doc.path)
        except (DocumentReadError, OSError):
            logger.warning("Skipping unreadable document %s", doc.path, exc_info=True)
            doc_index += 1
            skip = 0
            continue

        matches = scan_document(doc, text, grammar, source_name=owners.get(doc.path, ""))
        take = matches[skip : skip + (batch_size - len(out))]
        out.extend(take)
        consumed = skip + len(take)
        logger.debug(
            "Scanned %s (%d/%d): %d match(es), resumed at %d, took %d - progress %d/%d",
            doc.path,
            doc_index + 1,
            len(docs),
            len(matches),
            skip,
            len(take),
            len(out),
            batch_size,
        )

        if len(out) >= batch_size:
            if consumed < len(matches):
                return out, replace(state, document_index=doc_index, task_index=consumed)
            next_index = doc_index + 1
            return out, replace(
                state,
                document_index=next_index,
                task_index=0,
                exhausted=next_index >= len(docs),
            )

        doc_index += 1
        skip = 0

    return out, replace(state, document_index=len(docs), task_index=0, exhausted=True)


class ScanEngine:
    """
    Stateful pagination over the corpus of the active sources.

    Callers must not overlap calls: a load_next_batch / reset_and_rescan arriving
    while another one is in flight is dropped (not queued, not raised).
    reset() always applies and invalidates whatever is in flight.
    """

    def __init__(
        self,
        registry: StrategyRegistry,
        store: DocumentStore,
        grammar: StatusGrammar,
        *,
        date_filter: DateFilter | None = None,
    ) -> None:
        self._registry = registry
        self._store = store
        self._grammar = grammar
        self._date_filter = date_filter
        self._state = ScanState()
        self._owners: dict[str, str] = {}
        self._generation = 0
        self._busy = False

    # ---- introspection ----

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_scanning(self) -> bool:
        return self._busy

    @property
    def engine_state(self) -> EngineState:
        if self._busy and self._state.loaded:
            return EngineState.SCANNING
        if not self._state.loaded:
            return EngineState.IDLE
        if self._state.exhausted:
            return EngineState.EXHAUSTED
        return EngineState.READY

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def grammar(self) -> StatusGrammar:
        return self._grammar

    @property
    def date_filter(self) -> DateFilter | None:
        return self._date_filter

    def set_date_filter(self, date_filter: DateFilter | None) -> None:
        """Takes effect on the next reset()."""
        self._date_filter = date_filter

    def owner_of(self, path: str) -> str:
        return self._owners.get(path, "")

    # ---- transitions ----

    async def reset(self) -> ScanState:
        """Re-enumerate the corpus and zero the cursor (any state -> ready)."""
        self._generation += 1
        generation = self._generation
        docs, owners = await self._registry.get_corpus_with_owners(self._date_filter)
        if generation != self._generation:
            # A newer reset started while we were enumerating; it owns the state.
            return self._state

        self._state = ScanState.ready(docs, generation)
        self._owners = owners
        logger.info("Scan reset generation=%d documents=%d", generation, len(docs))
        return self._state

    async def reset_and_rescan(self) -> bool:
        """Guarded reset. Returns False when dropped because a scan is in flight."""
        if self._busy:
            logger.debug("reset_and_rescan dropped: scan in progress")
            return False
        self._busy = True
        try:
            await self.reset()
        finally:
            self._busy = False
        return True

    async def load_next_batch(self, batch_size: int) -> list[TaskLine]:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self._busy:
            logger.debug("load_next_batch dropped: scan in progress")
            return []
        if not self._state.loaded:
            logger.debug("load_next_batch ignored: engine idle (call reset first)")
            return []
        if self._state.exhausted:
            return []

        start = self._state
        self._busy = True
        try:
            batch, next_state = await advance(
                start,
                batch_size,
                read=self._store.read,
                grammar=self._grammar.compiled(),
                owners=self._owners,
            )
        finally:
            self._busy = False

        if next_state.generation != self._generation or self._state is not start:
            logger.info(
                "Discarding stale batch (generation %d, current %d)",
                next_state.generation,
                self._generation,
            )
            return []

        self._state = next_state
        logger.info(
            "Loaded %d task(s); cursor=%s/%s%s",
            len(batch),
            next_state.document_index,
            next_state.task_index,
            " (exhausted)" if next_state.exhausted else "",
        )
        return batch

    async def drain(self, batch_size: int) -> list[TaskLine]:
        """Load batches until the corpus is exhausted."""
        out: list[TaskLine] = []
        while self._state.loaded and not self._state.exhausted:
            batch = await self.load_next_batch(batch_size)
            if not batch and not self._state.exhausted:
                break
            out.extend(batch)
        return out
