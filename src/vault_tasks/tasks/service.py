# src/vault_tasks/tasks/service.py

from __future__ import annotations

"""
Consumer-facing task API.

TaskService is what a view talks to:
- initialize / reset_and_rescan rebuild the corpus and zero the cursor,
- load_more returns the next page together with the (possibly changed) top task,
- update_status_symbol is the only write path into documents.

It also listens to the config store and the document store and decides what a
change invalidates: the compiled grammar, the corpus election, or the whole view.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date

from ..config_store import ConfigChange, JsonConfigStore
from ..core.errors import UnknownSourceError
from ..core.models import EngineState, TaskLine
from ..core.ports import DocumentChange, DocumentStore
from ..election.coordinator import TopTaskElector
from ..election.elector import ContenderMode, Election, ElectionScope, apply_election, elect
from ..scanning.engine import ScanEngine
from ..scanning.grammar import StatusGrammar
from ..scanning.merge import merge_task_lines
from ..sources.dates import today_filter
from ..sources.registry import StrategyRegistry
from ..sources.strategies import build_all_strategies
from .writer import update_status_symbol

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Page:
    tasks: list[TaskLine]  # everything displayed so far, flags applied
    new_tasks: list[TaskLine]  # what this call added
    election: Election | None
    exhausted: bool
    dropped: bool = False  # True when the request overlapped a scan in flight

    @property
    def top_task(self) -> TaskLine | None:
        return self.election.winner if self.election is not None else None


class TaskService:
    def __init__(
        self,
        settings,
        config_store: JsonConfigStore,
        store: DocumentStore,
        *,
        today: date | None = None,
    ) -> None:
        self._settings = settings
        self._config = config_store
        self._store = store
        self._today = today

        self._grammar = StatusGrammar(config_store.status_rules)
        self._registry = StrategyRegistry()
        self._engine = ScanEngine(self._registry, store, self._grammar)
        self._elector = TopTaskElector(
            self._engine,
            contenders=ContenderMode.parse(getattr(settings, "contender_mode", "group")),
        )
        self._scope = ElectionScope.parse(getattr(settings, "election_scope", "corpus"))

        self._displayed: list[TaskLine] = []
        self._needs_reset = False
        self._register_strategies()

        self._unsubscribe = [
            config_store.on_change(self._on_config_change),
            store.subscribe(self._on_documents_changed),
        ]

    # ---- accessors ----

    @property
    def engine(self) -> ScanEngine:
        return self._engine

    @property
    def grammar(self) -> StatusGrammar:
        return self._grammar

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    @property
    def elector(self) -> TopTaskElector:
        return self._elector

    @property
    def config(self) -> JsonConfigStore:
        return self._config

    @property
    def scope(self) -> ElectionScope:
        return self._scope

    def set_scope(self, scope: ElectionScope) -> None:
        self._scope = scope

    @property
    def displayed(self) -> list[TaskLine]:
        return list(self._displayed)

    @property
    def needs_reset(self) -> bool:
        """True when config or vault changes made the current corpus snapshot outdated."""
        return self._needs_reset

    # ---- wiring ----

    def _register_strategies(self) -> None:
        for strategy in build_all_strategies(self._store, self._config.sources):
            self._registry.register(strategy)

    def _apply_date_filter(self) -> None:
        # Rebuilt on every reset so "today" follows the calendar in long sessions.
        if self._config.sources.only_show_today:
            self._engine.set_date_filter(today_filter(self._today))
        else:
            self._engine.set_date_filter(None)

    def _after_reset(self) -> None:
        self._displayed = []
        self._needs_reset = False
        self._elector.invalidate()

    # ---- consumer API ----

    async def initialize(self, active_source_names: Iterable[str] | None = None) -> None:
        names = list(active_source_names) if active_source_names is not None else self._config.active_sources
        self._registry.set_active(names)
        self._apply_date_filter()
        await self._engine.reset()
        self._after_reset()

    async def reset_and_rescan(self) -> bool:
        self._apply_date_filter()
        if not await self._engine.reset_and_rescan():
            return False
        self._after_reset()
        return True

    async def load_next_batch(self, batch_size: int | None = None) -> list[TaskLine]:
        return await self._engine.load_next_batch(batch_size or self._config.batch_size)

    async def load_more(self, batch_size: int | None = None) -> Page:
        dropped = self._engine.is_scanning
        batch = await self.load_next_batch(batch_size)

        self._displayed = merge_task_lines(self._displayed, batch)
        election = await self.current_election()
        self._displayed = apply_election(self._displayed, election)

        added = {t.location for t in batch}
        return Page(
            tasks=list(self._displayed),
            new_tasks=[t for t in self._displayed if t.location in added],
            election=election,
            exhausted=self._engine.engine_state is EngineState.EXHAUSTED,
            dropped=dropped,
        )

    async def current_election(self) -> Election:
        """Election for the configured scope. Window elections are always flagged stale."""
        if self._scope is ElectionScope.WINDOW:
            return self._elector.elect_window(self._displayed)
        cached = self._elector.current()
        if cached is not None:
            return cached
        return await self._elector.schedule()

    def warm_up(self) -> None:
        """Start the corpus election in the background (no-op for window scope)."""
        if self._scope is ElectionScope.CORPUS and self._elector.current() is None:
            self._elector.schedule()

    def elect(self, candidates: Iterable[TaskLine]) -> TaskLine | None:
        return elect(candidates, self._grammar.rules)

    async def update_status_symbol(self, task: TaskLine, new_symbol: str) -> TaskLine:
        updated = await update_status_symbol(self._store, task, new_symbol)
        rule = self._grammar.rule_for(new_symbol)
        if rule is not None and rule.symbol != updated.status_symbol:
            updated = replace(updated, status_symbol=rule.symbol)

        self._displayed = [updated if t.location == task.location else t for t in self._displayed]
        self._elector.invalidate()
        return updated

    def warnings(self) -> list[str]:
        out: list[str] = []
        if not self._grammar.included_symbols():
            out.append("No status is included in the filter; no task can be listed.")
        if not self._registry.active_names():
            out.append("No source is active.")
        elif not self._registry.available_names():
            out.append("None of the active sources is available (check folder settings).")
        return out

    async def close(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        await self._elector.close()

    # ---- change handling ----

    def _on_config_change(self, change: ConfigChange) -> None:
        if change.key == "status_rules":
            before = dict(self._grammar.compiled().canonical)
            self._grammar.set_rules(change.value)
            if self._grammar.compiled().canonical != before:
                # Match indices of the cursor were counted under the old symbol set.
                self._needs_reset = True
            logger.info("Status rules changed (needs_reset=%s)", self._needs_reset)
        elif change.key == "active_sources":
            try:
                self._registry.set_active(change.value)
            except UnknownSourceError:
                logger.exception("Cannot activate sources %s", change.value)
            self._needs_reset = True
        elif change.key == "sources":
            self._register_strategies()
            self._needs_reset = True
        else:
            logger.debug("Config %s changed", change.key)

    def _on_documents_changed(self, changes: list[DocumentChange]) -> None:
        known = {d.path for d in self._engine.state.documents}
        touched = False
        for change in changes:
            if change.kind == "modified" and change.path in known:
                touched = True
            elif change.kind == "created" or change.path in known:
                self._needs_reset = True
        if touched or self._needs_reset:
            self._elector.invalidate()
