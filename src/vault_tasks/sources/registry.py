# src/vault_tasks/sources/registry.py

from __future__ import annotations

import logging

from ..core.errors import UnknownSourceError
from ..core.models import Document
from .dates import DateFilter
from .strategies import SourceStrategy

logger = logging.getLogger(__name__)


def order_corpus(documents: list[Document]) -> list[Document]:
    """Sort by file name (not full path), Z-A. Stable, so equal names keep enumeration order."""
    return sorted(documents, key=lambda d: d.name, reverse=True)


class StrategyRegistry:
    """
    Name-keyed strategies plus the ordered list of active names.

    Active order matters: when two strategies enumerate the same path, the one
    activated first wins.
    """

    def __init__(self, strategies: list[SourceStrategy] | None = None) -> None:
        self._strategies: dict[str, SourceStrategy] = {}
        self._active: list[str] = []
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: SourceStrategy) -> None:
        key = strategy.name.lower()
        if key in self._strategies:
            logger.debug("Replacing strategy %s", key)
        self._strategies[key] = strategy

    def get(self, name: str) -> SourceStrategy:
        strategy = self._strategies.get(name.lower())
        if strategy is None:
            raise UnknownSourceError(f"Unknown source: {name!r}")
        return strategy

    def names(self) -> list[str]:
        return list(self._strategies)

    def set_active(self, names: list[str]) -> None:
        active: list[str] = []
        for name in names:
            key = name.strip().lower()
            if not key:
                continue
            if key not in self._strategies:
                raise UnknownSourceError(f"Unknown source: {name!r}")
            if key not in active:
                active.append(key)
        self._active = active
        logger.info("Active sources: %s", ", ".join(active) or "(none)")

    def active_names(self) -> list[str]:
        return list(self._active)

    def available_names(self) -> list[str]:
        return [name for name in self._active if self._strategies[name].is_available()]

    async def enumerate_by_strategy(
        self, date_filter: DateFilter | None = None
    ) -> list[tuple[str, list[Document]]]:
        """
        Per-strategy document lists for every active, available strategy (active order).

        Unavailable strategies are skipped silently; a failing strategy degrades to
        zero documents.
        """
        out: list[tuple[str, list[Document]]] = []
        for name in self._active:
            strategy = self._strategies[name]
            if not strategy.is_available():
                logger.debug("Source %s unavailable; skipped", name)
                continue
            try:
                docs = await strategy.enumerate(date_filter)
            except Exception:
                logger.exception("Source %s enumeration failed; treating as empty", name)
                docs = []
            out.append((name, docs))
        return out

    async def get_corpus_with_owners(
        self, date_filter: DateFilter | None = None
    ) -> tuple[list[Document], dict[str, str]]:
        """
        Merged, path-deduplicated, ordered corpus view of all active sources.

        Also returns path -> name of the strategy that contributed the document
        (the first active one on conflict).
        """
        owners: dict[str, str] = {}
        merged: list[Document] = []
        for name, docs in await self.enumerate_by_strategy(date_filter):
            for doc in docs:
                if doc.path in owners:
                    continue
                owners[doc.path] = name
                merged.append(doc)
        corpus = order_corpus(merged)
        logger.info("Corpus built: %d document(s) from %s", len(corpus), ", ".join(self._active) or "(none)")
        return corpus, owners

    async def get_corpus(self, date_filter: DateFilter | None = None) -> list[Document]:
        corpus, _owners = await self.get_corpus_with_owners(date_filter)
        return corpus
