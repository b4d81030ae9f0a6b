# src/vault_tasks/sources/strategies.py

from __future__ import annotations

"""
Source strategies: where candidate documents come from.

The set of variants is closed (streams, daily-notes, folder). Each one exposes the
same interface and is resolved by name through STRATEGY_TYPES, never through
ad hoc type checks.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ..core.errors import UnknownSourceError
from ..core.models import Document, SourceParams
from ..core.ports import DocumentStore
from .dates import DateFilter, looks_dated

logger = logging.getLogger(__name__)


class SourceStrategy(ABC):
    """
    One pluggable provider of a document corpus.

    - is_available() must be cheap and side-effect free (no content reads).
    - enumerate() applies the optional date filter to the Document list before
      any document content is read.
    """

    name: ClassVar[str]
    label: ClassVar[str]
    supports_date_filter: ClassVar[bool] = True

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    @classmethod
    @abstractmethod
    def from_params(cls, store: DocumentStore, params: SourceParams) -> SourceStrategy: ...

    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    async def _documents(self) -> list[Document]: ...

    async def enumerate(self, date_filter: DateFilter | None = None) -> list[Document]:
        docs = await self._documents()
        if date_filter is not None and self.supports_date_filter:
            docs = [d for d in docs if date_filter(d)]
        logger.debug("Strategy %s enumerated %d document(s)", self.name, len(docs))
        return docs

    def describe(self) -> dict[str, Any]:
        return {"name": self.name, "label": self.label, "available": self.is_available()}


class FolderSetStrategy(SourceStrategy):
    """A fixed set of folders (or single notes), e.g. the user's "streams"."""

    name = "streams"
    label = "Streams"

    def __init__(self, store: DocumentStore, folders: list[str]) -> None:
        super().__init__(store)
        self._folders = [f.strip() for f in folders if f and f.strip()]

    @classmethod
    def from_params(cls, store: DocumentStore, params: SourceParams) -> FolderSetStrategy:
        return cls(store, list(params.stream_folders))

    @property
    def folders(self) -> list[str]:
        return list(self._folders)

    def is_available(self) -> bool:
        return any(self._store.exists(f) for f in self._folders)

    async def _documents(self) -> list[Document]:
        docs: list[Document] = []
        for folder in self._folders:
            if not self._store.exists(folder):
                logger.debug("Stream folder missing: %s", folder)
                continue
            docs.extend(await self._store.list(folder, recursive=True))
        return docs

    def describe(self) -> dict[str, Any]:
        out = super().describe()
        out["folders"] = self.folders
        return out


class DailyNotesStrategy(SourceStrategy):
    """Date-named notes inside the daily-notes folder."""

    name = "daily-notes"
    label = "Daily Notes"

    def __init__(self, store: DocumentStore, folder: str) -> None:
        super().__init__(store)
        self._folder = (folder or "").strip()

    @classmethod
    def from_params(cls, store: DocumentStore, params: SourceParams) -> DailyNotesStrategy:
        return cls(store, params.daily_notes_folder)

    def is_available(self) -> bool:
        return bool(self._folder) and self._store.is_dir(self._folder)

    async def _documents(self) -> list[Document]:
        docs = await self._store.list(self._folder, recursive=True)
        return [d for d in docs if looks_dated(d.name)]

    def describe(self) -> dict[str, Any]:
        out = super().describe()
        out["folder"] = self._folder
        return out


class FolderStrategy(SourceStrategy):
    """One arbitrary folder, optionally including subfolders."""

    name = "folder"
    label = "Folder"

    def __init__(self, store: DocumentStore, folder_path: str, *, recursive: bool = True) -> None:
        super().__init__(store)
        self._folder_path = (folder_path or "").strip()
        self._recursive = bool(recursive)

    @classmethod
    def from_params(cls, store: DocumentStore, params: SourceParams) -> FolderStrategy:
        return cls(store, params.folder_path, recursive=params.folder_recursive)

    def is_available(self) -> bool:
        return bool(self._folder_path) and self._store.exists(self._folder_path)

    async def _documents(self) -> list[Document]:
        return await self._store.list(self._folder_path, recursive=self._recursive)

    def describe(self) -> dict[str, Any]:
        out = super().describe()
        out["folder"] = self._folder_path
        out["recursive"] = self._recursive
        return out


STRATEGY_TYPES: dict[str, type[SourceStrategy]] = {
    FolderSetStrategy.name: FolderSetStrategy,
    DailyNotesStrategy.name: DailyNotesStrategy,
    FolderStrategy.name: FolderStrategy,
}


def build_strategy(name: str, store: DocumentStore, params: SourceParams) -> SourceStrategy:
    """Instantiate the strategy registered under `name` from persisted source parameters."""
    kind = STRATEGY_TYPES.get(name)
    if kind is None:
        raise UnknownSourceError(f"Unknown source: {name!r} (known: {', '.join(STRATEGY_TYPES)})")
    return kind.from_params(store, params)


def build_all_strategies(store: DocumentStore, params: SourceParams) -> list[SourceStrategy]:
    return [build_strategy(name, store, params) for name in STRATEGY_TYPES]
