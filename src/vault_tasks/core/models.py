# src/vault_tasks/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from pathlib import PurePosixPath


class EngineState(StrEnum):
    """
    Scan engine lifecycle.

    Notes:
    - "scanning" is only observable while a load_next_batch call is suspended on I/O.
    - reset() moves any state back to "ready" with a fresh corpus.
    """

    IDLE = "idle"
    READY = "ready"
    SCANNING = "scanning"
    EXHAUSTED = "exhausted"


@dataclass(slots=True, frozen=True)
class Document:
    """Snapshot of one note taken at enumeration time (content is read lazily)."""

    path: str
    display_name: str
    last_modified: float

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @classmethod
    def from_path(cls, path: str, last_modified: float) -> Document:
        return cls(path=path, display_name=PurePosixPath(path).stem, last_modified=float(last_modified))


@dataclass(slots=True, frozen=True)
class StatusRule:
    symbol: str
    name: str = ""
    alias_symbols: tuple[str, ...] = ()
    rank_class: int | None = None  # lower = higher top-task priority
    included: bool = True

    @property
    def symbols(self) -> tuple[str, ...]:
        return (self.symbol, *self.alias_symbols)

    def to_dict(self) -> dict[str, object]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "alias_symbols": list(self.alias_symbols),
            "rank_class": self.rank_class,
            "included": self.included,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> StatusRule:
        rank = raw.get("rank_class")
        aliases = raw.get("alias_symbols") or []
        return cls(
            symbol=str(raw.get("symbol", "")),
            name=str(raw.get("name", "") or ""),
            alias_symbols=tuple(str(a) for a in aliases) if isinstance(aliases, list) else (),
            rank_class=int(rank) if isinstance(rank, (int, float)) and not isinstance(rank, bool) else None,
            included=bool(raw.get("included", True)),
        )


@dataclass(slots=True, frozen=True)
class TaskLine:
    """One checkbox line found in a document. Recomputed on every scan."""

    document: Document
    line_number: int  # 1-based
    raw_line: str
    status_symbol: str  # canonical rule symbol (aliases normalised)
    remaining_text: str
    indent: str = ""
    source_name: str = ""
    is_top_task: bool = False
    is_top_task_contender: bool = False

    @property
    def key(self) -> tuple[str, int, str]:
        return (self.document.path, self.line_number, self.raw_line.strip())

    @property
    def location(self) -> tuple[str, int]:
        return (self.document.path, self.line_number)

    def with_flags(self, *, top: bool = False, contender: bool = False) -> TaskLine:
        if self.is_top_task == top and self.is_top_task_contender == contender:
            return self
        return replace(self, is_top_task=top, is_top_task_contender=contender)


@dataclass(slots=True, frozen=True)
class ScanState:
    """
    Pagination cursor over an ordered corpus snapshot.

    task_index counts the matches of documents[document_index] that were already returned.
    """

    documents: tuple[Document, ...] = ()
    document_index: int = 0
    task_index: int = 0
    generation: int = 0
    exhausted: bool = False
    loaded: bool = False

    @classmethod
    def ready(cls, documents: list[Document] | tuple[Document, ...], generation: int) -> ScanState:
        return cls(documents=tuple(documents), generation=generation, loaded=True)

    @property
    def position(self) -> tuple[int, int]:
        return (self.document_index, self.task_index)


@dataclass(slots=True)
class SourceParams:
    """Per-source parameters persisted in the configuration store."""

    folder_path: str = ""
    folder_recursive: bool = True
    daily_notes_folder: str = ""
    stream_folders: list[str] = field(default_factory=list)
    only_show_today: bool = False
