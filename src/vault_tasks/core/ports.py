# src/vault_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The scan engine depends on Protocols instead of concrete implementations.
This keeps document stores swappable and makes testing easier.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from .models import Document


@dataclass(slots=True, frozen=True)
class DocumentChange:
    path: str
    kind: str  # "created" | "modified" | "deleted"


ChangeListener = Callable[[list[DocumentChange]], None]
ReadText = Callable[[str], Awaitable[str]]


class DocumentStore(Protocol):
    """
    Read/list/stat access to the note corpus.

    Paths are vault-relative POSIX strings. read() raises DocumentReadError
    (DocumentNotFoundError for missing files).
    """

    async def read(self, path: str) -> str: ...

    async def write(self, path: str, text: str) -> None: ...

    async def list(self, prefix: str = "", *, recursive: bool = True) -> list[Document]: ...

    async def get_last_modified(self, path: str) -> float: ...

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...
