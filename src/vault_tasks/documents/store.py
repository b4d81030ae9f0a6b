# src/vault_tasks/documents/store.py

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path

from ..core.errors import DocumentNotFoundError, DocumentReadError
from ..core.models import Document
from ..core.ports import ChangeListener, DocumentChange

logger = logging.getLogger(__name__)


class FileSystemDocumentStore:
    """
    Markdown notes under a vault directory.

    Paths handed in and out are vault-relative POSIX strings ("Daily/2024-01-15.md").
    Blocking file I/O runs in a worker thread (asyncio.to_thread) so the event loop
    only ever suspends on document reads/writes.

    Hidden directories (".obsidian", ".trash", ".git", ...) are never listed.
    Links to files inside the vault are listed, links to folders are not followed,
    and anything resolving outside the root raises DocumentReadError.
    """

    def __init__(self, root: str | Path, *, extensions: tuple[str, ...] = (".md",)) -> None:
        self._root = Path(root).expanduser().resolve()
        self._extensions = tuple(e.lower() for e in extensions)
        self._listeners: list[ChangeListener] = []
        self._snapshot: dict[str, float] | None = None
        logger.info("DocumentStore ready root=%s extensions=%s", self._root, ",".join(self._extensions))

    @property
    def root(self) -> Path:
        return self._root

    # ---- path helpers ----

    def _inside(self, full: Path) -> bool:
        return full == self._root or self._root in full.parents

    def _resolve(self, path: str) -> Path:
        rel = (path or "").strip().strip("/")
        full = (self._root / rel).resolve() if rel else self._root
        if not self._inside(full):
            raise DocumentReadError(path, "path escapes vault root")
        return full

    def _relative(self, full: Path) -> str:
        return full.relative_to(self._root).as_posix()

    def _is_document(self, full: Path) -> bool:
        return full.is_file() and full.suffix.lower() in self._extensions

    def _to_document(self, full: Path) -> Document:
        return Document.from_path(self._relative(full), full.stat().st_mtime)

    def _walk(self, base: Path, recursive: bool) -> list[Path]:
        out: list[Path] = []
        try:
            entries = sorted(base.iterdir())
        except OSError:
            logger.warning("Cannot list folder %s", base, exc_info=True)
            return out
        for entry in entries:
            if entry.name.startswith("."):
                continue
            if entry.is_symlink():
                try:
                    target = entry.resolve()
                except (OSError, RuntimeError):
                    logger.debug("Skipping broken link %s", entry)
                    continue
                if not self._inside(target):
                    logger.debug("Skipping link leaving the vault %s -> %s", entry, target)
                    continue
                # Linked folders are not followed; a link to an ancestor would loop.
                if target.is_dir():
                    continue
            if entry.is_dir():
                if recursive:
                    out.extend(self._walk(entry, recursive))
                continue
            if self._is_document(entry):
                out.append(entry)
        return out

    # ---- sync implementations (run in worker threads) ----

    def _read_sync(self, path: str) -> str:
        full = self._resolve(path)
        try:
            # newline="" keeps "\r\n" intact so write-back does not rewrite line endings.
            with open(full, encoding="utf-8", newline="") as fh:
                return fh.read()
        except FileNotFoundError:
            raise DocumentNotFoundError(path, "missing") from None
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(path, str(e)) from e

    def _write_sync(self, path: str, text: str) -> None:
        full = self._resolve(path)
        if not full.exists():
            raise DocumentNotFoundError(path, "missing")
        tmp = full.with_name(full.name + ".tmp")
        with open(tmp, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        os.replace(tmp, full)
        if self._snapshot is not None:
            self._snapshot[path] = full.stat().st_mtime

    def _list_sync(self, prefix: str, recursive: bool) -> list[Document]:
        base = self._resolve(prefix)
        if not base.exists():
            return []
        if base.is_file():
            return [self._to_document(base)] if self._is_document(base) else []
        docs: list[Document] = []
        for full in self._walk(base, recursive):
            try:
                docs.append(self._to_document(full))
            except OSError:
                # Deleted between listing and stat.
                logger.debug("Skipping vanished file %s", full)
        return docs

    def _stat_sync(self, path: str) -> float:
        try:
            return self._resolve(path).stat().st_mtime
        except FileNotFoundError:
            raise DocumentNotFoundError(path, "missing") from None

    # ---- public API ----

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self._read_sync, path)

    async def write(self, path: str, text: str) -> None:
        await asyncio.to_thread(self._write_sync, path, text)
        logger.debug("Document written path=%s chars=%d", path, len(text))
        self._notify([DocumentChange(path=path, kind="modified")])

    async def list(self, prefix: str = "", *, recursive: bool = True) -> list[Document]:
        return await asyncio.to_thread(self._list_sync, prefix, recursive)

    async def get_last_modified(self, path: str) -> float:
        return await asyncio.to_thread(self._stat_sync, path)

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).exists()
        except DocumentReadError:
            return False

    def is_dir(self, path: str) -> bool:
        try:
            return self._resolve(path).is_dir()
        except DocumentReadError:
            return False

    # ---- change notification ----

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, changes: list[DocumentChange]) -> None:
        if not changes:
            return
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception:
                logger.exception("Document change listener failed")

    def _poll_sync(self) -> list[DocumentChange]:
        current = {doc.path: doc.last_modified for doc in self._list_sync("", True)}
        previous = self._snapshot
        self._snapshot = current
        if previous is None:
            return []

        changes: list[DocumentChange] = []
        for path, mtime in current.items():
            old = previous.get(path)
            if old is None:
                changes.append(DocumentChange(path=path, kind="created"))
            elif old != mtime:
                changes.append(DocumentChange(path=path, kind="modified"))
        for path in previous.keys() - current.keys():
            changes.append(DocumentChange(path=path, kind="deleted"))
        return changes

    async def poll_changes(self) -> list[DocumentChange]:
        """
        Compare the vault against the last snapshot and push changes to subscribers.

        The first call only records the baseline and reports nothing.
        """
        changes = await asyncio.to_thread(self._poll_sync)
        if changes:
            logger.debug("Detected %d document change(s)", len(changes))
            self._notify(changes)
        return changes
