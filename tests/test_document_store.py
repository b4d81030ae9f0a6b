# tests/test_document_store.py

from __future__ import annotations

import asyncio
import contextlib
import os

import pytest

from vault_tasks.core.errors import DocumentNotFoundError, DocumentReadError
from vault_tasks.documents.store import FileSystemDocumentStore
from vault_tasks.documents.watcher import run_change_watcher


@pytest.mark.asyncio
async def test_list_skips_hidden_folders_and_other_extensions(vault) -> None:
    vault.write("Streams/work.md", "- [ ] a\n", mtime=100)
    vault.write("Streams/deep/more.md", "")
    vault.write("Streams/image.png", "")
    vault.write(".obsidian/workspace.md", "")
    store = FileSystemDocumentStore(vault.root)

    everything = await store.list()
    flat = await store.list("Streams", recursive=False)
    single = await store.list("Streams/work.md")

    assert sorted(d.path for d in everything) == ["Streams/deep/more.md", "Streams/work.md"]
    assert [d.path for d in flat] == ["Streams/work.md"]
    assert single[0].display_name == "work"
    assert single[0].last_modified == 100
    assert await store.list("Missing") == []


@pytest.mark.asyncio
async def test_read_missing_document_raises(vault) -> None:
    store = FileSystemDocumentStore(vault.root)

    with pytest.raises(DocumentNotFoundError):
        await store.read("nope.md")
    with pytest.raises(DocumentReadError):
        await store.read("../outside.md")
    assert not store.exists("../outside.md")


@pytest.mark.asyncio
async def test_links_leaving_the_vault_are_not_listed_or_read(vault) -> None:
    vault.write("notes/a.md", "- [/] a1\n")
    outside = vault.root.parent / "outside.md"
    outside.write_text("- [ ] secret\n", "utf-8")
    os.symlink(outside, vault.root / "notes" / "z-link.md")
    os.symlink(vault.root / "notes" / "a.md", vault.root / "notes" / "alias.md")
    os.symlink(vault.root, vault.root / "notes" / "loop")
    store = FileSystemDocumentStore(vault.root)

    listed = await store.list("notes")

    assert sorted(d.path for d in listed) == ["notes/a.md", "notes/alias.md"]
    assert await store.read("notes/alias.md") == "- [/] a1\n"
    with pytest.raises(DocumentReadError):
        await store.read("notes/z-link.md")
    with pytest.raises(DocumentReadError):
        await store.write("notes/z-link.md", "- [x] secret\n")
    with pytest.raises(DocumentReadError):
        await store.get_last_modified("notes/z-link.md")
    assert outside.read_text("utf-8") == "- [ ] secret\n"


@pytest.mark.asyncio
async def test_write_is_atomic_and_notifies(vault) -> None:
    vault.write("a.md", "- [ ] a\n")
    store = FileSystemDocumentStore(vault.root)
    seen = []
    unsubscribe = store.subscribe(seen.append)

    await store.write("a.md", "- [x] a\n")
    unsubscribe()
    await store.write("a.md", "- [ ] a\n")

    assert vault.read("a.md") == "- [ ] a\n"
    assert not (vault.root / "a.md.tmp").exists()
    assert [[(c.path, c.kind) for c in batch] for batch in seen] == [[("a.md", "modified")]]

    with pytest.raises(DocumentNotFoundError):
        await store.write("new.md", "")


@pytest.mark.asyncio
async def test_poll_changes_reports_created_modified_deleted(vault) -> None:
    vault.write("keep.md", "", mtime=100)
    vault.write("gone.md", "", mtime=100)
    store = FileSystemDocumentStore(vault.root)

    assert await store.poll_changes() == []

    vault.write("keep.md", "- [ ] edited\n", mtime=200)
    (vault.root / "gone.md").unlink()
    vault.write("new.md", "")

    changes = {(c.path, c.kind) for c in await store.poll_changes()}

    assert changes == {("keep.md", "modified"), ("gone.md", "deleted"), ("new.md", "created")}
    assert await store.poll_changes() == []


@pytest.mark.asyncio
async def test_watcher_keeps_polling_after_failures() -> None:
    calls = {"n": 0}
    polled = asyncio.Event()

    class FlakyStore:
        async def poll_changes(self):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OSError("transient")
            polled.set()
            return []

    task = asyncio.create_task(run_change_watcher(FlakyStore(), interval_seconds=0.01))
    await asyncio.wait_for(polled.wait(), timeout=2.0)
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task

    assert calls["n"] >= 2
