# tests/test_scan_engine.py

from __future__ import annotations

import asyncio
import os
from datetime import date

import pytest

from vault_tasks.core.models import Document, EngineState, ScanState
from vault_tasks.documents.store import FileSystemDocumentStore
from vault_tasks.scanning.engine import ScanEngine, advance
from vault_tasks.scanning.grammar import StatusGrammar
from vault_tasks.sources.dates import today_filter
from vault_tasks.sources.registry import StrategyRegistry

from .fakes import FakeStrategy, InMemoryDocumentStore, checkbox_lines


def _engine(store: InMemoryDocumentStore, prefixes: list[str] | None = None) -> ScanEngine:
    registry = StrategyRegistry([FakeStrategy(store, prefixes or ["notes"])])
    registry.set_active(["fake"])
    return ScanEngine(registry, store, StatusGrammar())


def _keys(tasks) -> list[tuple[str, int, str]]:
    return [t.key for t in tasks]


@pytest.mark.asyncio
async def test_twenty_five_tasks_page_as_ten_ten_five() -> None:
    # Corpus order is by file name descending: c, b, a.
    store = InMemoryDocumentStore(
        {
            "notes/c.md": checkbox_lines(12, prefix="c"),
            "notes/b.md": checkbox_lines(8, prefix="b"),
            "notes/a.md": checkbox_lines(5, prefix="a"),
        }
    )
    engine = _engine(store)
    await engine.reset()

    first = await engine.load_next_batch(10)
    assert len(first) == 10
    assert engine.state.position == (0, 10)
    assert engine.engine_state is EngineState.READY

    second = await engine.load_next_batch(10)
    assert len(second) == 10
    assert [t.document.path for t in second[:2]] == ["notes/c.md", "notes/c.md"]
    assert engine.engine_state is EngineState.READY

    third = await engine.load_next_batch(10)
    assert len(third) == 5
    assert engine.engine_state is EngineState.EXHAUSTED

    assert await engine.load_next_batch(10) == []
    assert len(set(_keys(first + second + third))) == 25


@pytest.mark.asyncio
async def test_split_loads_equal_one_combined_load() -> None:
    files = {
        "notes/b.md": checkbox_lines(7, prefix="b"),
        "notes/a.md": "intro\n" + checkbox_lines(4, symbol="x", prefix="a"),
    }
    split = _engine(InMemoryDocumentStore(files))
    combined = _engine(InMemoryDocumentStore(files))
    await split.reset()
    await combined.reset()

    parts = await split.load_next_batch(3) + await split.load_next_batch(5)
    whole = await combined.load_next_batch(8)

    assert _keys(parts) == _keys(whole)
    assert split.state.position == combined.state.position == (1, 1)


@pytest.mark.asyncio
async def test_reset_restarts_from_the_first_match() -> None:
    store = InMemoryDocumentStore({"notes/a.md": checkbox_lines(6)})
    engine = _engine(store)
    await engine.reset()

    before = await engine.load_next_batch(4)
    await engine.load_next_batch(4)
    assert engine.engine_state is EngineState.EXHAUSTED

    await engine.reset()
    after = await engine.load_next_batch(4)

    assert _keys(after) == _keys(before)
    assert engine.generation == 2


def _mixed_corpus() -> dict[str, str]:
    # Seven matches with an empty document and a match-free document in between.
    return {
        "notes/d.md": checkbox_lines(4, prefix="d"),
        "notes/c.md": "",
        "notes/b.md": "# Notes\nplain text\n- not a checkbox\n",
        "notes/a.md": "intro\n" + checkbox_lines(3, symbol="x", prefix="a"),
    }


@pytest.mark.asyncio
async def test_full_drain_is_identical_after_reset() -> None:
    engine = _engine(InMemoryDocumentStore(_mixed_corpus()))
    await engine.reset()

    first = await engine.drain(3)
    assert engine.engine_state is EngineState.EXHAUSTED

    await engine.reset()
    second = await engine.drain(3)

    assert len(first) == 7
    assert _keys(second) == _keys(first)


@pytest.mark.parametrize("n", range(1, 7))
@pytest.mark.asyncio
async def test_any_split_matches_one_load(n: int) -> None:
    split = _engine(InMemoryDocumentStore(_mixed_corpus()))
    whole = _engine(InMemoryDocumentStore(_mixed_corpus()))
    await split.reset()
    await whole.reset()

    parts = await split.load_next_batch(n) + await split.load_next_batch(7 - n)
    combined = await whole.load_next_batch(7)

    assert len(combined) == 7
    assert _keys(parts) == _keys(combined)


@pytest.mark.asyncio
async def test_idle_and_empty_corpus() -> None:
    engine = _engine(InMemoryDocumentStore())

    assert engine.engine_state is EngineState.IDLE
    assert await engine.load_next_batch(5) == []
    assert engine.engine_state is EngineState.IDLE

    await engine.reset()
    assert engine.engine_state is EngineState.READY
    assert await engine.load_next_batch(5) == []
    assert engine.engine_state is EngineState.EXHAUSTED


@pytest.mark.asyncio
async def test_batch_size_must_be_positive() -> None:
    engine = _engine(InMemoryDocumentStore())
    await engine.reset()

    with pytest.raises(ValueError):
        await engine.load_next_batch(0)


@pytest.mark.asyncio
async def test_vanished_and_unreadable_documents_are_skipped() -> None:
    store = InMemoryDocumentStore(
        {
            "notes/c.md": checkbox_lines(2, prefix="c"),
            "notes/b.md": checkbox_lines(2, prefix="b"),
            "notes/a.md": checkbox_lines(2, prefix="a"),
        }
    )
    engine = _engine(store)
    await engine.reset()
    store.remove("notes/c.md")
    store.fail_reads.add("notes/b.md")

    batch = await engine.load_next_batch(10)

    assert [t.document.path for t in batch] == ["notes/a.md", "notes/a.md"]
    assert engine.engine_state is EngineState.EXHAUSTED


@pytest.mark.asyncio
async def test_overlapping_calls_are_dropped() -> None:
    store = InMemoryDocumentStore({"notes/a.md": checkbox_lines(8)})
    engine = _engine(store)
    await engine.reset()

    store.gate = asyncio.Event()
    in_flight = asyncio.create_task(engine.load_next_batch(5))
    await asyncio.sleep(0)

    assert engine.is_scanning
    assert engine.engine_state is EngineState.SCANNING
    assert await engine.load_next_batch(5) == []
    assert await engine.reset_and_rescan() is False

    store.gate.set()
    first = await in_flight

    assert len(first) == 5
    assert not engine.is_scanning
    assert engine.state.position == (0, 5)


@pytest.mark.asyncio
async def test_reset_during_scan_discards_stale_batch() -> None:
    store = InMemoryDocumentStore({"notes/a.md": checkbox_lines(8)})
    engine = _engine(store)
    await engine.reset()

    store.gate = asyncio.Event()
    in_flight = asyncio.create_task(engine.load_next_batch(5))
    await asyncio.sleep(0)

    await engine.reset()
    store.gate.set()

    assert await in_flight == []
    assert engine.state.position == (0, 0)
    assert len(await engine.load_next_batch(5)) == 5


@pytest.mark.asyncio
async def test_date_filter_applies_on_next_reset() -> None:
    store = InMemoryDocumentStore(
        {
            "notes/2024-01-05.md": checkbox_lines(1, prefix="today"),
            "notes/2024-01-04.md": checkbox_lines(1, prefix="yesterday"),
        }
    )
    engine = _engine(store)
    engine.set_date_filter(today_filter(date(2024, 1, 5)))
    await engine.reset()

    batch = await engine.drain(10)

    assert [t.remaining_text for t in batch] == ["today 1"]


@pytest.mark.asyncio
async def test_advance_is_pure_and_tags_owner() -> None:
    store = InMemoryDocumentStore({"n/a.md": checkbox_lines(3)})
    grammar = StatusGrammar().compiled()
    start = ScanState.ready([Document.from_path("n/a.md", 0)], generation=1)

    batch, nxt = await advance(start, 2, read=store.read, grammar=grammar, owners={"n/a.md": "streams"})

    assert start.position == (0, 0)
    assert nxt.position == (0, 2)
    assert {t.source_name for t in batch} == {"streams"}

    rest, end = await advance(nxt, 2, read=store.read, grammar=grammar)
    assert [t.line_number for t in rest] == [3]
    assert end.exhausted


@pytest.mark.asyncio
async def test_document_linking_outside_the_vault_is_skipped(vault) -> None:
    vault.write("notes/a.md", "- [/] a1\n")
    outside = vault.root.parent / "outside.md"
    outside.write_text("- [ ] elsewhere\n", "utf-8")
    os.symlink(outside, vault.root / "notes" / "z-link.md")
    store = FileSystemDocumentStore(vault.root)
    grammar = StatusGrammar().compiled()
    # A link created after enumeration still reaches the scan.
    start = ScanState.ready(
        [Document.from_path("notes/z-link.md", 0), Document.from_path("notes/a.md", 0)],
        generation=1,
    )

    batch, end = await advance(start, 10, read=store.read, grammar=grammar)

    assert [t.remaining_text for t in batch] == ["a1"]
    assert end.exhausted
