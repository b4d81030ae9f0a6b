# tests/test_scanner_merge.py

from __future__ import annotations

from vault_tasks.core.models import Document
from vault_tasks.scanning.grammar import DEFAULT_STATUS_RULES, compile_grammar
from vault_tasks.scanning.merge import group_by_document, merge_task_lines, sort_for_display
from vault_tasks.scanning.scanner import scan_document

from .fakes import make_task

GRAMMAR = compile_grammar(DEFAULT_STATUS_RULES)


def test_scan_document_reports_one_based_lines_in_order() -> None:
    doc = Document.from_path("Daily/2024-01-15.md", 10.0)
    text = "# Today\n- [ ] first\nplain text\n  - [x] second\n"

    tasks = scan_document(doc, text, GRAMMAR, source_name="daily-notes")

    assert [(t.line_number, t.status_symbol, t.remaining_text) for t in tasks] == [
        (2, ".", "first"),
        (4, "x", "second"),
    ]
    assert all(t.source_name == "daily-notes" for t in tasks)
    assert tasks[1].indent == "  "
    assert not any(t.is_top_task for t in tasks)


def test_scan_document_handles_crlf() -> None:
    doc = Document.from_path("a.md", 1.0)

    tasks = scan_document(doc, "- [/] one\r\n- [!] two\r\n", GRAMMAR)

    assert [t.raw_line for t in tasks] == ["- [/] one", "- [!] two"]
    assert tasks[1].remaining_text == "two"


def test_merge_keeps_first_seen_per_location() -> None:
    a1 = make_task("a.md", 1, ".")
    a2 = make_task("a.md", 2, "x")
    b1 = make_task("b.md", 1, "/")

    merged = merge_task_lines([a1, a2], [b1, make_task("a.md", 1, ".")], [a2])

    assert merged == [a1, a2, b1]


def test_sort_for_display_is_recent_first_and_stable() -> None:
    old1 = make_task("old.md", 1, ".", mtime=1.0)
    old2 = make_task("old.md", 5, ".", mtime=1.0)
    new = make_task("new.md", 3, ".", mtime=9.0)

    assert sort_for_display([old1, old2, new]) == [new, old1, old2]


def test_group_by_document_preserves_order() -> None:
    a1 = make_task("a.md", 1, ".")
    b1 = make_task("b.md", 1, ".")
    a2 = make_task("a.md", 2, ".")

    groups = group_by_document([a1, b1, a2])

    assert [(doc.path, tasks) for doc, tasks in groups] == [("a.md", [a1, a2]), ("b.md", [b1])]
