# src/vault_tasks/scanning/merge.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.models import Document, TaskLine


def merge_task_lines(*groups: Iterable[TaskLine]) -> list[TaskLine]:
    """
    Combine per-strategy results, first-seen wins.

    Tasks are keyed on `task.location`, the (document path, line number) pair.
    Later duplicates are dropped and first-seen order is preserved. The stripped line
    text is left out of the key: one line of one document is one task, and if two
    strategies read it at different moments only the first reading is kept.
    """
    seen: set[tuple[str, int]] = set()
    out: list[TaskLine] = []
    for group in groups:
        for task in group:
            if task.location in seen:
                continue
            seen.add(task.location)
            out.append(task)
    return out


def dedupe(tasks: Iterable[TaskLine]) -> list[TaskLine]:
    return merge_task_lines(tasks)


def sort_for_display(tasks: Iterable[TaskLine]) -> list[TaskLine]:
    """Most recently modified documents first; stable within a document."""
    return sorted(tasks, key=lambda t: t.document.last_modified, reverse=True)


def group_by_document(tasks: Iterable[TaskLine]) -> list[tuple[Document, list[TaskLine]]]:
    groups: dict[str, tuple[Document, list[TaskLine]]] = {}
    for task in tasks:
        entry = groups.get(task.document.path)
        if entry is None:
            entry = (task.document, [])
            groups[task.document.path] = entry
        entry[1].append(task)
    return list(groups.values())
