# src/vault_tasks/tasks/writer.py

from __future__ import annotations

import logging
from dataclasses import replace

from ..core.errors import DocumentReadError, StaleTaskError, WriteBackError
from ..core.models import TaskLine
from ..core.ports import DocumentStore
from ..scanning.grammar import CHECKBOX_PREFIX, validate_symbol

logger = logging.getLogger(__name__)


def rewrite_status(line: str, new_symbol: str) -> str | None:
    """Replace the bracket contents of a checkbox line; None if `line` is not a checkbox."""
    m = CHECKBOX_PREFIX.match(line)
    if m is None:
        return None
    return f"{line[: m.start('symbol')]}{new_symbol}{line[m.end('symbol') :]}"


async def update_status_symbol(store: DocumentStore, task: TaskLine, new_symbol: str) -> TaskLine:
    """
    Rewrite exactly the status symbol of `task` in its document.

    Indentation, trailing text and line endings are preserved. The line must still be
    the one that was scanned, otherwise StaleTaskError is raised. Failures are not
    retried and no rescan is triggered.
    """
    validate_symbol(new_symbol)
    path = task.document.path

    try:
        text = await store.read(path)
    except DocumentReadError as e:
        raise WriteBackError(f"Cannot update {path}:{task.line_number}: {e}") from e

    lines = text.split("\n")
    index = task.line_number - 1
    if index < 0 or index >= len(lines):
        raise StaleTaskError(f"{path} has no line {task.line_number} anymore")

    current = lines[index]
    has_cr = current.endswith("\r")
    body = current.removesuffix("\r")
    if body.strip() != task.raw_line.strip():
        raise StaleTaskError(f"{path}:{task.line_number} changed since it was scanned")

    updated = rewrite_status(body, new_symbol)
    if updated is None:
        raise StaleTaskError(f"{path}:{task.line_number} is no longer a checkbox")

    lines[index] = updated + ("\r" if has_cr else "")
    try:
        await store.write(path, "\n".join(lines))
    except (DocumentReadError, OSError) as e:
        raise WriteBackError(f"Cannot write {path}: {e}") from e

    logger.info("Status %r -> %r at %s:%d", task.status_symbol, new_symbol, path, task.line_number)
    m = CHECKBOX_PREFIX.match(updated)
    rest = updated[m.end() :] if m is not None else ""
    return replace(
        task,
        raw_line=updated,
        status_symbol=new_symbol,
        remaining_text=rest[1:] if rest[:1] in (" ", "\t") else rest,
    )
