# src/vault_tasks/scanning/scanner.py

from __future__ import annotations

from ..core.models import Document, TaskLine
from .grammar import CompiledGrammar


def scan_document(
    document: Document,
    text: str,
    grammar: CompiledGrammar,
    *,
    source_name: str = "",
) -> list[TaskLine]:
    """Return every checkbox line of `text` allowed by `grammar`, in line order."""
    if grammar.matches_nothing or not text:
        return []

    out: list[TaskLine] = []
    for i, line in enumerate(text.split("\n"), start=1):
        line = line.removesuffix("\r")
        m = grammar.match(line)
        if m is None:
            continue
        out.append(
            TaskLine(
                document=document,
                line_number=i,
                raw_line=line,
                status_symbol=m.symbol,
                remaining_text=m.text,
                indent=m.indent,
                source_name=source_name,
            )
        )
    return out
