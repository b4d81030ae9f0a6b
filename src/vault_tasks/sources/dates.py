# src/vault_tasks/sources/dates.py

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date

from ..core.models import Document

DateFilter = Callable[[Document], bool]

# Any date-shaped file name: 2024-01-15, 20240115, 01-15-2024 / 15-01-2024.
_DATED_NAME = re.compile(r"\d{4}-\d{2}-\d{2}|\d{2}-\d{2}-\d{4}|\d{8}")


def today_tokens(today: date | None = None) -> list[str]:
    """Spellings of `today` that daily notes commonly carry in their name or path."""
    d = today or date.today()
    y, m, dd = f"{d.year:04d}", f"{d.month:02d}", f"{d.day:02d}"
    return [
        f"{y}-{m}-{dd}",
        f"{y}{m}{dd}",
        f"{m}-{dd}-{y}",
        f"{m}/{dd}/{y}",
        f"{dd}-{m}-{y}",
        f"{dd}/{m}/{y}",
    ]


def is_today_document(document: Document, today: date | None = None) -> bool:
    name = document.name.lower()
    path = document.path.lower()
    return any(tok in name or tok in path for tok in today_tokens(today))


def today_filter(today: date | None = None) -> DateFilter:
    """
    Predicate limiting enumeration to today's documents.

    Tokens are computed once, so a long-lived filter keeps the date it was built for.
    """
    tokens = today_tokens(today)

    def _is_today(document: Document) -> bool:
        name = document.name.lower()
        path = document.path.lower()
        return any(tok in name or tok in path for tok in tokens)

    return _is_today


def looks_dated(name: str) -> bool:
    return _DATED_NAME.search(name) is not None
