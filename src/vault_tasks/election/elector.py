# src/vault_tasks/election/elector.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from ..core.models import StatusRule, TaskLine


class ContenderMode(StrEnum):
    """Which candidates besides the winner get is_top_task_contender."""

    NONE = "none"
    GROUP = "group"  # the rest of the winning rank class
    GROUP_AND_NEXT = "group_and_next"  # ... plus the next rank class down

    @classmethod
    def parse(cls, raw: str | None) -> ContenderMode:
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.GROUP


class ElectionScope(StrEnum):
    CORPUS = "corpus"
    WINDOW = "window"  # only what is displayed; always reported as possibly stale

    @classmethod
    def parse(cls, raw: str | None) -> ElectionScope:
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.CORPUS


@dataclass(slots=True, frozen=True)
class Election:
    winner: TaskLine | None
    contenders: tuple[TaskLine, ...] = ()
    scope: ElectionScope = ElectionScope.WINDOW
    stale: bool = True
    rank_class: int | None = None


def rank_table(rules: Iterable[StatusRule]) -> dict[str, int]:
    """Symbol (aliases included) -> rank class, for rules eligible for election."""
    ranks: dict[str, int] = {}
    for rule in rules:
        if rule.rank_class is None:
            continue
        for sym in rule.symbols:
            ranks.setdefault(sym, rule.rank_class)
    return ranks


def _group_by_rank(candidates: Iterable[TaskLine], ranks: dict[str, int]) -> dict[int, list[TaskLine]]:
    groups: dict[int, list[TaskLine]] = {}
    for task in candidates:
        rank = ranks.get(task.status_symbol)
        if rank is None:
            continue
        groups.setdefault(rank, []).append(task)
    return groups


def _most_recent(group: list[TaskLine]) -> TaskLine:
    # Strict ">" keeps the earliest candidate on equal timestamps.
    best = group[0]
    for task in group[1:]:
        if task.document.last_modified > best.document.last_modified:
            best = task
    return best


def elect(candidates: Iterable[TaskLine], rules: Iterable[StatusRule]) -> TaskLine | None:
    """
    Pick at most one top task.

    Lowest non-empty rank class wins; inside it the most recently modified document;
    remaining ties go to the earliest candidate. The returned copy has is_top_task=True.
    """
    groups = _group_by_rank(candidates, rank_table(rules))
    if not groups:
        return None
    winner = _most_recent(groups[min(groups)])
    return winner.with_flags(top=True)


def run_election(
    candidates: Iterable[TaskLine],
    rules: Iterable[StatusRule],
    *,
    contenders: ContenderMode = ContenderMode.GROUP,
    scope: ElectionScope = ElectionScope.WINDOW,
) -> Election:
    """elect() plus contender marking and scope bookkeeping."""
    stale = scope is ElectionScope.WINDOW
    groups = _group_by_rank(candidates, rank_table(rules))
    if not groups:
        return Election(winner=None, scope=scope, stale=stale)

    classes = sorted(groups)
    top_class = classes[0]
    winner = _most_recent(groups[top_class])

    pool: list[TaskLine] = []
    if contenders is not ContenderMode.NONE:
        pool.extend(groups[top_class])
        if contenders is ContenderMode.GROUP_AND_NEXT and len(classes) > 1:
            pool.extend(groups[classes[1]])

    return Election(
        winner=winner.with_flags(top=True),
        contenders=tuple(t.with_flags(contender=True) for t in pool if t.location != winner.location),
        scope=scope,
        stale=stale,
        rank_class=top_class,
    )


def apply_election(tasks: Iterable[TaskLine], election: Election) -> list[TaskLine]:
    """Copies of `tasks` with top/contender flags set from `election` (all others cleared)."""
    winner_at = election.winner.location if election.winner is not None else None
    contender_at = {t.location for t in election.contenders}
    return [
        t.with_flags(top=t.location == winner_at, contender=t.location in contender_at)
        for t in tasks
    ]
