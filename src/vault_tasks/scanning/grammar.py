# src/vault_tasks/scanning/grammar.py

from __future__ import annotations

"""
Status grammar.

A checkbox line is `<indent>- [<symbol>] <text>` where <symbol> is exactly one
character drawn from the included status rules (plus their aliases). The
compiled matcher is cached per rule-set version.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from ..core.errors import GrammarConfigError
from ..core.models import StatusRule

logger = logging.getLogger(__name__)

# Loose shape used only by write-back: any bracket content on a checkbox line.
CHECKBOX_PREFIX = re.compile(r"^(?P<indent>[ \t]*)- \[(?P<symbol>[^\]]*)\]")

DEFAULT_STATUS_RULES: tuple[StatusRule, ...] = (
    StatusRule(".", "To-do", alias_symbols=(" ",)),
    StatusRule("+", "Next", rank_class=3),
    StatusRule("/", "In Progress", rank_class=1),
    StatusRule("x", "Done"),
    StatusRule("!", "Important", rank_class=2),
    StatusRule("*", "Star"),
    StatusRule("?", "Question"),
    StatusRule("r", "Review"),
    StatusRule("b", "Blocked"),
    StatusRule("<", "Scheduled"),
    StatusRule(">", "Forward"),
    StatusRule("#", "Backburner"),
    StatusRule("-", "Cancelled"),
)


def validate_symbol(symbol: str) -> str:
    if not isinstance(symbol, str) or len(symbol) != 1:
        raise GrammarConfigError(f"Status symbol must be exactly one character, got {symbol!r}")
    if symbol in "\r\n]":
        raise GrammarConfigError(f"Status symbol {symbol!r} cannot appear inside a checkbox")
    return symbol


def validate_rules(rules: Iterable[StatusRule]) -> list[StatusRule]:
    """Check every symbol and alias against the strict grammar; symbols must be unique."""
    out: list[StatusRule] = []
    seen: dict[str, str] = {}
    for rule in rules:
        for sym in rule.symbols:
            validate_symbol(sym)
            owner = seen.get(sym)
            if owner is not None:
                raise GrammarConfigError(f"Symbol {sym!r} declared by both {owner!r} and {rule.symbol!r}")
            seen[sym] = rule.symbol
        out.append(rule)
    return out


@dataclass(slots=True, frozen=True)
class CheckboxMatch:
    indent: str
    raw_symbol: str
    symbol: str  # canonical
    text: str


@dataclass(slots=True, frozen=True)
class CompiledGrammar:
    """One line matcher for the included symbols. pattern is None when nothing is allowed."""

    pattern: re.Pattern[str] | None
    canonical: dict[str, str]
    version: int

    @property
    def matches_nothing(self) -> bool:
        return self.pattern is None

    def match(self, line: str) -> CheckboxMatch | None:
        if self.pattern is None:
            return None
        m = self.pattern.match(line)
        if m is None:
            return None
        raw = m.group("symbol")
        return CheckboxMatch(
            indent=m.group("indent"),
            raw_symbol=raw,
            symbol=self.canonical.get(raw, raw),
            text=m.group("text"),
        )


def compile_grammar(rules: Iterable[StatusRule], *, version: int = 0) -> CompiledGrammar:
    canonical: dict[str, str] = {}
    for rule in rules:
        if not rule.included:
            continue
        for sym in rule.symbols:
            canonical.setdefault(sym, rule.symbol)

    if not canonical:
        return CompiledGrammar(pattern=None, canonical={}, version=version)

    alternatives = "|".join(re.escape(sym) for sym in canonical)
    pattern = re.compile(rf"^(?P<indent>[ \t]*)- \[(?P<symbol>{alternatives})\][ \t](?P<text>.*)$")
    return CompiledGrammar(pattern=pattern, canonical=canonical, version=version)


class StatusGrammar:
    """
    Owns the status rules and the cached compiled matcher.

    Any rule mutation goes through set_rules(), which bumps `version` and drops the
    cache; compiled() recompiles lazily on the next call.
    """

    def __init__(self, rules: Iterable[StatusRule] = DEFAULT_STATUS_RULES) -> None:
        self._rules: tuple[StatusRule, ...] = tuple(validate_rules(rules))
        self._version = 1
        self._compiled: CompiledGrammar | None = None

    @property
    def version(self) -> int:
        return self._version

    @property
    def rules(self) -> tuple[StatusRule, ...]:
        return self._rules

    def set_rules(self, rules: Iterable[StatusRule]) -> None:
        self._rules = tuple(validate_rules(rules))
        self._version += 1
        self._compiled = None
        logger.debug("Status rules replaced (version=%d, included=%d)", self._version, len(self.included_symbols()))

    def included_symbols(self) -> list[str]:
        return [r.symbol for r in self._rules if r.included]

    def rule_for(self, symbol: str) -> StatusRule | None:
        for rule in self._rules:
            if symbol in rule.symbols:
                return rule
        return None

    def compiled(self) -> CompiledGrammar:
        if self._compiled is None:
            self._compiled = compile_grammar(self._rules, version=self._version)
            logger.debug("Status grammar compiled (version=%d)", self._version)
        return self._compiled
