# src/vault_tasks/config_store.py

"""
Persisted, user-editable configuration.

Settings (env) only seed the defaults; everything the user changes at runtime
(status rules, batch size, active sources, per-source parameters) lives in one
JSON file under data_dir. Loading is best-effort; saving is atomic.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .core.errors import GrammarConfigError, UnknownSourceError
from .core.models import SourceParams, StatusRule
from .scanning.grammar import DEFAULT_STATUS_RULES, validate_rules, validate_symbol
from .sources.strategies import STRATEGY_TYPES

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ConfigChange:
    key: str  # "status_rules" | "batch_size" | "active_sources" | "sources"
    value: Any
    old_value: Any


ConfigListener = Callable[[ConfigChange], None]


@dataclass(slots=True)
class TaskConfig:
    status_rules: list[StatusRule] = field(default_factory=lambda: list(DEFAULT_STATUS_RULES))
    batch_size: int = 10
    active_sources: list[str] = field(default_factory=lambda: ["streams", "daily-notes"])
    sources: SourceParams = field(default_factory=SourceParams)

    @classmethod
    def from_settings(cls, settings) -> TaskConfig:
        return cls(
            status_rules=list(DEFAULT_STATUS_RULES),
            batch_size=max(1, int(getattr(settings, "batch_size", 10))),
            active_sources=list(getattr(settings, "active_sources", ["streams", "daily-notes"])),
            sources=SourceParams(
                folder_path=str(getattr(settings, "folder_path", "") or ""),
                folder_recursive=bool(getattr(settings, "folder_recursive", True)),
                daily_notes_folder=str(getattr(settings, "daily_notes_folder", "") or ""),
                stream_folders=list(getattr(settings, "stream_folders", []) or []),
                only_show_today=bool(getattr(settings, "only_show_today", False)),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_rules": [r.to_dict() for r in self.status_rules],
            "batch_size": self.batch_size,
            "active_sources": list(self.active_sources),
            "sources": {
                "folder_path": self.sources.folder_path,
                "folder_recursive": self.sources.folder_recursive,
                "daily_notes_folder": self.sources.daily_notes_folder,
                "stream_folders": list(self.sources.stream_folders),
                "only_show_today": self.sources.only_show_today,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], fallback: TaskConfig) -> TaskConfig:
        """Take every valid field from `data`, the rest from `fallback`."""
        rules = fallback.status_rules
        raw_rules = data.get("status_rules")
        if isinstance(raw_rules, list):
            try:
                rules = validate_rules(StatusRule.from_dict(r) for r in raw_rules if isinstance(r, dict))
            except GrammarConfigError:
                logger.warning("Stored status rules are invalid; using defaults", exc_info=True)

        batch_size = fallback.batch_size
        raw_batch = data.get("batch_size")
        if isinstance(raw_batch, int) and not isinstance(raw_batch, bool) and raw_batch >= 1:
            batch_size = raw_batch

        active = fallback.active_sources
        raw_active = data.get("active_sources")
        if isinstance(raw_active, list):
            active = [str(n) for n in raw_active if str(n) in STRATEGY_TYPES]

        sources = fallback.sources
        raw_sources = data.get("sources")
        if isinstance(raw_sources, dict):
            folders = raw_sources.get("stream_folders", sources.stream_folders)
            sources = SourceParams(
                folder_path=str(raw_sources.get("folder_path", sources.folder_path) or ""),
                folder_recursive=bool(raw_sources.get("folder_recursive", sources.folder_recursive)),
                daily_notes_folder=str(raw_sources.get("daily_notes_folder", sources.daily_notes_folder) or ""),
                stream_folders=[str(f) for f in folders] if isinstance(folders, list) else [],
                only_show_today=bool(raw_sources.get("only_show_today", sources.only_show_today)),
            )

        return cls(status_rules=list(rules), batch_size=batch_size, active_sources=list(active), sources=sources)


class JsonConfigStore:
    """
    The configuration store consumed by TaskService.

    Every mutation saves immediately and notifies listeners with a ConfigChange.
    Listeners decide what to invalidate (grammar cache, corpus, ...).
    """

    def __init__(self, path: str | Path, *, defaults: TaskConfig | None = None) -> None:
        self._path = Path(path)
        self._defaults = defaults or TaskConfig()
        self._listeners: list[ConfigListener] = []
        self._config = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def config(self) -> TaskConfig:
        return self._config

    @property
    def status_rules(self) -> list[StatusRule]:
        return list(self._config.status_rules)

    @property
    def batch_size(self) -> int:
        return self._config.batch_size

    @property
    def active_sources(self) -> list[str]:
        return list(self._config.active_sources)

    @property
    def sources(self) -> SourceParams:
        return self._config.sources

    # ---- persistence ----

    def _load(self) -> TaskConfig:
        if not self._path.exists():
            logger.info("No config at %s; using defaults", self._path)
            return TaskConfig.from_dict({}, self._defaults)
        try:
            data = json.loads(self._path.read_text("utf-8"))
            if not isinstance(data, dict):
                logger.warning("Config %s is not a JSON object; using defaults", self._path)
                return TaskConfig.from_dict({}, self._defaults)
            config = TaskConfig.from_dict(data, self._defaults)
            logger.info("Loaded config from %s (%d status rules)", self._path, len(config.status_rules))
            return config
        except Exception:
            logger.exception("Failed to load config from %s; using defaults", self._path)
            return TaskConfig.from_dict({}, self._defaults)

    def save(self, config: TaskConfig | None = None) -> None:
        config = config or self._config
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(config.to_dict(), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)
        logger.debug("Saved config to %s", self._path)

    # ---- change notification ----

    def on_change(self, listener: ConfigListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self, key: str, **changes: Any) -> None:
        """Save a copy with `changes` applied; only a successful save replaces the live config."""
        old_value = getattr(self._config, key)
        updated = replace(self._config, **changes)
        self.save(updated)
        self._config = updated
        change = ConfigChange(key=key, value=getattr(updated, key), old_value=old_value)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Config listener failed for %s", key)

    # ---- status rules ----

    def _find(self, symbol: str) -> int:
        for i, rule in enumerate(self._config.status_rules):
            if rule.symbol == symbol:
                return i
        raise KeyError(f"No status rule for symbol {symbol!r}")

    def _replace_rules(self, rules: list[StatusRule]) -> None:
        self._commit("status_rules", status_rules=list(validate_rules(rules)))

    def set_status_included(self, symbol: str, included: bool) -> None:
        rules = list(self._config.status_rules)
        i = self._find(symbol)
        rules[i] = replace(rules[i], included=bool(included))
        self._replace_rules(rules)

    def set_rank_class(self, symbol: str, rank_class: int | None) -> None:
        rules = list(self._config.status_rules)
        i = self._find(symbol)
        rules[i] = replace(rules[i], rank_class=rank_class)
        self._replace_rules(rules)

    def add_status_rule(self, rule: StatusRule) -> None:
        validate_symbol(rule.symbol)
        self._replace_rules([*self._config.status_rules, rule])

    def remove_status_rule(self, symbol: str) -> None:
        i = self._find(symbol)
        rules = list(self._config.status_rules)
        del rules[i]
        self._replace_rules(rules)

    def reorder_status_rules(self, symbols: list[str]) -> None:
        by_symbol = {r.symbol: r for r in self._config.status_rules}
        if sorted(symbols) != sorted(by_symbol):
            raise ValueError("reorder must list every existing status symbol exactly once")
        self._replace_rules([by_symbol[s] for s in symbols])

    # ---- paging / sources ----

    def set_batch_size(self, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._commit("batch_size", batch_size=int(batch_size))

    def set_active_sources(self, names: list[str]) -> None:
        unknown = [n for n in names if n not in STRATEGY_TYPES]
        if unknown:
            raise UnknownSourceError(f"Unknown source(s): {', '.join(unknown)}")
        self._commit("active_sources", active_sources=list(dict.fromkeys(names)))

    def update_source_params(self, **changes: Any) -> None:
        try:
            new = replace(self._config.sources, **changes)
        except TypeError as e:
            raise ValueError(f"Unknown source parameter: {e}") from e
        self._commit("sources", sources=new)
