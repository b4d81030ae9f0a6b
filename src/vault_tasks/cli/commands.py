# src/vault_tasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.errors import GrammarConfigError, UnknownSourceError, VaultTasksError, WriteBackError
from ..core.models import TaskLine
from ..core.state import AppState
from ..election.elector import Election, ElectionScope
from ..tasks.service import Page

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /more, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command. Handlers may be sync or async.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def format_task(index: int, task: TaskLine) -> str:
    marker = "*" if task.is_top_task else ("~" if task.is_top_task_contender else " ")
    return (
        f"{index:>3}.{marker}[{task.status_symbol}] {task.remaining_text}"
        f"  ({task.document.path}:{task.line_number})"
    )


def format_election(election: Election | None) -> str:
    if election is None or election.winner is None:
        return "Top task: (none)"
    w = election.winner
    note = " (from displayed tasks only, may be stale)" if election.stale else ""
    return f"Top task{note}: [{w.status_symbol}] {w.remaining_text}  ({w.document.path}:{w.line_number})"


def _format_page(page: Page, *, only_new: bool) -> str:
    lines: list[str] = []
    if page.dropped:
        return "A scan is already running; try again in a moment."

    new_at = {t.location for t in page.new_tasks}
    for i, task in enumerate(page.tasks, start=1):
        if only_new and task.location not in new_at:
            continue
        lines.append(format_task(i, task))

    if not lines:
        lines.append("No tasks." if not page.tasks else "No more tasks.")
    lines.append(format_election(page.election))
    if page.exhausted:
        lines.append(f"(end of list, {len(page.tasks)} task(s))")
    return "\n".join(lines)


def _parse_positive(raw: str) -> int | None:
    try:
        n = int(raw)
    except ValueError:
        return None
    return n if n >= 1 else None


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_more(state: AppState, args: list[str]) -> str:
    """
    /more      -> load the next page (configured batch size)
    /more 25   -> load the next 25 tasks
    """
    batch_size = None
    if args:
        batch_size = _parse_positive(args[0])
        if batch_size is None:
            return "Usage: /more [count]"

    page = await state.service.load_more(batch_size)
    state.last_page = page
    return _format_page(page, only_new=True)


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    if not await state.service.reset_and_rescan():
        return "A scan is already running; try again in a moment."
    page = await state.service.load_more()
    state.last_page = page
    warnings = state.service.warnings()
    body = _format_page(page, only_new=False)
    if warnings:
        body = "\n".join([*(f"[WARN] {w}" for w in warnings), body])
    return body


def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.service.displayed
    if not tasks:
        return "Nothing loaded yet. Use /more."
    return "\n".join(format_task(i, t) for i, t in enumerate(tasks, start=1))


async def cmd_top(state: AppState, args: list[str]) -> str:
    election = await state.service.current_election()
    return format_election(election)


def cmd_status(state: AppState, args: list[str]) -> str:
    service = state.service
    engine = service.engine
    cursor = engine.state
    rules = service.grammar.rules
    included = "".join(f"[{r.symbol}]" for r in rules if r.included) or "(none)"
    ranked = ", ".join(f"{r.symbol}={r.rank_class}" for r in rules if r.rank_class is not None) or "(none)"
    lines = [
        "Status:",
        f"  Engine: {engine.engine_state.value} (document {cursor.document_index}/{len(cursor.documents)}, "
        f"match {cursor.task_index})",
        f"  Sources: active={', '.join(service.registry.active_names()) or '-'} "
        f"available={', '.join(service.registry.available_names()) or '-'}",
        f"  Only today: {'ON' if state.config_store.sources.only_show_today else 'OFF'}",
        f"  Statuses shown: {included}",
        f"  Top-task ranks: {ranked}",
        f"  Election scope: {service.scope.value}",
        f"  Batch size: {state.config_store.batch_size}",
    ]
    if service.needs_reset:
        lines.append("  Vault or settings changed: use /refresh.")
    lines.extend(f"  [WARN] {w}" for w in service.warnings())
    return "\n".join(lines)


async def cmd_filter(state: AppState, args: list[str]) -> str:
    """/filter <symbol> on|off  (use "space" for the blank symbol)"""
    if len(args) != 2 or args[1].lower() not in ("on", "off"):
        return "Usage: /filter <symbol> on|off"
    symbol = " " if args[0].lower() == "space" else args[0]
    try:
        state.config_store.set_status_included(symbol, args[1].lower() == "on")
    except KeyError:
        return f"No status [{symbol}] is configured."
    return await cmd_refresh(state, [])


def cmd_rank(state: AppState, args: list[str]) -> str:
    """/rank <symbol> <n|none>"""
    if len(args) != 2:
        return "Usage: /rank <symbol> <n|none>"
    raw = args[1].lower()
    rank: int | None
    if raw == "none":
        rank = None
    else:
        rank = _parse_positive(raw)
        if rank is None:
            return "Rank must be a positive number or 'none'."
    try:
        state.config_store.set_rank_class(args[0], rank)
    except KeyError:
        return f"No status [{args[0]}] is configured."
    return f"Rank of [{args[0]}] set to {rank if rank is not None else 'none'}. Use /top to re-elect."


async def cmd_mark(state: AppState, args: list[str]) -> str:
    """/mark <n> <symbol>  (n as shown by /list)"""
    if len(args) != 2:
        return "Usage: /mark <n> <symbol>"
    index = _parse_positive(args[0])
    tasks = state.service.displayed
    if index is None or index > len(tasks):
        return f"No task #{args[0]} (have {len(tasks)})."
    symbol = " " if args[1].lower() == "space" else args[1]
    try:
        updated = await state.service.update_status_symbol(tasks[index - 1], symbol)
    except GrammarConfigError as e:
        return f"Invalid status: {e}"
    except WriteBackError as e:
        logger.warning("Write-back failed: %s", e)
        return f"Could not update the task: {e}"
    return f"Updated: {format_task(index, updated)}"


async def cmd_sources(state: AppState, args: list[str]) -> str:
    """
    /sources                  -> show sources
    /sources streams folder   -> activate these sources (in this order)
    """
    if not args:
        out = ["Sources:"]
        active = state.service.registry.active_names()
        for name in state.service.registry.names():
            info = state.service.registry.get(name).describe()
            flag = "active" if name in active else "inactive"
            ready = "available" if info.get("available") else "unavailable"
            out.append(f"  {name}: {flag}, {ready}")
        return "\n".join(out)
    try:
        state.config_store.set_active_sources([a.lower() for a in args])
    except UnknownSourceError as e:
        return str(e)
    return await cmd_refresh(state, [])


async def cmd_today(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() not in ("on", "off"):
        current = "ON" if state.config_store.sources.only_show_today else "OFF"
        return f"Only-today filter is {current}. Use /today on or /today off."
    state.config_store.update_source_params(only_show_today=args[0].lower() == "on")
    return await cmd_refresh(state, [])


async def cmd_scope(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() not in ("corpus", "window"):
        return f"Election scope is {state.service.scope.value}. Use /scope corpus or /scope window."
    state.service.set_scope(ElectionScope(args[0].lower()))
    return await cmd_top(state, [])


async def cmd_batch(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Batch size is {state.config_store.batch_size}."
    n = _parse_positive(args[0])
    if n is None:
        return "Usage: /batch <count>"
    try:
        state.config_store.set_batch_size(n)
    except VaultTasksError as e:
        return str(e)
    return f"Batch size set to {n}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("more", cmd_more, help_text="Load the next page of tasks: /more [count].", aliases=["m"])
registry.register("refresh", cmd_refresh, help_text="Rescan the vault from the start.", aliases=["r"])
registry.register("list", cmd_list, help_text="Show every task loaded so far.", aliases=["ls"])
registry.register("top", cmd_top, help_text="Show the current top task.")
registry.register("status", cmd_status, help_text="Show engine, source and filter state.")
registry.register("filter", cmd_filter, help_text="Show/hide a status: /filter <symbol> on|off.")
registry.register("rank", cmd_rank, help_text="Set top-task rank of a status: /rank <symbol> <n|none>.")
registry.register("mark", cmd_mark, help_text="Change a task's status: /mark <n> <symbol>.")
registry.register("sources", cmd_sources, help_text="Show or set active sources: /sources [names...].")
registry.register("today", cmd_today, help_text="Only scan today's notes: /today on|off.")
registry.register("scope", cmd_scope, help_text="Top-task election scope: /scope corpus|window.")
registry.register("batch", cmd_batch, help_text="Show or set the page size: /batch [count].")
