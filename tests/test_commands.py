# tests/test_commands.py

from __future__ import annotations

import pytest

from vault_tasks.cli.bootstrap import create_initial_state
from vault_tasks.cli.commands import CommandRegistry, registry


@pytest.fixture()
def app_state(settings, vault):
    vault.write("Streams/work.md", "- [ ] write report\n- [/] refactor parser\n", mtime=100)
    vault.write("Daily/2024-01-05.md", "- [!] call bank\n- [x] pay rent\n", mtime=200)
    return create_initial_state(settings=settings)


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params_sync_and_async(app_state) -> None:
    reg = CommandRegistry()
    notes: list[str] = []

    def h2(state, args):
        return f"h2:{','.join(args)}"

    async def h3(state, args, emit):
        if emit is not None:
            emit("working")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert await reg.handle(app_state, "/a x y") == "h2:x,y"
    assert await reg.handle(app_state, "/AA") == "h2:"
    assert await reg.handle(app_state, "/b", emit=notes.append) == "h3"
    assert notes == ["working"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(app_state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(app_state, "hello") is None
    assert "Unknown command" in (await reg.handle(app_state, "/nope") or "")
    assert "Empty command" in (await reg.handle(app_state, "/") or "")


def test_bootstrap_creates_local_dirs(app_state, settings) -> None:
    assert settings.data_dir.is_dir()
    assert app_state.config_store.path == settings.config_path
    assert app_state.store.root == settings.vault_dir.resolve()


@pytest.mark.asyncio
async def test_more_lists_tasks_and_top_task(app_state) -> None:
    await app_state.service.initialize()

    reply = await registry.handle(app_state, "/more 3")

    assert "write report" in reply
    assert "call bank" in reply
    assert "pay rent" not in reply
    assert "Top task: [/] refactor parser" in reply
    assert app_state.last_page is not None

    assert await registry.handle(app_state, "/more zero") == "Usage: /more [count]"


@pytest.mark.asyncio
async def test_mark_rewrites_the_document(app_state, vault) -> None:
    await app_state.service.initialize()
    await registry.handle(app_state, "/more")

    reply = await registry.handle(app_state, "/mark 2 x")

    assert reply.startswith("Updated:")
    assert vault.read("Streams/work.md") == "- [ ] write report\n- [x] refactor parser\n"
    assert "No task #9" in await registry.handle(app_state, "/mark 9 x")
    assert "Invalid status" in await registry.handle(app_state, "/mark 1 xy")


@pytest.mark.asyncio
async def test_mark_reports_stale_lines(app_state, vault) -> None:
    await app_state.service.initialize()
    await registry.handle(app_state, "/more")
    vault.write("Streams/work.md", "- [ ] something else\n")

    reply = await registry.handle(app_state, "/mark 1 x")

    assert reply.startswith("Could not update the task")


@pytest.mark.asyncio
async def test_filter_and_rank_update_config(app_state) -> None:
    await app_state.service.initialize()

    reply = await registry.handle(app_state, "/filter x off")
    assert "pay rent" not in reply
    assert not app_state.service.needs_reset

    assert "set to 7" in await registry.handle(app_state, "/rank + 7")
    assert {r.symbol: r.rank_class for r in app_state.config_store.status_rules}["+"] == 7
    assert "No status" in await registry.handle(app_state, "/filter Q on")
    assert "Usage" in await registry.handle(app_state, "/rank +")


@pytest.mark.asyncio
async def test_sources_scope_and_status(app_state) -> None:
    await app_state.service.initialize()

    listing = await registry.handle(app_state, "/sources")
    assert "streams: active, available" in listing
    assert "folder: inactive, unavailable" in listing
    assert "Unknown source" in await registry.handle(app_state, "/sources calendar")

    reply = await registry.handle(app_state, "/sources daily-notes")
    assert "call bank" in reply and "write report" not in reply

    assert "may be stale" in await registry.handle(app_state, "/scope window")
    status = await registry.handle(app_state, "/status")
    assert "Election scope: window" in status
    assert "Sources: active=daily-notes" in status
