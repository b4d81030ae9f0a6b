# tests/conftest.py

from __future__ import annotations

import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from vault_tasks.config_store import JsonConfigStore, TaskConfig


class Vault:
    """Temporary markdown vault on disk."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write(self, rel: str, text: str, *, mtime: float | None = None) -> Path:
        full = self.root / rel
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_bytes(text.encode("utf-8"))
        if mtime is not None:
            os.utime(full, (mtime, mtime))
        return full

    def read(self, rel: str) -> str:
        return (self.root / rel).read_bytes().decode("utf-8")


@pytest.fixture()
def vault(tmp_path: Path) -> Vault:
    root = tmp_path / "vault"
    root.mkdir()
    return Vault(root)


@pytest.fixture()
def settings(tmp_path: Path, vault: Vault) -> SimpleNamespace:
    """
    Minimal settings object compatible with TaskService and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and .env files.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="vault-tasks-test",
        log_level="DEBUG",
        vault_dir=vault.root,
        data_dir=data_dir,
        config_path=data_dir / "config.json",
        batch_size=10,
        active_sources=["streams", "daily-notes"],
        folder_path="",
        folder_recursive=True,
        daily_notes_folder="Daily",
        stream_folders=["Streams"],
        only_show_today=False,
        election_scope="corpus",
        contender_mode="group",
        watch_interval_seconds=0.05,
    )


@pytest.fixture()
def config_store(settings: SimpleNamespace) -> JsonConfigStore:
    return JsonConfigStore(settings.config_path, defaults=TaskConfig.from_settings(settings))
