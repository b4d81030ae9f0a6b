# src/vault_tasks/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Settings only seed defaults; user-editable state (status rules, active sources)
  lives in the JSON config store under data_dir.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ENV_PREFIX = "VAULT_TASKS"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Paths ----
    vault_dir: Path
    data_dir: Path
    config_path: Path

    # ---- Paging ----
    batch_size: int

    # ---- Sources (defaults for a fresh config store) ----
    active_sources: List[str]
    folder_path: str
    folder_recursive: bool
    daily_notes_folder: str
    stream_folders: List[str]
    only_show_today: bool

    # ---- Top task ----
    election_scope: str  # "corpus" | "window"
    contender_mode: str  # "none" | "group" | "group_and_next"

    # ---- Change watcher ----
    watch_interval_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "vault-tasks")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        vault_dir = _env_path(_k("VAULT_DIR"), Path("."))
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/vault-tasks"))
        config_path = _env_path(_k("CONFIG_PATH"), data_dir / "config.json")

        batch_size = max(1, _env_int(_k("BATCH_SIZE"), 10))

        active_sources = _env_list(_k("ACTIVE_SOURCES"), ["streams", "daily-notes"])
        folder_path = _env(_k("FOLDER_PATH"), "").strip()
        folder_recursive = _env_bool(_k("FOLDER_RECURSIVE"), True)
        daily_notes_folder = _env(_k("DAILY_NOTES_FOLDER"), "").strip()
        stream_folders = _env_list(_k("STREAM_FOLDERS"), [])
        only_show_today = _env_bool(_k("ONLY_SHOW_TODAY"), False)

        election_scope = _env(_k("ELECTION_SCOPE"), "corpus").strip().lower()
        contender_mode = _env(_k("CONTENDER_MODE"), "group").strip().lower()

        watch_interval_seconds = _env_float(_k("WATCH_INTERVAL_SECONDS"), 5.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            vault_dir=vault_dir,
            data_dir=data_dir,
            config_path=config_path,
            batch_size=batch_size,
            active_sources=active_sources,
            folder_path=folder_path,
            folder_recursive=folder_recursive,
            daily_notes_folder=daily_notes_folder,
            stream_folders=stream_folders,
            only_show_today=only_show_today,
            election_scope=election_scope,
            contender_mode=contender_mode,
            watch_interval_seconds=watch_interval_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
