# src/vault_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the document store, config store and TaskService into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..config_store import JsonConfigStore, TaskConfig
from ..core.state import AppState
from ..documents.store import FileSystemDocumentStore
from ..tasks.service import TaskService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.config_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = FileSystemDocumentStore(settings.vault_dir)
    config_store = JsonConfigStore(settings.config_path, defaults=TaskConfig.from_settings(settings))
    service = TaskService(settings, config_store, store)

    logger.info("Vault %s, config %s", store.root, config_store.path)
    return AppState(
        settings=settings,
        store=store,
        config_store=config_store,
        service=service,
    )
