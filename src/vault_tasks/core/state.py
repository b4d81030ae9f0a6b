# src/vault_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config_store import JsonConfigStore
    from ..documents.store import FileSystemDocumentStore
    from ..tasks.service import Page, TaskService


@dataclass
class AppState:
    # Store Settings on the state for easy access in commands.
    settings: object

    store: FileSystemDocumentStore
    config_store: JsonConfigStore
    service: TaskService

    last_page: Page | None = None
