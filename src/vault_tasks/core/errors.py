# src/vault_tasks/core/errors.py

from __future__ import annotations


class VaultTasksError(Exception):
    """Base class for errors raised by vault_tasks."""


class DocumentReadError(VaultTasksError):
    """A document could not be read (I/O or decoding failure)."""

    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        self.reason = reason
        msg = f"Cannot read document {path!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class DocumentNotFoundError(DocumentReadError):
    """The document was deleted or renamed since it was enumerated."""


class GrammarConfigError(VaultTasksError):
    """Status rules do not fit the strict one-character checkbox grammar."""


class UnknownSourceError(VaultTasksError):
    """A source strategy name is not registered."""


class WriteBackError(VaultTasksError):
    """A status symbol could not be written back into its document."""


class StaleTaskError(WriteBackError):
    """The target line changed since the task was scanned."""
