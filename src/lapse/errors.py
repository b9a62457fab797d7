"""Exceptions raised by lapse."""
from __future__ import annotations


class LapseError(RuntimeError):
    """Base class for lapse errors."""


class ActiveEntryError(LapseError):
    """Raised when a document already has a running entry."""

    def __init__(self, document_id: str, entry_id: str):
        super().__init__(f"Document '{document_id}' already has an active entry ({entry_id}).")
        self.document_id = document_id
        self.entry_id = entry_id


class DocumentNotFoundError(LapseError):
    """Raised when a document cannot be found in the vault."""

    def __init__(self, document_id: str):
        super().__init__(f"Document '{document_id}' does not exist.")
        self.document_id = document_id


__all__ = ["LapseError", "ActiveEntryError", "DocumentNotFoundError"]
