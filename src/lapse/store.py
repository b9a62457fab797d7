"""In-memory time data for documents that are currently open."""
from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from lapse.models import DocumentTimeData


class DocumentTimeStore:
    """Authoritative state of open documents, keyed by document id.

    There is no locking here: callers serialize access per document.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, DocumentTimeData] = {}

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, document_id: str) -> Optional[DocumentTimeData]:
        return self._documents.get(document_id)

    def get_or_create(self, document_id: str) -> DocumentTimeData:
        return self.set_if_absent(document_id, DocumentTimeData())

    def set_if_absent(self, document_id: str, data: DocumentTimeData) -> DocumentTimeData:
        """Insert ``data`` unless the id is present; return the stored value."""

        return self._documents.setdefault(document_id, data)

    def replace(self, document_id: str, data: DocumentTimeData) -> None:
        self._documents[document_id] = data

    def remove(self, document_id: str) -> Optional[DocumentTimeData]:
        return self._documents.pop(document_id, None)

    def rename(self, old_id: str, new_id: str) -> None:
        data = self._documents.pop(old_id, None)
        if data is not None:
            self._documents[new_id] = data

    def items(self) -> Iterator[Tuple[str, DocumentTimeData]]:
        return iter(list(self._documents.items()))


__all__ = ["DocumentTimeStore"]
