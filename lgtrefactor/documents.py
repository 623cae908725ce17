"""
Snapshot store for workspace documents.

DocumentStore reads each file at most once and hands out the same
TextDocument for the rest of the operation, which is what guarantees that all
rewriters see one consistent snapshot.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from .document import TextDocument, normalize_uri

logger = logging.getLogger(__name__)


class DocumentStore:
    """Caching DocumentProvider backed by the file system."""

    def __init__(self, encoding: str = "utf-8", max_file_size: Optional[int] = None):
        self.encoding = encoding
        self.max_file_size = max_file_size
        self._documents: Dict[str, TextDocument] = {}

    def open(self, uri: Union[str, Path]) -> TextDocument:
        key = normalize_uri(uri)
        document = self._documents.get(key)
        if document is None:
            path = Path(key)
            if self.max_file_size is not None and path.stat().st_size > self.max_file_size:
                raise OSError(f"File too large to refactor: {path}")
            with open(path, "r", encoding=self.encoding, newline="") as f:
                document = TextDocument(key, f.read())
            self._documents[key] = document
            logger.debug("Loaded snapshot of %s (%d lines)", key, document.line_count)
        return document

    def add(self, document: TextDocument) -> TextDocument:
        """Register an in-memory document (e.g. an unsaved editor buffer)."""
        self._documents[normalize_uri(document.uri)] = document
        return document

    def documents(self) -> Iterable[TextDocument]:
        return list(self._documents.values())

    def clear(self) -> None:
        self._documents.clear()

    def __contains__(self, uri: object) -> bool:
        return isinstance(uri, (str, Path)) and normalize_uri(uri) in self._documents
