"""
Text edits and multi-file edit sets.

Every edit of one operation is expressed against the original snapshot of its
file. The WorkspaceEditSet keeps, per file, an ordered list of
non-overlapping edits; applying them bottom-up gives the rewritten text
without any intermediate state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Tuple

from .document import Position, Range, TextDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextEdit:
    """Replacement of ``range`` (in original coordinates) by ``new_text``."""

    range: Range
    new_text: str

    @classmethod
    def insert(cls, position: Position, text: str) -> "TextEdit":
        return cls(Range(position, position), text)

    @classmethod
    def replace(cls, range_: Range, text: str) -> "TextEdit":
        return cls(range_, text)

    @classmethod
    def delete(cls, range_: Range) -> "TextEdit":
        return cls(range_, "")

    @classmethod
    def from_offsets(cls, document: TextDocument, start: int, end: int, text: str) -> "TextEdit":
        return cls(document.range_of(start, end), text)

    @property
    def is_insert(self) -> bool:
        return self.range.start == self.range.end

    def overlaps(self, other: "TextEdit") -> bool:
        a, b = self.range, other.range
        if self.is_insert and other.is_insert:
            return a.start == b.start
        if self.is_insert:
            return b.start < a.start < b.end
        if other.is_insert:
            return a.start < b.start < a.end
        return a.start < b.end and b.start < a.end


class WorkspaceEditSet:
    """Mapping from file identity to an ordered list of non-overlapping edits."""

    def __init__(self) -> None:
        self._edits: Dict[str, List[TextEdit]] = {}
        self.warnings: List[str] = []

    def add(self, uri: str, edit: TextEdit) -> bool:
        """
        Add one edit for ``uri``.

        Returns False when the edit is a duplicate of an existing one or
        overlaps a different edit already recorded for the file; the first
        edit wins in both cases.
        """
        edits = self._edits.setdefault(uri, [])
        for existing in edits:
            if existing == edit:
                return False
            if existing.overlaps(edit):
                message = "Dropping overlapping edit in %s at %d:%d" % (
                    uri,
                    edit.range.start.line + 1,
                    edit.range.start.character + 1,
                )
                logger.warning(message)
                self.warnings.append(message)
                return False
        edits.append(edit)
        edits.sort(key=lambda e: (e.range.start, e.range.end))
        return True

    def extend(self, uri: str, edits: List[TextEdit]) -> int:
        return sum(1 for edit in edits if self.add(uri, edit))

    def get(self, uri: str) -> List[TextEdit]:
        return list(self._edits.get(uri, []))

    def entries(self) -> Iterator[Tuple[str, List[TextEdit]]]:
        for uri, edits in self._edits.items():
            if edits:
                yield uri, list(edits)

    @property
    def files(self) -> List[str]:
        return [uri for uri, _ in self.entries()]

    @property
    def size(self) -> int:
        """Number of files with at least one edit."""
        return len(self.files)

    @property
    def edit_count(self) -> int:
        return sum(len(edits) for _, edits in self.entries())

    def __len__(self) -> int:
        return self.size

    def __bool__(self) -> bool:
        return self.size > 0

    def to_dict(self) -> Dict[str, List[Dict[str, object]]]:
        return {
            uri: [
                {
                    "start": [e.range.start.line, e.range.start.character],
                    "end": [e.range.end.line, e.range.end.character],
                    "new_text": e.new_text,
                }
                for e in edits
            ]
            for uri, edits in self.entries()
        }


def apply_edits(document: TextDocument, edits: List[TextEdit]) -> str:
    """Apply non-overlapping edits to the snapshot text, bottom-up."""
    text = document.text
    ordered = sorted(
        edits,
        key=lambda e: (document.offset_at(e.range.start), document.offset_at(e.range.end)),
        reverse=True,
    )
    for edit in ordered:
        start = document.offset_at(edit.range.start)
        end = document.offset_at(edit.range.end)
        text = text[:start] + edit.new_text + text[end:]
    return text
