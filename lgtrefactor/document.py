"""
Text document snapshots for lgtrefactor.

A TextDocument is an immutable view of one file's contents taken at the start
of a refactoring operation. All rewriters compute offsets and positions
against the same snapshot, so edits produced by different components can be
merged without re-reading the file.

Positions are zero-based (line, character) pairs, like the ranges reported by
editor symbol providers.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

_NEWLINE = re.compile(r"\n")


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line/character position."""

    line: int
    character: int


@dataclass(frozen=True)
class Range:
    """Half-open range between two positions."""

    start: Position
    end: Position

    @classmethod
    def of_line(cls, line: int, start: int = 0, end: int = 0) -> "Range":
        return cls(Position(line, start), Position(line, end))

    def contains_line(self, line: int) -> bool:
        return self.start.line <= line <= self.end.line


@dataclass(frozen=True)
class SourceLocation:
    """A file identity plus a range, as returned by symbol locators."""

    uri: str
    range: Range

    @property
    def line(self) -> int:
        return self.range.start.line

    def key(self):
        """Deduplication key: file identity and start line."""
        return (self.uri, self.range.start.line)


def normalize_uri(path: Union[str, Path]) -> str:
    """Canonical file identity used to group locations and edits."""
    return str(Path(path).expanduser().resolve())


class TextDocument:
    """Immutable snapshot of a source file."""

    def __init__(self, uri: str, text: str, version: int = 0):
        self.uri = uri
        self.text = text
        self.version = version
        self._line_starts: List[int] = [0] + [m.end() for m in _NEWLINE.finditer(text)]

    def __repr__(self) -> str:
        return f"TextDocument({self.uri!r}, lines={self.line_count})"

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    @property
    def eol(self) -> str:
        """Line terminator used by the document."""
        return "\r\n" if "\r\n" in self.text else "\n"

    def line_start(self, line: int) -> int:
        """Offset of the first character of ``line``."""
        return self._line_starts[line]

    def line_end(self, line: int) -> int:
        """Offset just past the last character of ``line`` (newline excluded)."""
        if line + 1 < len(self._line_starts):
            end = self._line_starts[line + 1] - 1
        else:
            end = len(self.text)
        if end > self._line_starts[line] and self.text[end - 1] == "\r":
            end -= 1
        return end

    def line_at(self, line: int) -> str:
        return self.text[self.line_start(line):self.line_end(line)]

    def lines(self, start: int, end: int) -> List[str]:
        """Lines ``start`` to ``end`` inclusive."""
        return [self.line_at(n) for n in range(start, min(end, self.line_count - 1) + 1)]

    def offset_at(self, position: Position) -> int:
        line = min(max(position.line, 0), self.line_count - 1)
        return min(self.line_start(line) + max(position.character, 0), self.line_end(line))

    def position_at(self, offset: int) -> Position:
        offset = min(max(offset, 0), len(self.text))
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line, offset - self._line_starts[line])

    def line_of(self, offset: int) -> int:
        return self.position_at(offset).line

    def range_of(self, start: int, end: int) -> Range:
        return Range(self.position_at(start), self.position_at(end))
