"""
Tolerant argument-list tokenizer for Logtalk source text.

Files are refactored while they may be syntactically invalid, so nothing here
parses Logtalk terms. The scanner only knows enough lexical structure to stay
out of trouble:

- nesting of ``()``, ``[]`` and ``{}``
- single, double and back-quoted text with backslash and doubled-quote escapes
- ``0'c`` character code literals
- ``%`` line comments and ``/* */`` block comments

On top of that it offers bracket matching, top-level comma splitting into
ArgumentSpans, clause terminator detection, and occurrence search for a
functor name. Arguments stay opaque text spans; callers never see a term model.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Set, Tuple

NO_MATCH = -1

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = frozenset(")]}")
QUOTES = frozenset("'\"`")
SYMBOL_CHARS = frozenset("+-*/\\^<>=~:.?@#&$")

_INDICATOR_TAIL = re.compile(r"\s*//?\s*\d")


def _is_char_code_quote(text: str, i: int) -> bool:
    """True when the quote at ``i`` belongs to a ``0'c`` literal."""
    if i == 0 or text[i - 1] != "0":
        return False
    return i < 2 or not (text[i - 2].isalnum() or text[i - 2] == "_")


def _skip_char_code(text: str, i: int, end: int) -> int:
    j = i + 1
    if j < end and text[j] == "\\":
        j += 2
    elif text.startswith("''", j):
        j += 2
    else:
        j += 1
    return min(j, end)


def _skip_quoted(text: str, i: int, end: int) -> int:
    # An unterminated quote ends with its line.
    quote = text[i]
    j = i + 1
    while j < end:
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            if j + 1 < end and text[j + 1] == quote:
                j += 2
                continue
            return j + 1
        if ch == "\n":
            return j
        j += 1
    return end


def iter_code(text: str, start: int = 0, end: Optional[int] = None) -> Iterator[Tuple[int, int, str]]:
    """
    Yield ``(start, stop, char)`` for each code token of ``text[start:end]``.

    Plain characters are yielded one by one. A quoted item (or character code
    literal) is yielded once with ``char`` set to its opening quote and
    ``stop`` just past its end. Comments are not yielded at all.
    """
    end = len(text) if end is None else min(end, len(text))
    i = start
    while i < end:
        ch = text[i]
        if ch in QUOTES:
            if ch == "'" and _is_char_code_quote(text, i):
                stop = _skip_char_code(text, i, end)
            else:
                stop = _skip_quoted(text, i, end)
            yield i, stop, ch
            i = stop
        elif ch == "%":
            newline = text.find("\n", i, end)
            i = end if newline == -1 else newline
        elif ch == "/" and i + 1 < end and text[i + 1] == "*":
            close = text.find("*/", i + 2, end)
            i = end if close == -1 else close + 2
        else:
            yield i, i + 1, ch
            i += 1


def code_offsets(text: str, start: int = 0, end: Optional[int] = None) -> Set[int]:
    """Offsets of plain code characters (outside quotes and comments)."""
    return {i for i, _, ch in iter_code(text, start, end) if ch not in QUOTES}


def find_matching_close(text: str, open_pos: int, end: Optional[int] = None) -> int:
    """Offset of the delimiter closing the one at ``open_pos``, or NO_MATCH."""
    if open_pos < 0 or open_pos >= len(text) or text[open_pos] not in OPENERS:
        return NO_MATCH
    depth = 0
    for i, _, ch in iter_code(text, open_pos, end):
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
            if depth == 0:
                return i
    return NO_MATCH


def _is_end_dot(text: str, i: int) -> bool:
    following = text[i + 1] if i + 1 < len(text) else ""
    if following and not following.isspace() and following != "%":
        return False
    previous = text[i - 1] if i > 0 else ""
    return previous not in SYMBOL_CHARS


def find_term_end(text: str, start: int, end: Optional[int] = None) -> int:
    """
    Offset of the ``.`` ending the clause or directive that starts at ``start``.

    The terminator must be followed by layout, a ``%`` comment or the end of
    the text, and must not be part of a symbolic atom such as ``=..``.
    Bracket depth is ignored so that unbalanced text still terminates.
    """
    for i, _, ch in iter_code(text, start, end):
        if ch == "." and _is_end_dot(text, i):
            return i
    return NO_MATCH


def iter_terms(text: str, start: int = 0, end: Optional[int] = None) -> Iterator[Tuple[int, int]]:
    """
    Yield ``(first, dot)`` for each clause or directive in ``text[start:end]``.

    ``first`` is the offset of the term's first code character and ``dot`` the
    offset of its terminator (or the end of the text for an unterminated
    trailing term).
    """
    end = len(text) if end is None else min(end, len(text))
    pos = start
    while pos < end:
        first = None
        for i, _, ch in iter_code(text, pos, end):
            if not ch.isspace():
                first = i
                break
        if first is None:
            return
        dot = find_term_end(text, first, end)
        if dot == NO_MATCH:
            yield first, end
            return
        yield first, dot
        pos = dot + 1


def strip_line_comment(line: str) -> str:
    """``line`` without its trailing ``%`` comment."""
    last = 0
    for _, stop, _ in iter_code(line):
        last = stop
    return line[:last]


def collapse_lines(lines: Iterable[str]) -> str:
    """Join a multi-line term into one line, a single space per line break."""
    return " ".join(strip_line_comment(line) for line in lines)


@dataclass(frozen=True)
class ArgumentSpan:
    """One top-level argument: offsets into the scanned text and its text."""

    start: int
    end: int
    text: str


def _make_span(text: str, first: Optional[int], last: Optional[int], fallback: int) -> ArgumentSpan:
    if first is None or last is None:
        return ArgumentSpan(fallback, fallback, "")
    return ArgumentSpan(first, last, text[first:last])


def split_arguments(text: str, open_pos: int, close_pos: int) -> List[ArgumentSpan]:
    """Split the text between two matching delimiters on top-level commas."""
    spans: List[ArgumentSpan] = []
    depth = 0
    first: Optional[int] = None
    last: Optional[int] = None
    segment_start = open_pos + 1
    saw_comma = False
    for i, stop, ch in iter_code(text, open_pos + 1, close_pos):
        if ch == "," and depth == 0:
            spans.append(_make_span(text, first, last, segment_start))
            saw_comma = True
            first = last = None
            segment_start = stop
            continue
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
        if not ch.isspace():
            if first is None:
                first = i
            last = stop
    if first is not None or saw_comma:
        spans.append(_make_span(text, first, last, segment_start))
    return spans


def parse_arguments(args_text: str) -> List[str]:
    """Arguments of an argument text given without its outer parentheses."""
    wrapped = "(" + args_text + ")"
    return [span.text for span in split_arguments(wrapped, 0, len(wrapped) - 1)]


@dataclass(frozen=True)
class ArgumentList:
    """
    A delimited, comma-separated list found in source text.

    Used for call arguments ``name(...)``, mode/meta templates, entity
    identifiers and ``[...]`` lists in info directives alike.
    """

    source: str = field(repr=False)
    open: int
    close: int
    spans: Tuple[ArgumentSpan, ...]

    @classmethod
    def at(cls, text: str, open_pos: int, end: Optional[int] = None) -> Optional["ArgumentList"]:
        close = find_matching_close(text, open_pos, end)
        if close == NO_MATCH:
            return None
        return cls(text, open_pos, close, tuple(split_arguments(text, open_pos, close)))

    @property
    def arity(self) -> int:
        return len(self.spans)

    @property
    def values(self) -> List[str]:
        return [span.text for span in self.spans]

    @property
    def stop(self) -> int:
        """Offset just past the closing delimiter."""
        return self.close + 1

    @property
    def opening(self) -> str:
        return self.source[self.open]

    @property
    def closing(self) -> str:
        return self.source[self.close]

    def separators(self) -> List[str]:
        """Text between consecutive arguments (commas and layout)."""
        return [
            self.source[left.end:right.start]
            for left, right in zip(self.spans, self.spans[1:])
        ]

    def joined(self, values: Optional[List[str]] = None) -> str:
        values = self.values if values is None else values
        return self.opening + ", ".join(values) + self.closing

    def rebuild(self, items: List[str], separators: List[str]) -> str:
        """
        Delimited text for ``items`` joined by ``separators``.

        The layout before the first and after the last original argument is
        kept; an empty result collapses to the bare delimiters.
        """
        if not items:
            return self.opening + self.closing
        if self.spans:
            lead = self.source[self.open + 1:self.spans[0].start]
            trail = self.source[self.spans[-1].end:self.close]
        else:
            lead = trail = ""
        parts = [self.opening, lead, items[0]]
        for separator, item in zip(separators, items[1:]):
            parts.append(separator)
            parts.append(item)
        parts.append(trail)
        parts.append(self.closing)
        return "".join(parts)


@dataclass(frozen=True)
class Occurrence:
    """A functor name in code, with its argument list when it has one."""

    name: str
    start: int
    name_end: int
    arguments: Optional[ArgumentList]

    @property
    def arity(self) -> int:
        return 0 if self.arguments is None else self.arguments.arity

    @property
    def end(self) -> int:
        return self.name_end if self.arguments is None else self.arguments.stop


def find_occurrences(
    text: str,
    name: str,
    start: int = 0,
    end: Optional[int] = None,
    include_object_refs: bool = False,
) -> List[Occurrence]:
    """
    Every code occurrence of ``name`` in ``text[start:end]``.

    Indicators (``name/N``, ``name//N``) are not occurrences. Unless
    ``include_object_refs`` is set, neither are object references such as
    ``name::goal`` or ``name(X)::goal``. Occurrences whose argument list never
    closes are skipped.
    """
    end = len(text) if end is None else min(end, len(text))
    code = code_offsets(text, start, end)
    pattern = re.compile(r"(?<!\w)" + re.escape(name) + r"(?!\w)")
    found: List[Occurrence] = []
    for match in pattern.finditer(text, start, end):
        name_start, name_end = match.span()
        if name_start not in code:
            continue
        if _INDICATOR_TAIL.match(text, name_end):
            continue
        arguments = None
        if name_end < len(text) and text[name_end] == "(":
            arguments = ArgumentList.at(text, name_end)
            if arguments is None:
                continue
        occurrence = Occurrence(name, name_start, name_end, arguments)
        if not include_object_refs and text.startswith("::", occurrence.end):
            continue
        found.append(occurrence)
    return found
