"""
Line ranges of directives and clauses.

Ranges are (first line, last line) pairs, inclusive, zero-based. They are
computed on the raw snapshot text with the tolerant tokenizer, so a file with
syntax errors still yields usable (if approximate) ranges.
"""

import re
from typing import Iterator, Optional, Tuple

from ..document import TextDocument
from .arguments import NO_MATCH, find_term_end, iter_terms, strip_line_comment

LineRange = Tuple[int, int]

_DIRECTIVE_START = re.compile(r"^\s*:-")
_DIRECTIVE_TAIL = re.compile(r"\)\.(\s*(%.*)?)?$")
_TERM_TAIL = re.compile(r"(?<![+\-*/\\^<>=~:.?@#&$])\.\s*$")


def is_directive_line(line: str) -> bool:
    return bool(_DIRECTIVE_START.match(line))


def ends_term(line: str) -> bool:
    """True when the line's code ends with a clause terminator."""
    return bool(_TERM_TAIL.search(strip_line_comment(line)))


def directive_range(document: TextDocument, line: int) -> LineRange:
    """
    Lines of the directive starting on ``line``.

    The directive ends at its terminating ``.``. If the terminator cannot be
    found before another directive starts, the first line ending in ``).``
    (optionally followed by a comment) is used, and failing that the directive
    is taken to be a single line.
    """
    dot = find_term_end(document.text, document.line_start(line))
    if dot != NO_MATCH:
        last = document.line_of(dot)
        if not any(is_directive_line(document.line_at(n)) for n in range(line + 1, last + 1)):
            return line, last
    for n in range(line, document.line_count):
        if n > line and is_directive_line(document.line_at(n)):
            break
        if _DIRECTIVE_TAIL.search(document.line_at(n)):
            return line, n
    return line, line


def clause_range(document: TextDocument, line: int) -> LineRange:
    """Lines of the clause starting on ``line`` (single line when unterminated)."""
    dot = find_term_end(document.text, document.line_start(line))
    if dot == NO_MATCH:
        return line, line
    return line, document.line_of(dot)


def enclosing_directive(document: TextDocument, line: int) -> Optional[LineRange]:
    """Range of the directive containing ``line``, if any."""
    for n in range(line, -1, -1):
        text = document.line_at(n)
        if is_directive_line(text):
            first, last = directive_range(document, n)
            return (first, last) if last >= line else None
        if n < line and ends_term(text):
            return None
    return None


def iter_term_ranges(document: TextDocument) -> Iterator[Tuple[int, int, int, int]]:
    """Yield ``(first line, last line, start offset, dot offset)`` per term."""
    for first, dot in iter_terms(document.text):
        yield document.line_of(first), document.line_of(dot), first, dot


def enclosing_term(document: TextDocument, line: int) -> Optional[LineRange]:
    """Range of the directive or clause containing ``line``."""
    for first_line, last_line, _, _ in iter_term_ranges(document):
        if first_line > line:
            return None
        if last_line >= line:
            return first_line, last_line
    return None
