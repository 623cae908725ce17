"""
Clause head and call rewriting.

Rewrites every occurrence of the refactored predicate or non-terminal inside a
line range, arity-exact. When a location points at a clause head, the range
grows to cover the consecutive clauses of the same predicate so that all of
its heads and recursive calls are rewritten together.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from ..document import TextDocument
from ..edits import TextEdit
from .arguments import ArgumentList, Occurrence, find_occurrences, find_term_end, iter_code, iter_terms
from .indicators import ResolvedIndicator
from .operations import EditKind, EditOperation, OccurrenceRewriter
from .ranges import LineRange, clause_range

logger = logging.getLogger(__name__)

_ATOM = re.compile(r"[a-z][a-zA-Z0-9_]*")
_QUALIFIER_SEPARATOR = re.compile(r"\s*::\s*")


def first_code(text: str, start: int, end: Optional[int] = None) -> Optional[int]:
    for i, _, ch in iter_code(text, start, end):
        if not ch.isspace():
            return i
    return None


def _skip_qualifier(text: str, start: int) -> int:
    """Offset after an ``Entity::`` or ``entity(...)::`` prefix at ``start``, if any."""
    atom = _ATOM.match(text, start)
    if not atom:
        return start
    after = atom.end()
    if after < len(text) and text[after] == "(":
        parameters = ArgumentList.at(text, after)
        if parameters is None:
            return start
        after = parameters.stop
    separator = _QUALIFIER_SEPARATOR.match(text, after)
    return separator.end() if separator else start


def head_at(text: str, start: int, name: str, arity: int, non_terminal: bool) -> Optional[Occurrence]:
    """
    The clause head for ``name`` with ``arity`` beginning at ``start``.

    The head may be ``Entity::``-qualified. Non-terminal rules need a
    ``-->`` neck; predicate clauses need ``:-`` or a terminating ``.``.
    """
    if text.startswith(":-", start):
        return None
    head_start = _skip_qualifier(text, start)
    occurrences = find_occurrences(text, name, head_start, head_start + len(name) + 1)
    if not occurrences or occurrences[0].start != head_start or occurrences[0].arity != arity:
        return None
    head = occurrences[0]
    neck = first_code(text, head.end)
    if neck is None:
        return None
    if text.startswith("-->", neck):
        return head if non_terminal else None
    if text.startswith(":-", neck):
        return None if non_terminal else head
    if text[neck] == "." and find_term_end(text, neck, neck + 1) == neck:
        return None if non_terminal else head
    return None


class ClauseRewriter:
    """Rewrites clause heads and calls of one indicator in one document."""

    def __init__(self, document: TextDocument, resolved: ResolvedIndicator, operation: EditOperation):
        self.document = document
        self.resolved = resolved
        self.operation = operation
        value = operation.name if operation.kind is EditKind.ADD else None
        self._rewriter = OccurrenceRewriter(resolved.name, resolved.arity, operation, value)

    def head_on_line(self, line: int) -> Optional[Occurrence]:
        start = first_code(self.document.text, self.document.line_start(line), self.document.line_end(line))
        if start is None:
            return None
        return self._head_at(start)

    def _head_at(self, offset: int) -> Optional[Occurrence]:
        return head_at(
            self.document.text,
            offset,
            self.resolved.name,
            self.resolved.arity,
            self.resolved.is_non_terminal,
        )

    def clause_block(self, line: int) -> Optional[LineRange]:
        """
        Lines of the consecutive clauses starting with the head on ``line``.

        The block stops at the first term that is not a clause for the same
        name and arity (a directive, an entity boundary or another predicate).
        """
        start = first_code(self.document.text, self.document.line_start(line), self.document.line_end(line))
        if start is None or self._head_at(start) is None:
            return None
        last_line = line
        for first, dot in iter_terms(self.document.text, start):
            if self._head_at(first) is None:
                break
            last_line = self.document.line_of(dot)
        return line, last_line

    def range_for(self, line: int) -> LineRange:
        """Clause block at ``line``, or the term from ``line`` to its terminator."""
        block = self.clause_block(line)
        if block is not None:
            return block
        return clause_range(self.document, line)

    def rewrite_lines(self, first: int, last: int) -> List[TextEdit]:
        start = self.document.line_start(first)
        end = self.document.line_end(last)
        edits = [
            TextEdit.from_offsets(self.document, s, e, new)
            for s, e, new in self._rewriter.edits(self.document.text, start, end)
        ]
        if not edits:
            logger.debug(
                "No %s occurrence with arity %d in %s:%d-%d",
                self.resolved.name,
                self.resolved.arity,
                self.document.uri,
                first + 1,
                last + 1,
            )
        return edits
