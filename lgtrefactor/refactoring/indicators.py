"""
Indicator parsing and predicate/non-terminal resolution.

The resolver turns the raw indicator text found under the cursor into a
ResolvedIndicator: the canonical identity of the construct being refactored,
its arity before and after the edit, and the declaration location when one
exists. Deciding between ``name/N`` and ``name//N`` is heuristic, in this
order of authority:

1. a declaring scope directive (``name//`` vs ``name/`` in its text)
2. a ``//`` separator in the raw indicator text
3. the neck of the defining clause (``-->`` vs ``:-`` or a fact)
4. a ``-->`` on the cursor line
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..document import Position, SourceLocation, TextDocument
from ..interfaces import CancellationToken, DocumentProvider, SymbolLocator
from .arguments import ArgumentList, code_offsets, collapse_lines, find_term_end
from .errors import TypeDeterminationFailed, UnresolvedIndicator
from .operations import EditOperation
from .ranges import clause_range, directive_range

logger = logging.getLogger(__name__)

_INDICATOR = re.compile(r"^\s*([a-z][a-zA-Z0-9_]*)\s*(//?)\s*(\d+)\s*$")
_QUALIFICATION = re.compile(r"^(?:.*::|\^\^|@)")
_INDICATOR_SUFFIX = re.compile(r"\s*(//?)\s*(\d+)")
_NAME_BEFORE_SEPARATOR = re.compile(r"([a-z][a-zA-Z0-9_]*)\s*(//?)\s*$")


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


class IndicatorKind(Enum):
    PREDICATE = "predicate"
    NON_TERMINAL = "non_terminal"

    @property
    def separator(self) -> str:
        return "//" if self is IndicatorKind.NON_TERMINAL else "/"

    @property
    def neck(self) -> str:
        return "-->" if self is IndicatorKind.NON_TERMINAL else ":-"


@dataclass(frozen=True)
class Indicator:
    """``name/arity`` or ``name//arity``."""

    name: str
    arity: int
    kind: IndicatorKind = IndicatorKind.PREDICATE

    @classmethod
    def parse(cls, text: str) -> Optional["Indicator"]:
        match = _INDICATOR.match(strip_qualification(text))
        if not match:
            return None
        name, separator, arity = match.groups()
        kind = IndicatorKind.NON_TERMINAL if separator == "//" else IndicatorKind.PREDICATE
        return cls(name, int(arity), kind)

    @property
    def is_non_terminal(self) -> bool:
        return self.kind is IndicatorKind.NON_TERMINAL

    @property
    def text(self) -> str:
        return f"{self.name}{self.kind.separator}{self.arity}"

    def with_arity(self, arity: int) -> "Indicator":
        return Indicator(self.name, arity, self.kind)

    def with_kind(self, kind: IndicatorKind) -> "Indicator":
        return Indicator(self.name, self.arity, kind)

    def pattern(self) -> "re.Pattern[str]":
        """Regex for this exact indicator; group 1 is the arity digits."""
        if self.is_non_terminal:
            separator = r"\s*//\s*"
        else:
            separator = r"\s*/(?!/)\s*"
        return re.compile(
            r"(?<!\w)" + re.escape(self.name) + separator + "(" + str(self.arity) + r")(?!\d)"
        )

    def __str__(self) -> str:
        return self.text


def strip_qualification(text: str) -> str:
    """Drop ``Obj::``, ``::``, ``^^`` and ``@`` prefixes."""
    return _QUALIFICATION.sub("", text.strip())


def indicator_under_cursor(document: TextDocument, position: Position) -> Optional[str]:
    """
    Raw indicator text for the name at ``position``.

    Handles indicators (``foo/2``, ``foo//1``, cursor on either part), calls
    and heads (the arity is the argument count) and bare atoms (arity 0).
    """
    text = document.text
    offset = document.offset_at(position)
    line_start = document.line_start(position.line)
    line_end = document.line_end(position.line)
    start = offset
    while start > line_start and _is_word_char(text[start - 1]):
        start -= 1
    end = offset
    while end < line_end and _is_word_char(text[end]):
        end += 1
    word = text[start:end]
    if not word:
        return None
    if start not in code_offsets(text, line_start, line_end):
        return None

    if word.isdigit():
        match = _NAME_BEFORE_SEPARATOR.search(text, line_start, start)
        if match:
            return f"{match.group(1)}{match.group(2)}{word}"
        return None
    if not word[0].islower():
        return None

    suffix = _INDICATOR_SUFFIX.match(text, end)
    if suffix:
        return f"{word}{suffix.group(1)}{suffix.group(2)}"
    if end < len(text) and text[end] == "(":
        arguments = ArgumentList.at(text, end)
        if arguments is None:
            # unbalanced text: retry on the comment-free collapsed lines
            collapsed = collapse_lines(document.lines(position.line, position.line + 50))
            arguments = ArgumentList.at(collapsed, end - line_start)
        if arguments is None:
            return None
        return f"{word}/{arguments.arity}"
    return f"{word}/0"


@dataclass(frozen=True)
class ResolvedIndicator:
    """Identity of the construct being refactored for one operation."""

    indicator: Indicator
    new_indicator: Indicator
    declaration: Optional[SourceLocation]
    inference: str

    @property
    def name(self) -> str:
        return self.indicator.name

    @property
    def arity(self) -> int:
        return self.indicator.arity

    @property
    def kind(self) -> IndicatorKind:
        return self.indicator.kind

    @property
    def is_non_terminal(self) -> bool:
        return self.indicator.is_non_terminal


class IndicatorResolver:
    """Resolves cursor input into a ResolvedIndicator."""

    def __init__(self, locator: SymbolLocator, documents: DocumentProvider):
        self.locator = locator
        self.documents = documents

    def resolve(
        self,
        document: TextDocument,
        position: Position,
        operation: EditOperation,
        indicator_text: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> ResolvedIndicator:
        raw = indicator_text or indicator_under_cursor(document, position)
        if not raw:
            raise UnresolvedIndicator(
                f"No predicate or non-terminal indicator found at line {position.line + 1}"
            )
        parsed = Indicator.parse(raw)
        if parsed is None:
            raise UnresolvedIndicator(f"Not a predicate or non-terminal indicator: {raw}")
        logger.debug("Resolving %s at %s:%d", parsed, document.uri, position.line + 1)

        try:
            declaration = self.locator.find_declaration(document, position, token)
        except Exception as e:
            raise TypeDeterminationFailed(
                f"Could not determine whether {parsed.name} is a predicate or a non-terminal: {e}"
            ) from e

        kind, inference = self._determine_kind(document, position, parsed, raw, declaration, token)
        indicator = parsed.with_kind(kind)
        operation.validate(indicator.arity)
        new_indicator = indicator.with_arity(operation.new_arity(indicator.arity))
        logger.debug("Resolved %s -> %s (by %s)", indicator, new_indicator, inference)
        return ResolvedIndicator(indicator, new_indicator, declaration, inference)

    def _determine_kind(self, document, position, parsed, raw, declaration, token):
        if declaration is not None:
            kind = self._kind_from_declaration(parsed, declaration)
            if kind is not None:
                return kind, "declaration"

        if "//" in raw:
            return IndicatorKind.NON_TERMINAL, "indicator"

        kind = self._kind_from_definition(document, position, parsed, token)
        if kind is not None:
            return kind, "definition"

        if "-->" in document.line_at(position.line):
            return IndicatorKind.NON_TERMINAL, "cursor_line"
        return IndicatorKind.PREDICATE, "default"

    def _kind_from_declaration(
        self, parsed: Indicator, declaration: SourceLocation
    ) -> Optional[IndicatorKind]:
        declaring = self.documents.open(declaration.uri)
        first, last = directive_range(declaring, declaration.line)
        directive = collapse_lines(declaring.lines(first, last))
        name = re.escape(parsed.name)
        if re.search(r"(?<!\w)" + name + r"\s*//", directive):
            return IndicatorKind.NON_TERMINAL
        if re.search(r"(?<!\w)" + name + r"\s*/", directive):
            return IndicatorKind.PREDICATE
        return None

    def _kind_from_definition(
        self,
        document: TextDocument,
        position: Position,
        parsed: Indicator,
        token: Optional[CancellationToken],
    ) -> Optional[IndicatorKind]:
        try:
            definition = self.locator.find_definition(document, position, token)
        except Exception as e:
            logger.warning("Definition lookup failed for %s: %s", parsed, e)
            return None
        if definition is None:
            return None
        defining = self.documents.open(definition.uri)
        first, last = clause_range(defining, definition.line)
        start = defining.line_start(first)
        stop = find_term_end(defining.text, start)
        clause_end = defining.line_end(last) if stop < 0 else stop
        return neck_kind(defining.text, start, clause_end)


def neck_kind(text: str, start: int, end: int) -> Optional[IndicatorKind]:
    """Kind implied by the first neck of the clause in ``text[start:end]``."""
    code = code_offsets(text, start, end)
    for i in sorted(code):
        if text.startswith("-->", i):
            return IndicatorKind.NON_TERMINAL
        if text.startswith(":-", i):
            return IndicatorKind.PREDICATE
    if end <= len(text) and end > start:
        # a fact
        return IndicatorKind.PREDICATE
    return None
