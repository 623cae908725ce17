"""
Text-scanning workspace index for Logtalk sources.

WorkspaceIndex is the SymbolLocator used when no language server is
available. It scans every ``.lgt``/``.logtalk`` file under a root directory
with the same tolerant tokenizer the rewriters use:

- declarations are scope directives (``public/protected/private``) naming
  the indicator
- definitions and implementations are clause heads; for an entity name the
  definition is the entity's opening directive
- references are code occurrences with the matching argument count, plus
  indicators; references to an entity match any parameter count

Same-named predicates of unrelated entities are not told apart.
"""

from __future__ import annotations

import glob
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from .config import WorkspaceConfig
from .document import Position, Range, SourceLocation, TextDocument, normalize_uri
from .documents import DocumentStore
from .interfaces import CancellationToken
from .refactoring.arguments import code_offsets, find_occurrences, iter_terms
from .refactoring.clauses import head_at
from .refactoring.directives import DirectiveKind, classify_directive
from .refactoring.entities import entity_under_cursor, parse_entity_opening
from .refactoring.errors import OperationCancelled
from .refactoring.indicators import indicator_under_cursor
from .refactoring.ranges import directive_range

logger = logging.getLogger(__name__)

_RAW_INDICATOR = re.compile(r"^([a-z][a-zA-Z0-9_]*)(//?)(\d+)$")
_EXPLICIT_INDICATOR = re.compile(r"\s*//?\s*\d")


@dataclass(frozen=True)
class Symbol:
    """Name and arity under a cursor; ``separator`` is None for calls."""

    name: str
    arity: int
    separator: Optional[str] = None

    def accepts_non_terminal(self) -> bool:
        return self.separator in (None, "//")

    def accepts_predicate(self) -> bool:
        return self.separator in (None, "/")

    def indicator_pattern(self) -> "re.Pattern[str]":
        if self.separator == "//":
            separator = r"\s*//\s*"
        elif self.separator == "/":
            separator = r"\s*/(?!/)\s*"
        else:
            separator = r"\s*//?\s*"
        return re.compile(r"(?<!\w)" + re.escape(self.name) + separator + str(self.arity) + r"(?!\d)")


def _check(token: Optional[CancellationToken]) -> None:
    if token is not None and token.is_cancellation_requested:
        raise OperationCancelled("Symbol lookup cancelled")


class WorkspaceIndex:
    """SymbolLocator over the Logtalk files of one directory tree."""

    def __init__(
        self,
        root,
        documents: Optional[DocumentStore] = None,
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
    ):
        self.root = Path(root)
        self.documents = documents or DocumentStore()
        settings = WorkspaceConfig()
        self.include_patterns = include_patterns or settings.include_patterns
        self.exclude_patterns = exclude_patterns if exclude_patterns is not None else settings.exclude_patterns
        self._files: Optional[List[str]] = None

    @classmethod
    def from_config(cls, root, settings: WorkspaceConfig, documents: Optional[DocumentStore] = None):
        store = documents or DocumentStore(settings.encoding, settings.max_file_size)
        return cls(root, store, settings.include_patterns, settings.exclude_patterns)

    # Workspace files

    def files(self) -> List[str]:
        if self._files is None:
            found = set()
            for pattern in self.include_patterns:
                found.update(glob.glob(str(self.root / pattern), recursive=True))
            for pattern in self.exclude_patterns:
                found.difference_update(glob.glob(str(self.root / pattern), recursive=True))
            self._files = sorted(normalize_uri(f) for f in found if Path(f).is_file())
            logger.debug("Indexed %d Logtalk files under %s", len(self._files), self.root)
        return self._files

    def _documents(self, first: Optional[TextDocument] = None) -> Iterator[TextDocument]:
        """Workspace documents, ``first`` (the querying document) leading."""
        seen = set()
        if first is not None:
            seen.add(normalize_uri(first.uri))
            yield first
        for uri in self.files():
            if uri in seen:
                continue
            try:
                yield self.documents.open(uri)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping %s: %s", uri, e)

    # Symbols

    def symbol_at(self, document: TextDocument, position: Position) -> Optional[Symbol]:
        raw = indicator_under_cursor(document, position)
        if raw is None:
            return None
        name, separator, arity = _RAW_INDICATOR.match(raw).groups()
        text = document.text
        start = end = document.offset_at(position)
        while start > 0 and (text[start - 1].isalnum() or text[start - 1] == "_"):
            start -= 1
        while end < len(text) and (text[end].isalnum() or text[end] == "_"):
            end += 1
        # an indicator (cursor on its name or its arity) fixes the separator
        explicit = text[start:end].isdigit() or bool(_EXPLICIT_INDICATOR.match(text, end))
        return Symbol(name, int(arity), separator if explicit else None)

    def _location(self, document: TextDocument, start: int, end: int) -> SourceLocation:
        return SourceLocation(document.uri, document.range_of(start, end))

    # SymbolLocator

    def find_declaration(
        self, document: TextDocument, position: Position, token: Optional[CancellationToken] = None
    ) -> Optional[SourceLocation]:
        symbol = self.symbol_at(document, position)
        if symbol is None:
            return None
        pattern = symbol.indicator_pattern()
        for candidate in self._documents(document):
            for line in range(candidate.line_count):
                if classify_directive(candidate.line_at(line)) is not DirectiveKind.SCOPE:
                    continue
                first, last = directive_range(candidate, line)
                start, end = candidate.line_start(first), candidate.line_end(last)
                code = code_offsets(candidate.text, start, end)
                if any(m.start() in code for m in pattern.finditer(candidate.text, start, end)):
                    return SourceLocation(candidate.uri, Range(Position(first, 0), candidate.position_at(end)))
        return None

    def find_definition(
        self, document: TextDocument, position: Position, token: Optional[CancellationToken] = None
    ) -> Optional[SourceLocation]:
        symbol = self.symbol_at(document, position)
        if symbol is None:
            return None
        implementations = self._heads(document, symbol, token, first_only=True)
        if implementations:
            return implementations[0]
        return self._entity_opening(document, symbol)

    def find_implementations(
        self, document: TextDocument, position: Position, token: Optional[CancellationToken] = None
    ) -> List[SourceLocation]:
        symbol = self.symbol_at(document, position)
        if symbol is None:
            return []
        return self._heads(document, symbol, token)

    def find_references(
        self,
        document: TextDocument,
        position: Position,
        include_declaration: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> List[SourceLocation]:
        symbol = self.symbol_at(document, position)
        if symbol is None:
            return []
        opening = entity_under_cursor(document, position)
        if opening is not None and opening.identifier.name == symbol.name:
            return self._entity_references(document, opening, token)

        declaration = None if include_declaration else self.find_declaration(document, position, token)
        pattern = symbol.indicator_pattern()
        references: List[SourceLocation] = []
        for candidate in self._documents(document):
            _check(token)
            text = candidate.text
            for occurrence in find_occurrences(text, symbol.name):
                if occurrence.arity == symbol.arity:
                    references.append(self._location(candidate, occurrence.start, occurrence.end))
            code = code_offsets(text)
            for match in pattern.finditer(text):
                if match.start() in code:
                    references.append(self._location(candidate, match.start(), match.end()))
        if declaration is not None:
            references = [
                ref
                for ref in references
                if not (
                    normalize_uri(ref.uri) == normalize_uri(declaration.uri)
                    and declaration.range.contains_line(ref.line)
                )
            ]
        references.sort(key=lambda ref: (ref.uri, ref.range.start))
        return references

    # Helpers

    def _heads(
        self,
        document: TextDocument,
        symbol: Symbol,
        token: Optional[CancellationToken],
        first_only: bool = False,
    ) -> List[SourceLocation]:
        heads: List[SourceLocation] = []
        kinds: List[bool] = []
        if symbol.accepts_predicate():
            kinds.append(False)
        if symbol.accepts_non_terminal():
            kinds.append(True)
        for candidate in self._documents(document):
            _check(token)
            for first, _ in iter_terms(candidate.text):
                for non_terminal in kinds:
                    head = head_at(candidate.text, first, symbol.name, symbol.arity, non_terminal)
                    if head is not None:
                        heads.append(self._location(candidate, head.start, head.end))
                        if first_only:
                            return heads
                        break
        return heads

    def _entity_opening(self, document: TextDocument, symbol: Symbol) -> Optional[SourceLocation]:
        for candidate in self._documents(document):
            for line in range(candidate.line_count):
                if not candidate.line_at(line).lstrip().startswith(":-"):
                    continue
                opening = parse_entity_opening(candidate, line)
                if (
                    opening is not None
                    and opening.identifier.name == symbol.name
                    and opening.identifier.arity == symbol.arity
                ):
                    return self._location(candidate, opening.occurrence.start, opening.occurrence.end)
        return None

    def _entity_references(self, document, opening, token) -> List[SourceLocation]:
        name = opening.identifier.name
        references: List[SourceLocation] = []
        for candidate in self._documents(document):
            _check(token)
            for occurrence in find_occurrences(candidate.text, name, include_object_refs=True):
                if candidate.uri == opening.uri and occurrence.start == opening.occurrence.start:
                    continue
                references.append(self._location(candidate, occurrence.start, occurrence.end))
        return references

    def __repr__(self) -> str:
        return f"WorkspaceIndex({str(self.root)!r})"

