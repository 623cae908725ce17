"""
Location collection.

Merges the declaration, definition, implementation and reference lookups of
the symbol locator into one deduplicated set of locations grouped by file.
The lookups after the first one are issued from a position computed on the
declaration (or definition) itself, so they do not depend on where exactly
the user's cursor was.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set, Tuple

from ..document import Position, SourceLocation, TextDocument
from ..interfaces import CancellationToken, DocumentProvider, SymbolLocator
from .clauses import first_code, head_at
from .arguments import code_offsets
from .indicators import Indicator, ResolvedIndicator
from .ranges import directive_range

logger = logging.getLogger(__name__)


@dataclass
class LocationSet:
    """Unique locations in first-seen order, with the declaration singled out."""

    declaration: Optional[SourceLocation] = None
    locations: List[SourceLocation] = field(default_factory=list)
    _seen: Set[Tuple[str, int]] = field(default_factory=set, repr=False)

    def add(self, location: Optional[SourceLocation]) -> bool:
        if location is None or location.key() in self._seen:
            return False
        self._seen.add(location.key())
        self.locations.append(location)
        return True

    def extend(self, locations: Iterable[SourceLocation]) -> int:
        return sum(1 for location in locations if self.add(location))

    def is_declaration(self, location: SourceLocation) -> bool:
        return self.declaration is not None and location.key() == self.declaration.key()

    def by_file(self) -> "OrderedDict[str, List[SourceLocation]]":
        grouped: "OrderedDict[str, List[SourceLocation]]" = OrderedDict()
        for location in self.locations:
            grouped.setdefault(location.uri, []).append(location)
        return grouped

    def __len__(self) -> int:
        return len(self.locations)


def indicator_position(document: TextDocument, line: int, indicator: Indicator) -> Position:
    """Position of ``indicator`` inside the directive starting on ``line``."""
    first, last = directive_range(document, line)
    start, end = document.line_start(first), document.line_end(last)
    code = code_offsets(document.text, start, end)
    for pattern in (indicator.pattern(), re.compile(r"\b" + re.escape(indicator.name) + r"\b")):
        for match in pattern.finditer(document.text, start, end):
            if match.start() in code:
                return document.position_at(match.start())
    return Position(line, 0)


def definition_position(document: TextDocument, line: int, resolved: ResolvedIndicator) -> Position:
    """Position of the clause head name on a definition line."""
    text = document.text
    start, end = document.line_start(line), document.line_end(line)
    offset = first_code(text, start, end)
    if offset is not None:
        head = head_at(text, offset, resolved.name, resolved.arity, resolved.is_non_terminal)
        if head is not None:
            return document.position_at(head.start)
    match = re.compile(r"\b" + re.escape(resolved.name) + r"\b").search(text, start, end)
    if match:
        return document.position_at(match.start())
    return Position(line, 0)


class LocationCollector:
    """Queries the symbol locator and merges its answers."""

    def __init__(self, locator: SymbolLocator, documents: DocumentProvider):
        self.locator = locator
        self.documents = documents

    def collect(
        self,
        document: TextDocument,
        position: Position,
        resolved: ResolvedIndicator,
        token: Optional[CancellationToken] = None,
    ) -> LocationSet:
        locations = LocationSet(declaration=resolved.declaration)
        query_document, query_position = document, position

        if resolved.declaration is not None:
            declaration = resolved.declaration
            query_document = self.documents.open(declaration.uri)
            query_position = indicator_position(query_document, declaration.line, resolved.indicator)
            locations.add(declaration)
            logger.debug("Declaration of %s at %s:%d", resolved.indicator, declaration.uri, declaration.line + 1)
            definition = self.locator.find_definition(query_document, query_position, token)
            if definition is not None:
                locations.add(definition)
        else:
            definition = self.locator.find_definition(document, position, token)
            if definition is not None:
                query_document = self.documents.open(definition.uri)
                query_position = definition_position(query_document, definition.line, resolved)
                locations.add(definition)
                logger.debug("Definition of %s at %s:%d", resolved.indicator, definition.uri, definition.line + 1)

        implementations = self.locator.find_implementations(query_document, query_position, token)
        references = self.locator.find_references(query_document, query_position, False, token)
        locations.extend(implementations or [])
        locations.extend(references or [])
        logger.debug(
            "Collected %d locations for %s (%d implementations, %d references)",
            len(locations),
            resolved.indicator,
            len(implementations or []),
            len(references or []),
        )
        return locations

