"""
Parameter refactoring for parametric objects and categories.

The entity identifier is the first argument of the opening directive
(``:- object(stack(_Items_), implements(stacking)).``). Only that span is
edited, never the relation arguments that follow it. The parameter change is
also applied to the ``parnames``/``parameters`` entries of the entity's
``info/1`` directive and to every reference to the entity found by the symbol
locator, where ``name::goal`` counts as a reference.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from ..config import RewriteConfig
from ..document import Position, SourceLocation, TextDocument
from ..edits import TextEdit, WorkspaceEditSet
from ..interfaces import CancellationToken, DocumentProvider, SymbolLocator
from .arguments import ArgumentList, Occurrence, find_occurrences
from .errors import UnresolvedEntity
from .lists import keyed_lists, list_edits, remove_entries
from .operations import EditKind, EditOperation, OccurrenceRewriter
from .ranges import directive_range, enclosing_directive, enclosing_term
from .validation import is_parameter_variable

logger = logging.getLogger(__name__)

_OPENING = re.compile(r"^\s*:-\s*(object|category|protocol)\s*\(")
_CLOSING = re.compile(r"^\s*:-\s*end_(object|category|protocol)\s*\.")
_INFO = re.compile(r"^\s*:-\s*info\s*\(")

ENTITY_INFO_KEYS = ("parnames", "parameters")


@dataclass(frozen=True)
class EntityIdentifier:
    """Entity name plus its ordered parameters."""

    name: str
    parameters: tuple = ()

    @property
    def arity(self) -> int:
        return len(self.parameters)

    @property
    def text(self) -> str:
        if not self.parameters:
            return self.name
        return f"{self.name}({', '.join(self.parameters)})"

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class EntityOpening:
    """An ``object/N``, ``category/N`` or ``protocol/N`` opening directive."""

    uri: str
    kind: str
    identifier: EntityIdentifier
    first_line: int
    last_line: int
    occurrence: Occurrence

    @property
    def is_protocol(self) -> bool:
        return self.kind == "protocol"


def parse_entity_opening(document: TextDocument, line: int) -> Optional[EntityOpening]:
    """The entity opening directive starting on ``line``, if any."""
    match = _OPENING.match(document.line_at(line))
    if not match:
        return None
    first, last = directive_range(document, line)
    open_pos = document.line_start(line) + match.end() - 1
    arguments = ArgumentList.at(document.text, open_pos, document.line_end(last))
    if arguments is None or not arguments.spans:
        return None
    identifier_span = arguments.spans[0]
    name = re.match(r"[a-z][a-zA-Z0-9_]*", identifier_span.text)
    if not name:
        return None
    occurrences = [
        occurrence
        for occurrence in find_occurrences(
            document.text, name.group(), identifier_span.start, identifier_span.end
        )
        if occurrence.start == identifier_span.start
    ]
    if not occurrences:
        return None
    occurrence = occurrences[0]
    parameters = tuple(occurrence.arguments.values) if occurrence.arguments else ()
    return EntityOpening(
        document.uri,
        match.group(1),
        EntityIdentifier(name.group(), parameters),
        first,
        last,
        occurrence,
    )


def entity_under_cursor(document: TextDocument, position: Position) -> Optional[EntityOpening]:
    """The entity opening directive containing ``position``, if any."""
    directive = enclosing_directive(document, position.line)
    if directive is None:
        return None
    return parse_entity_opening(document, directive[0])


@dataclass(frozen=True)
class ResolvedEntity:
    opening: EntityOpening
    new_arity: int

    @property
    def name(self) -> str:
        return self.opening.identifier.name

    @property
    def arity(self) -> int:
        return self.opening.identifier.arity

    @property
    def indicator(self) -> str:
        return f"{self.name}/{self.arity}"

    @property
    def new_indicator(self) -> str:
        return f"{self.name}/{self.new_arity}"


class EntityParameterRewriter:
    """Resolves a parametric entity and computes its parameter edits."""

    def __init__(
        self,
        locator: SymbolLocator,
        documents: DocumentProvider,
        config: Optional[RewriteConfig] = None,
    ):
        self.locator = locator
        self.documents = documents
        self.config = config or RewriteConfig()

    def resolve(
        self,
        document: TextDocument,
        position: Position,
        operation: EditOperation,
        token: Optional[CancellationToken] = None,
    ) -> ResolvedEntity:
        opening = entity_under_cursor(document, position)
        if opening is None:
            definition = self.locator.find_definition(document, position, token)
            if definition is not None:
                defining = self.documents.open(definition.uri)
                directive = enclosing_directive(defining, definition.line)
                if directive is not None:
                    opening = parse_entity_opening(defining, directive[0])
        if opening is None:
            raise UnresolvedEntity(
                f"No object or category opening directive found for line {position.line + 1}"
            )
        if opening.is_protocol:
            raise UnresolvedEntity(f"Protocol {opening.identifier.name} cannot have parameters")
        operation.validate(opening.identifier.arity)
        logger.debug("Resolved %s %s", opening.kind, opening.identifier)
        return ResolvedEntity(opening, operation.new_arity(opening.identifier.arity))

    def compute(
        self,
        resolved: ResolvedEntity,
        operation: EditOperation,
        token: Optional[CancellationToken] = None,
    ) -> WorkspaceEditSet:
        edit_set = WorkspaceEditSet()
        opening = resolved.opening
        document = self.documents.open(opening.uri)
        covered: Dict[str, Set[int]] = {opening.uri: set(range(opening.first_line, opening.last_line + 1))}
        value = operation.name if operation.kind is EditKind.ADD else None

        identifier = OccurrenceRewriter(
            resolved.name,
            resolved.arity,
            operation,
            value,
            include_object_refs=True,
            accept=lambda occ: occ.start == opening.occurrence.start,
        )
        edit_set.extend(
            opening.uri,
            self._text_edits(document, identifier.edits(document.text, opening.occurrence.start, opening.occurrence.end)),
        )

        info_lines = self._info_directive(document, opening.last_line)
        if info_lines is not None:
            edit_set.extend(opening.uri, self._info_edits(document, info_lines, resolved, operation))
            covered[opening.uri].update(range(info_lines[0], info_lines[1] + 1))

        identifier_position = document.position_at(opening.occurrence.start)
        references = self.locator.find_references(document, identifier_position, False, token) or []
        logger.debug("Found %d references to %s", len(references), resolved.indicator)
        calls = OccurrenceRewriter(
            resolved.name, resolved.arity, operation, value, include_object_refs=True
        )
        for reference in references:
            self._rewrite_reference(reference, calls, covered, edit_set)
        return edit_set

    def _rewrite_reference(
        self,
        reference: SourceLocation,
        calls: OccurrenceRewriter,
        covered: Dict[str, Set[int]],
        edit_set: WorkspaceEditSet,
    ) -> None:
        document = self.documents.open(reference.uri)
        lines = covered.setdefault(reference.uri, set())
        if reference.line in lines:
            return
        span = enclosing_directive(document, reference.line) or enclosing_term(document, reference.line)
        first, last = span if span is not None else (reference.line, reference.line)
        start, end = document.line_start(first), document.line_end(last)
        edit_set.extend(reference.uri, self._text_edits(document, calls.edits(document.text, start, end)))
        lines.update(range(first, last + 1))

    def _info_directive(self, document: TextDocument, after_line: int) -> Optional[tuple]:
        """Lines of the first ``info/1`` directive of the entity body."""
        for line in range(after_line + 1, document.line_count):
            text = document.line_at(line)
            if _CLOSING.match(text) or _OPENING.match(text):
                return None
            if _INFO.match(text):
                first, last = directive_range(document, line)
                arguments = self._directive_arguments(document, first, last)
                if arguments is not None and arguments.arity == 1:
                    return first, last
        return None

    @staticmethod
    def _directive_arguments(document: TextDocument, first: int, last: int) -> Optional[ArgumentList]:
        match = _INFO.match(document.line_at(first))
        open_pos = document.line_start(first) + match.end() - 1
        return ArgumentList.at(document.text, open_pos, document.line_end(last))

    def _info_edits(
        self, document: TextDocument, lines: tuple, resolved: ResolvedEntity, operation: EditOperation
    ) -> List[TextEdit]:
        arguments = self._directive_arguments(document, *lines)
        entries_span = arguments.spans[0]
        if not entries_span.text.startswith("["):
            return []
        entries = ArgumentList.at(document.text, entries_span.start, document.line_end(lines[1]))
        if entries is None:
            return []
        offsets = []
        emptied = []
        for key, entry, items in keyed_lists(document.text, entries, ENTITY_INFO_KEYS):
            if items.arity != resolved.arity:
                logger.debug("Skipping %s list with %d entries for %s", key, items.arity, resolved.indicator)
                continue
            if operation.kind is EditKind.REMOVE and items.arity == 1:
                emptied.append(entries.spans.index(entry))
                continue
            offsets.extend(list_edits(document, items, operation, self._info_value(key, operation)))
        offsets.extend(remove_entries(entries, emptied))
        return self._text_edits(document, offsets)

    def _info_value(self, key: str, operation: EditOperation) -> Optional[str]:
        if operation.kind is not EditKind.ADD:
            return None
        template = self.config.argname_template if key == "parnames" else self.config.argument_template
        name = operation.name
        if is_parameter_variable(name):
            # _Size_ is documented as 'Size'
            name = name[1:-1]
        return template.format(name=name)

    @staticmethod
    def _text_edits(document: TextDocument, offsets) -> List[TextEdit]:
        return [TextEdit.from_offsets(document, start, end, new) for start, end, new in offsets]
