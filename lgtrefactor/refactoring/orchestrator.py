"""
Edit orchestration for argument and parameter refactorings.

One operation runs resolve -> collect -> rewrite per file -> submit:

1. the indicator (or entity) under the cursor is resolved and the edit is
   validated against its arity
2. the symbol locator supplies the declaration, clauses and references
3. per file, locations in recognized directives go to the directive
   rewriter, followed by the sibling scan after the declaration; the
   remaining locations go to the clause and call rewriter
4. the consolidated WorkspaceEditSet is handed to the edit transaction

Every rewriter reads the same document snapshots, so edits from different
rewriters never depend on each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from ..config import RewriteConfig
from ..document import Position, SourceLocation, TextDocument
from ..edits import WorkspaceEditSet
from ..interfaces import CancellationToken, DocumentProvider, EditTransaction, SymbolLocator
from .clauses import ClauseRewriter
from .directives import DirectiveKind, DirectiveRewriter, parse_directive
from .entities import EntityParameterRewriter, ResolvedEntity
from .errors import NoLocationsFound, OperationCancelled, RefactoringError, TransactionFailed
from .indicators import IndicatorResolver, ResolvedIndicator
from .locations import LocationCollector, LocationSet
from .operations import Add, EditOperation, Remove, Reorder
from .ranges import enclosing_directive, is_directive_line

logger = logging.getLogger(__name__)


@dataclass
class RefactoringResult:
    """Outcome of one refactoring operation."""

    success: bool
    message: str
    indicator: Optional[str] = None
    new_indicator: Optional[str] = None
    edit_set: Optional[WorkspaceEditSet] = None
    files_modified: List[str] = field(default_factory=list)
    error_message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "indicator": self.indicator,
            "new_indicator": self.new_indicator,
            "files_modified": list(self.files_modified),
            "edit_count": self.edit_set.edit_count if self.edit_set is not None else 0,
            "edits": self.edit_set.to_dict() if self.edit_set is not None else {},
            "error_message": self.error_message,
            "warnings": list(self.warnings),
            "applied": self.applied,
        }


@dataclass
class _FileState:
    document: TextDocument
    covered: Set[int] = field(default_factory=set)
    remaining: List[SourceLocation] = field(default_factory=list)


def _check_cancelled(token: Optional[CancellationToken], stage: str) -> None:
    if token is not None and token.is_cancellation_requested:
        raise OperationCancelled(f"Refactoring cancelled before {stage}")


class RefactoringOrchestrator:
    """
    Runs argument refactorings for predicates and non-terminals and parameter
    refactorings for parametric objects and categories.

    Collaborators are injected: a SymbolLocator for cross-file lookup, a
    DocumentProvider for snapshots and, optionally, an EditTransaction. Without
    a transaction the edits are computed and returned but not applied.
    """

    def __init__(
        self,
        locator: SymbolLocator,
        documents: DocumentProvider,
        transaction: Optional[EditTransaction] = None,
        config: Optional[RewriteConfig] = None,
    ):
        self.locator = locator
        self.documents = documents
        self.transaction = transaction
        self.config = config or RewriteConfig()
        self.resolver = IndicatorResolver(locator, documents)
        self.collector = LocationCollector(locator, documents)
        self.entities = EntityParameterRewriter(locator, documents, self.config)

    # Predicate and non-terminal arguments

    def compute_edits(
        self,
        document: TextDocument,
        position: Position,
        operation: EditOperation,
        indicator_text: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> Tuple[ResolvedIndicator, WorkspaceEditSet]:
        """Resolve, collect and rewrite without applying anything."""
        resolved = self.resolver.resolve(document, position, operation, indicator_text, token)
        return resolved, self._edits_for(document, position, resolved, operation, token)

    def _edits_for(
        self,
        document: TextDocument,
        position: Position,
        resolved: ResolvedIndicator,
        operation: EditOperation,
        token: Optional[CancellationToken],
    ) -> WorkspaceEditSet:
        _check_cancelled(token, "location collection")
        locations = self.collector.collect(document, position, resolved, token)
        if not locations:
            logger.warning("No declaration, clause or call found for %s", resolved.indicator)
            raise NoLocationsFound(f"No locations found for {resolved.indicator}")

        edit_set = WorkspaceEditSet()
        files: Dict[str, _FileState] = {}
        for uri, file_locations in locations.by_file().items():
            state = _FileState(self.documents.open(uri))
            files[uri] = state
            self._rewrite_directives(uri, state, file_locations, locations, resolved, operation, edit_set)

        _check_cancelled(token, "call scanning")
        for uri, state in files.items():
            self._rewrite_clauses(uri, state, resolved, operation, edit_set)

        logger.debug(
            "Computed %d edits in %d files for %s", edit_set.edit_count, edit_set.size, resolved.indicator
        )
        return edit_set

    def refactor(
        self,
        document: TextDocument,
        position: Position,
        operation: EditOperation,
        indicator_text: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> RefactoringResult:
        resolved: Optional[ResolvedIndicator] = None
        try:
            resolved = self.resolver.resolve(document, position, operation, indicator_text, token)
            edit_set = self._edits_for(document, position, resolved, operation, token)
            result = RefactoringResult(
                success=True,
                message="",
                indicator=resolved.indicator.text,
                new_indicator=resolved.new_indicator.text,
                edit_set=edit_set,
                files_modified=edit_set.files,
                warnings=list(edit_set.warnings),
            )
            self._submit(result)
        except RefactoringError as e:
            logger.error("Failed to %s: %s", operation.describe(), e)
            return RefactoringResult(
                success=False,
                message=str(e),
                indicator=resolved.indicator.text if resolved else None,
                new_indicator=resolved.new_indicator.text if resolved else None,
                error_message=str(e),
            )
        result.message = self._success_message(operation, result)
        logger.info(result.message)
        return result

    def add_argument(self, document, position, argument_position, name, indicator_text=None, token=None):
        return self.refactor(document, position, Add(argument_position, name), indicator_text, token)

    def remove_argument(self, document, position, argument_position, indicator_text=None, token=None):
        return self.refactor(document, position, Remove(argument_position), indicator_text, token)

    def reorder_arguments(self, document, position, permutation: Sequence[int], indicator_text=None, token=None):
        return self.refactor(document, position, Reorder(tuple(permutation)), indicator_text, token)

    # Parametric entities

    def compute_entity_edits(
        self,
        document: TextDocument,
        position: Position,
        operation: EditOperation,
        token: Optional[CancellationToken] = None,
    ) -> Tuple[ResolvedEntity, WorkspaceEditSet]:
        resolved = self.entities.resolve(document, position, operation, token)
        return resolved, self._entity_edits_for(resolved, operation, token)

    def _entity_edits_for(
        self, resolved: ResolvedEntity, operation: EditOperation, token: Optional[CancellationToken]
    ) -> WorkspaceEditSet:
        _check_cancelled(token, "reference collection")
        return self.entities.compute(resolved, operation, token)

    def refactor_entity(
        self,
        document: TextDocument,
        position: Position,
        operation: EditOperation,
        token: Optional[CancellationToken] = None,
    ) -> RefactoringResult:
        resolved: Optional[ResolvedEntity] = None
        try:
            resolved = self.entities.resolve(document, position, operation, token)
            edit_set = self._entity_edits_for(resolved, operation, token)
            result = RefactoringResult(
                success=True,
                message="",
                indicator=resolved.indicator,
                new_indicator=resolved.new_indicator,
                edit_set=edit_set,
                files_modified=edit_set.files,
                warnings=list(edit_set.warnings),
            )
            self._submit(result)
        except RefactoringError as e:
            logger.error("Failed to %s: %s", operation.describe().replace("argument", "parameter"), e)
            return RefactoringResult(
                success=False,
                message=str(e),
                indicator=resolved.indicator if resolved else None,
                new_indicator=resolved.new_indicator if resolved else None,
                error_message=str(e),
            )
        result.message = self._success_message(operation, result).replace("argument", "parameter")
        logger.info(result.message)
        return result

    def add_parameter(self, document, position, parameter_position, name, token=None):
        return self.refactor_entity(document, position, Add(parameter_position, name), token)

    def remove_parameter(self, document, position, parameter_position, token=None):
        return self.refactor_entity(document, position, Remove(parameter_position), token)

    def reorder_parameters(self, document, position, permutation: Sequence[int], token=None):
        return self.refactor_entity(document, position, Reorder(tuple(permutation)), token)

    # Internals

    def _rewrite_directives(
        self,
        uri: str,
        state: _FileState,
        file_locations: List[SourceLocation],
        locations: LocationSet,
        resolved: ResolvedIndicator,
        operation: EditOperation,
        edit_set: WorkspaceEditSet,
    ) -> None:
        document = state.document
        rewriter = DirectiveRewriter(document, resolved, operation, self.config)
        for location in sorted(file_locations, key=lambda loc: loc.line):
            line = location.line
            if line in state.covered:
                continue
            if is_directive_line(document.line_at(line)):
                first = line
            else:
                enclosing = enclosing_directive(document, line)
                first = enclosing[0] if enclosing is not None else None
            directive = parse_directive(document, first) if first is not None else None
            if directive is None:
                state.remaining.append(location)
                continue

            logger.debug("Rewriting %s directive at %s:%d", directive.keyword, uri, directive.first_line + 1)
            edit_set.extend(uri, rewriter.rewrite(directive))
            state.covered.update(directive.lines())
            if locations.is_declaration(location) or (
                directive.kind is DirectiveKind.SCOPE and rewriter.is_related(directive)
            ):
                sibling_edits, sibling_lines = rewriter.sibling_edits(directive.last_line)
                edit_set.extend(uri, sibling_edits)
                state.covered.update(sibling_lines)

    def _rewrite_clauses(
        self,
        uri: str,
        state: _FileState,
        resolved: ResolvedIndicator,
        operation: EditOperation,
        edit_set: WorkspaceEditSet,
    ) -> None:
        document = state.document
        rewriter = ClauseRewriter(document, resolved, operation)
        for location in state.remaining:
            if location.line in state.covered:
                continue
            line = location.line
            enclosing = enclosing_directive(document, line)
            if enclosing is not None and _is_entity_directive(document.line_at(enclosing[0])):
                logger.debug("Skipping entity directive at %s:%d", uri, line + 1)
                continue
            first, last = rewriter.range_for(enclosing[0] if enclosing is not None else line)
            edit_set.extend(uri, rewriter.rewrite_lines(first, last))
            state.covered.update(range(first, last + 1))

    def _submit(self, result: RefactoringResult) -> None:
        edit_set = result.edit_set
        if self.transaction is None or not edit_set:
            return
        if not self.transaction.apply(edit_set):
            raise TransactionFailed(
                f"Failed to apply {edit_set.edit_count} edits to {edit_set.size} files"
            )
        result.applied = True

    @staticmethod
    def _success_message(operation: EditOperation, result: RefactoringResult) -> str:
        edit_set = result.edit_set
        if edit_set is None or not edit_set:
            return f"No changes needed to {operation.describe()} of {result.indicator}"
        action = "Applied" if result.applied else "Computed"
        return (
            f"{action} {edit_set.edit_count} edits in {edit_set.size} files to "
            f"{operation.describe()} of {result.indicator} ({result.indicator} -> {result.new_indicator})"
        )


def _is_entity_directive(line: str) -> bool:
    stripped = line.lstrip()[2:].lstrip() if line.lstrip().startswith(":-") else ""
    return stripped.startswith(
        ("object(", "category(", "protocol(", "end_object", "end_category", "end_protocol")
    )
