"""
Capability interfaces for lgtrefactor components.

The rewriting engine never builds its own workspace index and never writes
files. It talks to its collaborators through the Protocols below, so editor
integrations, language servers, the bundled text index and test doubles are
interchangeable.
"""

from typing import List, Optional, Protocol

from .document import Position, SourceLocation, TextDocument
from .edits import WorkspaceEditSet


class CancellationToken:
    """Cooperative cancellation flag passed to locator calls."""

    def __init__(self) -> None:
        self.is_cancellation_requested = False

    def cancel(self) -> None:
        self.is_cancellation_requested = True


class SymbolLocator(Protocol):
    """Cross-file symbol lookup used by the location collector."""

    def find_declaration(
        self, document: TextDocument, position: Position, token: Optional[CancellationToken] = None
    ) -> Optional[SourceLocation]:
        """Scope directive declaring the symbol at ``position``."""
        ...

    def find_definition(
        self, document: TextDocument, position: Position, token: Optional[CancellationToken] = None
    ) -> Optional[SourceLocation]:
        """First clause (or entity opening directive) defining the symbol."""
        ...

    def find_implementations(
        self, document: TextDocument, position: Position, token: Optional[CancellationToken] = None
    ) -> List[SourceLocation]:
        """Every clause defining the symbol."""
        ...

    def find_references(
        self,
        document: TextDocument,
        position: Position,
        include_declaration: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> List[SourceLocation]:
        """Every place the symbol is used."""
        ...


class DocumentProvider(Protocol):
    """Source of document snapshots keyed by file identity."""

    def open(self, uri: str) -> TextDocument:
        ...


class EditTransaction(Protocol):
    """Atomic application of a multi-file edit set."""

    def apply(self, edit_set: WorkspaceEditSet) -> bool:
        ...
