"""
Shared fixtures for lgtrefactor tests.

Provides an in-memory document provider, a mock symbol locator, an
edit-application helper and a file-system workspace that runs the full
index/orchestrator/transaction stack.
"""

import textwrap
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import Mock

import pytest

from lgtrefactor.document import Position, Range, SourceLocation, TextDocument
from lgtrefactor.documents import DocumentStore
from lgtrefactor.edits import WorkspaceEditSet, apply_edits
from lgtrefactor.index import WorkspaceIndex
from lgtrefactor.refactoring.executor import FileEditTransaction
from lgtrefactor.refactoring.orchestrator import RefactoringOrchestrator, RefactoringResult


def logtalk(text: str) -> str:
    """Dedent a triple-quoted Logtalk snippet."""
    return textwrap.dedent(text).lstrip("\n")


def make_document(text: str, uri: str = "/workspace/test.lgt") -> TextDocument:
    return TextDocument(uri, logtalk(text))


def position_of(document: TextDocument, needle: str, nth: int = 0) -> Position:
    """Position of the ``nth`` occurrence of ``needle`` in the document."""
    index = -1
    for _ in range(nth + 1):
        index = document.text.index(needle, index + 1)
    return document.position_at(index)


def line_location(document: TextDocument, line: int) -> SourceLocation:
    return SourceLocation(document.uri, Range.of_line(line))


class MemoryDocuments:
    """DocumentProvider over in-memory snapshots."""

    def __init__(self, *documents: TextDocument):
        self._documents: Dict[str, TextDocument] = {}
        for document in documents:
            self.add(document)

    def add(self, document: TextDocument) -> TextDocument:
        self._documents[document.uri] = document
        return document

    def open(self, uri: str) -> TextDocument:
        return self._documents[uri]


def fake_locator(declaration=None, definition=None, implementations=(), references=()) -> Mock:
    """Mock SymbolLocator returning fixed answers."""
    locator = Mock()
    locator.find_declaration.return_value = declaration
    locator.find_definition.return_value = definition
    locator.find_implementations.return_value = list(implementations)
    locator.find_references.return_value = list(references)
    return locator


def rewrite(documents, edit_set: WorkspaceEditSet) -> Dict[str, str]:
    """New text per file after applying the edit set to its snapshots."""
    return {uri: apply_edits(documents.open(uri), edits) for uri, edits in edit_set.entries()}


class Workspace:
    """A directory of Logtalk files refactored with the real stack."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, name: str, text: str) -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(logtalk(text), encoding="utf-8")
        return path

    def read(self, name: str) -> str:
        return (self.root / name).read_text(encoding="utf-8")

    def orchestrator(self, apply: bool = True):
        store = DocumentStore()
        index = WorkspaceIndex(self.root, store)
        transaction = FileEditTransaction(store) if apply else None
        return store, RefactoringOrchestrator(index, store, transaction)

    def refactor(
        self,
        name: str,
        needle: str,
        operation,
        nth: int = 0,
        indicator: Optional[str] = None,
        apply: bool = True,
        token=None,
    ) -> RefactoringResult:
        store, orchestrator = self.orchestrator(apply)
        document = store.open(self.root / name)
        return orchestrator.refactor(document, position_of(document, needle, nth), operation, indicator, token)

    def refactor_entity(self, name: str, needle: str, operation, nth: int = 0, apply: bool = True):
        store, orchestrator = self.orchestrator(apply)
        document = store.open(self.root / name)
        return orchestrator.refactor_entity(document, position_of(document, needle, nth), operation)


@pytest.fixture
def workspace(tmp_path):
    return Workspace(tmp_path)


SHAPES = """
:- object(shapes).

    :- public(area/2).
    :- mode(area(+callable, ?float), one).
    :- info(area/2, [
        comment is 'Computes the area of a shape.',
        argnames is ['Shape', 'Area']
    ]).

    area(Shape, 0.0) :-
        Shape == point.
    area(circle(R), A) :-
        A is pi * R * R.

    total(Shapes, Total) :-
        sum_areas(Shapes, 0.0, Total).

    sum_areas([], Total, Total).
    sum_areas([S| Ss], Acc, Total) :-
        area(S, A),
        Acc1 is Acc + A,
        sum_areas(Ss, Acc1, Total).

:- end_object.
"""

DIGITS = """
:- object(parser).

    :- public(digits//1).

    digits([D| Ds]) --> digit(D), digits(Ds).
    digits([D]) --> digit(D).

    digit(D) --> [D], {0'0 =< D, D =< 0'9}.

    count(digits, 0).

:- end_object.
"""

RANGES = """
:- object(ranges).

    :- public(between/3).

    between(Low, High, Low) :-
        Low =< High.
    between(Low, High, X) :-
        Low < High,
        Next is Low + 1,
        between(Next, High, X).

    small(X) :-
        between(1,10,X).

:- end_object.
"""


@pytest.fixture
def shapes_source():
    return SHAPES


@pytest.fixture
def digits_source():
    return DIGITS


@pytest.fixture
def ranges_source():
    return RANGES
