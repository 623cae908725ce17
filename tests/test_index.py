"""
Tests for the text-scanning WorkspaceIndex.
"""

import pytest

from conftest import position_of
from lgtrefactor.config import WorkspaceConfig
from lgtrefactor.document import normalize_uri
from lgtrefactor.documents import DocumentStore
from lgtrefactor.index import Symbol, WorkspaceIndex
from lgtrefactor.interfaces import CancellationToken
from lgtrefactor.refactoring.errors import OperationCancelled


LISTS = """
:- object(lists).

    :- public(append/3).
    :- public(member/2).

    append([], L, L).
    append([H| T], L, [H| R]) :-
        append(T, L, R).

    member(X, [X| _]).
    member(X, [_| T]) :-
        member(X, T).

:- end_object.
"""

USER = """
:- object(user_code).

    join(A, B, C) :-
        lists::append(A, B, C),
        lists::append([A], B).

:- end_object.
"""


@pytest.fixture
def indexed(workspace):
    workspace.write("src/lists.lgt", LISTS)
    workspace.write("src/user_code.logtalk", USER)
    workspace.write("notes.txt", "append(a, b, c).\n")
    workspace.write(".lgtrefactor_backups/old.lgt", LISTS)
    store = DocumentStore()
    index = WorkspaceIndex(workspace.root, store)
    lists = store.open(workspace.root / "src" / "lists.lgt")
    user = store.open(workspace.root / "src" / "user_code.logtalk")
    return index, lists, user


class TestFiles:
    """Tests for workspace file discovery."""

    def test_includes_and_excludes(self, workspace, indexed):
        index, lists, user = indexed
        assert index.files() == sorted([lists.uri, user.uri])

    def test_from_config_skips_hidden_directories(self, workspace, indexed):
        settings = WorkspaceConfig(include_patterns=["**/*.lgt"], exclude_patterns=[])
        index = WorkspaceIndex.from_config(workspace.root, settings)
        assert index.files() == [normalize_uri(workspace.root / "src" / "lists.lgt")]

    def test_unreadable_file_is_skipped(self, workspace, indexed):
        index, lists, _ = indexed
        (workspace.root / "broken.lgt").write_bytes(b"append(\xff).\n")
        index._files = None
        position = position_of(lists, "append", 1)
        assert len(index.find_implementations(lists, position)) == 2


class TestSymbolAt:
    """Tests for symbol_at."""

    def test_call_has_no_separator(self, indexed):
        index, _, user = indexed
        assert index.symbol_at(user, position_of(user, "append")) == Symbol("append", 3)

    def test_indicator_fixes_separator(self, indexed):
        index, lists, _ = indexed
        assert index.symbol_at(lists, position_of(lists, "append")) == Symbol("append", 3, "/")
        assert index.symbol_at(lists, position_of(lists, "3")) == Symbol("append", 3, "/")

    def test_nothing_under_cursor(self, indexed):
        index, lists, _ = indexed
        assert index.symbol_at(lists, position_of(lists, "L, L")) is None


class TestLookups:
    """Tests for the SymbolLocator methods."""

    def test_find_declaration_from_other_file(self, indexed):
        index, lists, user = indexed
        declaration = index.find_declaration(user, position_of(user, "append"))
        assert declaration.uri == lists.uri
        assert declaration.line == 2

    def test_declaration_is_arity_exact(self, indexed):
        index, _, user = indexed
        assert index.find_declaration(user, position_of(user, "append", 1)) is None

    def test_find_definition(self, indexed):
        index, lists, user = indexed
        definition = index.find_definition(user, position_of(user, "append"))
        assert definition.uri == lists.uri
        assert definition.line == 5

    def test_find_definition_of_entity(self, indexed):
        index, lists, user = indexed
        definition = index.find_definition(lists, position_of(lists, "lists"))
        assert definition is not None
        assert definition.line == 0

    def test_find_implementations(self, indexed):
        index, lists, _ = indexed
        lines = [loc.line for loc in index.find_implementations(lists, position_of(lists, "member"))]
        assert lines == [9, 10]

    def test_find_references_excludes_declaration(self, indexed):
        index, lists, user = indexed
        references = index.find_references(lists, position_of(lists, "append"))
        by_file = {(normalize_uri(ref.uri), ref.line) for ref in references}
        assert (lists.uri, 2) not in by_file
        assert (lists.uri, 7) in by_file
        assert (user.uri, 3) in by_file
        assert (user.uri, 4) not in by_file

    def test_find_references_with_declaration(self, indexed):
        index, lists, _ = indexed
        references = index.find_references(lists, position_of(lists, "append"), include_declaration=True)
        assert 2 in {ref.line for ref in references if ref.uri == lists.uri}

    def test_entity_references(self, indexed):
        index, lists, user = indexed
        references = index.find_references(lists, position_of(lists, "lists"))
        assert {(ref.uri, ref.line) for ref in references} == {(user.uri, 3), (user.uri, 4)}

    def test_cancellation(self, indexed):
        index, lists, _ = indexed
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelled):
            index.find_references(lists, position_of(lists, "member"), token=token)
