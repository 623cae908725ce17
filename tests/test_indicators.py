"""
Tests for indicator parsing, cursor resolution and kind determination.
"""

import pytest

from conftest import MemoryDocuments, fake_locator, line_location, make_document, position_of
from lgtrefactor.document import Position
from lgtrefactor.refactoring.errors import (
    InvalidEditOperation,
    TypeDeterminationFailed,
    UnresolvedIndicator,
)
from lgtrefactor.refactoring.indicators import (
    Indicator,
    IndicatorKind,
    IndicatorResolver,
    indicator_under_cursor,
    neck_kind,
    strip_qualification,
)
from lgtrefactor.refactoring.operations import Add, Remove


class TestIndicator:
    """Tests for Indicator."""

    def test_parse_predicate(self):
        indicator = Indicator.parse("foo/2")
        assert indicator == Indicator("foo", 2, IndicatorKind.PREDICATE)
        assert indicator.text == "foo/2"

    def test_parse_non_terminal(self):
        indicator = Indicator.parse(" foo // 1 ")
        assert indicator.is_non_terminal
        assert indicator.text == "foo//1"

    @pytest.mark.parametrize("text", ["Obj::foo/1", "::foo/1", "^^foo/1", "@foo/1"])
    def test_parse_strips_qualification(self, text):
        assert Indicator.parse(text) == Indicator("foo", 1)

    @pytest.mark.parametrize("text", ["Foo/1", "foo", "foo/x", "1/2"])
    def test_parse_rejects(self, text):
        assert Indicator.parse(text) is None

    def test_with_arity_keeps_kind(self):
        indicator = Indicator("foo", 1, IndicatorKind.NON_TERMINAL).with_arity(2)
        assert indicator.text == "foo//2"

    def test_pattern_is_arity_and_kind_exact(self):
        pattern = Indicator("foo", 2).pattern()
        assert pattern.search(":- public([foo/2]).").group(1) == "2"
        assert pattern.search("foo / 2").group(1) == "2"
        assert pattern.search("foo/22") is None
        assert pattern.search("foo//2") is None
        assert pattern.search("my_foo/2") is None
        assert pattern.search("Obj::foo/2") is not None

    def test_non_terminal_pattern(self):
        pattern = Indicator("foo", 1, IndicatorKind.NON_TERMINAL).pattern()
        assert pattern.search("foo//1") is not None
        assert pattern.search("foo/1") is None

    def test_strip_qualification(self):
        assert strip_qualification(" list::append/3 ") == "append/3"


class TestIndicatorUnderCursor:
    """Tests for indicator_under_cursor."""

    def test_call(self):
        document = make_document("p :- foo(a, b), bar.\n")
        assert indicator_under_cursor(document, position_of(document, "foo")) == "foo/2"

    def test_cursor_in_middle_of_name(self):
        document = make_document("p :- foo(a, b), bar.\n")
        position = position_of(document, "foo")
        assert indicator_under_cursor(document, Position(position.line, position.character + 2)) == "foo/2"

    def test_atom(self):
        document = make_document("p :- foo(a, b), bar.\n")
        assert indicator_under_cursor(document, position_of(document, "bar")) == "bar/0"

    def test_indicator(self):
        document = make_document(":- public(foo//1).\n")
        assert indicator_under_cursor(document, position_of(document, "foo")) == "foo//1"

    def test_cursor_on_arity_digits(self):
        document = make_document(":- public(foo/12).\n")
        assert indicator_under_cursor(document, position_of(document, "12")) == "foo/12"

    def test_variable_and_comment(self):
        document = make_document("p(X) :- true. % foo(a)\n")
        assert indicator_under_cursor(document, position_of(document, "X")) is None
        assert indicator_under_cursor(document, position_of(document, "foo")) is None

    def test_multiline_call(self):
        document = make_document(
            """
            p :-
                foo(a,
                    b,
                    c).
            """
        )
        assert indicator_under_cursor(document, position_of(document, "foo")) == "foo/3"


class TestNeckKind:
    """Tests for neck_kind."""

    def test_rule_neck(self):
        text = "foo(X) --> [X]."
        assert neck_kind(text, 0, len(text)) is IndicatorKind.NON_TERMINAL

    def test_clause_neck(self):
        text = "foo(X) :- X --> y."
        assert neck_kind(text, 0, len(text)) is IndicatorKind.PREDICATE

    def test_fact(self):
        text = "foo(a)."
        assert neck_kind(text, 0, len(text)) is IndicatorKind.PREDICATE


class TestIndicatorResolver:
    """Tests for IndicatorResolver."""

    def test_declaration_decides_non_terminal(self):
        document = make_document(
            """
            :- public(greeting//1).
            run :- phrase(greeting(X), L).
            """
        )
        locator = fake_locator(declaration=line_location(document, 0))
        resolver = IndicatorResolver(locator, MemoryDocuments(document))

        resolved = resolver.resolve(document, position_of(document, "greeting", 1), Add(2, "Y"))

        assert resolved.indicator.text == "greeting//1"
        assert resolved.new_indicator.text == "greeting//2"
        assert resolved.inference == "declaration"
        assert resolved.declaration == line_location(document, 0)

    def test_raw_separator_decides_without_declaration(self):
        document = make_document(":- mode(greeting//1, one).\n")
        resolver = IndicatorResolver(fake_locator(), MemoryDocuments(document))

        resolved = resolver.resolve(document, position_of(document, "greeting"), Remove(1))

        assert resolved.is_non_terminal
        assert resolved.inference == "indicator"
        assert resolved.new_indicator.arity == 0

    def test_definition_neck(self):
        document = make_document(
            """
            run :- phrase(greeting(X), L).
            greeting(Name) --> [hello, Name].
            """
        )
        locator = fake_locator(definition=line_location(document, 1))
        resolver = IndicatorResolver(locator, MemoryDocuments(document))

        resolved = resolver.resolve(document, position_of(document, "greeting"), Add(1, "Y"))

        assert resolved.kind is IndicatorKind.NON_TERMINAL
        assert resolved.inference == "definition"

    def test_default_is_predicate(self):
        document = make_document("run :- foo(a).\n")
        resolver = IndicatorResolver(fake_locator(), MemoryDocuments(document))

        resolved = resolver.resolve(document, position_of(document, "foo"), Add(1, "Y"))

        assert resolved.kind is IndicatorKind.PREDICATE
        assert resolved.inference == "default"

    def test_explicit_indicator_text(self):
        document = make_document("run :- foo(a).\n")
        resolver = IndicatorResolver(fake_locator(), MemoryDocuments(document))

        resolved = resolver.resolve(document, Position(0, 0), Add(1, "Y"), indicator_text="lists::foo/1")

        assert resolved.indicator.text == "foo/1"

    def test_nothing_under_cursor(self):
        document = make_document("run :- foo(X).\n")
        resolver = IndicatorResolver(fake_locator(), MemoryDocuments(document))

        with pytest.raises(UnresolvedIndicator):
            resolver.resolve(document, position_of(document, "X"), Add(1, "Y"))

    def test_declaration_lookup_failure(self):
        document = make_document("run :- foo(a).\n")
        locator = fake_locator()
        locator.find_declaration.side_effect = RuntimeError("index unavailable")
        resolver = IndicatorResolver(locator, MemoryDocuments(document))

        with pytest.raises(TypeDeterminationFailed):
            resolver.resolve(document, position_of(document, "foo"), Add(1, "Y"))

    def test_operation_validated_against_arity(self):
        document = make_document("run :- foo(a).\n")
        resolver = IndicatorResolver(fake_locator(), MemoryDocuments(document))

        with pytest.raises(InvalidEditOperation):
            resolver.resolve(document, position_of(document, "foo"), Remove(2))
