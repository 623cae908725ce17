"""
End-to-end tests for RefactoringOrchestrator over a real workspace, plus
collaborator-failure tests with mocks.
"""

import pytest
from unittest.mock import Mock

from conftest import MemoryDocuments, fake_locator, logtalk, make_document, position_of, rewrite
from lgtrefactor.document import Position, Range, SourceLocation
from lgtrefactor.interfaces import CancellationToken
from lgtrefactor.refactoring.errors import NoLocationsFound
from lgtrefactor.refactoring.operations import Add, Remove, Reorder
from lgtrefactor.refactoring.orchestrator import RefactoringOrchestrator


class TestScenarios:
    """The documented add/remove/reorder scenarios."""

    def test_add_first_argument(self, workspace, shapes_source):
        """area/2 -> area/3 with the new argument first."""
        workspace.write("shapes.lgt", shapes_source)

        result = workspace.refactor("shapes.lgt", "area", Add(1, "Units"))

        assert result.success, result.error_message
        assert result.applied
        assert (result.indicator, result.new_indicator) == ("area/2", "area/3")
        text = workspace.read("shapes.lgt")
        assert "    :- public(area/3).\n" in text
        assert "    :- mode(area(?, +callable, ?float), one).\n" in text
        assert "    :- info(area/3, [\n" in text
        assert "argnames is ['Units', 'Shape', 'Area']" in text
        assert "    area(Units, Shape, 0.0) :-\n" in text
        assert "    area(Units, circle(R), A) :-\n" in text
        assert "        area(Units, S, A),\n" in text
        assert "sum_areas(Shapes, 0.0, Total)" in text
        assert "'Computes the area of a shape.'" in text

    def test_non_terminal_exact_arity(self, workspace, digits_source):
        """digits//1 grows to digits//2; the bare atom digits is untouched."""
        workspace.write("parser.lgt", digits_source)

        result = workspace.refactor("parser.lgt", "digits", Add(2, "Count"))

        assert result.success, result.error_message
        assert result.new_indicator == "digits//2"
        text = workspace.read("parser.lgt")
        assert "    :- public(digits//2).\n" in text
        assert "    digits([D| Ds], Count) --> digit(D), digits(Ds, Count).\n" in text
        assert "    digits([D], Count) --> digit(D).\n" in text
        assert "    count(digits, 0).\n" in text
        assert "digit(D) --> [D]" in text

    def test_reorder_from_call_site(self, workspace, ranges_source):
        """Reorder([3,1,2]) turns between(1,10,X) into between(X,1,10)."""
        workspace.write("ranges.lgt", ranges_source)

        result = workspace.refactor("ranges.lgt", "between(1,10,X)", Reorder((3, 1, 2)))

        assert result.success, result.error_message
        text = workspace.read("ranges.lgt")
        assert "        between(X,1,10).\n" in text
        assert "    between(Low, Low, High) :-\n" in text
        assert "    between(X, Low, High) :-\n" in text
        assert "        between(X, Next, High).\n" in text
        assert "    :- public(between/3).\n" in text

    def test_cross_file_references(self, workspace, shapes_source):
        workspace.write("shapes.lgt", shapes_source)
        workspace.write(
            "client.lgt",
            """
            :- object(client).

                run(A) :-
                    shapes::area(square(2), A),
                    shapes::area(circle(1), B, extra).

            :- end_object.
            """,
        )

        result = workspace.refactor("shapes.lgt", "area", Remove(1))

        assert result.success, result.error_message
        assert len(result.files_modified) == 2
        client = workspace.read("client.lgt")
        assert "shapes::area(A)," in client
        assert "shapes::area(circle(1), B, extra)." in client
        shapes = workspace.read("shapes.lgt")
        assert "argnames is ['Area']" in shapes
        assert "    :- mode(area(?float), one).\n" in shapes


def measure_source(arity):
    variables = [f"A{i}" for i in range(1, arity + 1)]
    values = [f"v{i}" for i in range(1, arity + 1)]
    modes = ["+term"] * arity
    if arity:
        head = "measure(" + ", ".join(variables) + ")"
        call = "measure(" + ", ".join(values) + ")"
        template = "measure(" + ", ".join(modes) + ")"
    else:
        head = call = template = "measure"
    entries = ["comment is 'Measure.'"]
    if arity:
        entries.append("argnames is [" + ", ".join(f"'{v}'" for v in variables) + "]")
    info = (",\n" + " " * 16).join(entries)
    return logtalk(
        f"""
        :- object(props).

            :- public(measure/{arity}).
            :- info(measure/{arity}, [
                {info}
            ]).
            :- mode({template}, one).

            {head} :-
                true.

            run :-
                {call}.

        :- end_object.
        """
    )


class TestProperties:
    """Round-trip and no-op properties."""

    @pytest.mark.parametrize(
        "arity,position",
        [(arity, position) for arity in range(0, 4) for position in range(1, arity + 2)],
    )
    def test_add_then_remove_restores(self, workspace, arity, position):
        original = measure_source(arity)
        (workspace.root / "props.lgt").write_text(original, encoding="utf-8")

        added = workspace.refactor("props.lgt", "measure", Add(position, "New"))
        assert added.success, added.error_message
        assert workspace.read("props.lgt") != original

        removed = workspace.refactor("props.lgt", "measure", Remove(position))
        assert removed.success, removed.error_message
        assert workspace.read("props.lgt") == original

    def test_add_then_remove_restores_info_lists(self, workspace, shapes_source):
        workspace.write("shapes.lgt", shapes_source)
        original = workspace.read("shapes.lgt")

        assert workspace.refactor("shapes.lgt", "area", Add(2, "Units")).success
        assert "argnames is ['Shape', 'Units', 'Area']" in workspace.read("shapes.lgt")
        assert workspace.refactor("shapes.lgt", "area", Remove(2)).success

        assert workspace.read("shapes.lgt") == original

    def test_identity_reorder_changes_nothing(self, workspace, ranges_source):
        path = workspace.write("ranges.lgt", ranges_source)
        original = path.read_text(encoding="utf-8")

        result = workspace.refactor("ranges.lgt", "between", Reorder((1, 2, 3)))

        assert result.success
        assert not result.edit_set
        assert not result.applied
        assert result.message.startswith("No changes needed")
        assert path.read_text(encoding="utf-8") == original

    def test_reorder_inverse_restores(self, workspace, ranges_source):
        workspace.write("ranges.lgt", ranges_source)
        original = workspace.read("ranges.lgt")
        permutation = Reorder((3, 1, 2))

        assert workspace.refactor("ranges.lgt", "between", permutation).success
        assert workspace.read("ranges.lgt") != original
        assert workspace.refactor("ranges.lgt", "between", permutation.inverse()).success

        assert workspace.read("ranges.lgt") == original

    def test_compute_only_without_transaction(self, workspace, shapes_source):
        workspace.write("shapes.lgt", shapes_source)
        original = workspace.read("shapes.lgt")

        result = workspace.refactor("shapes.lgt", "area", Add(1, "Units"), apply=False)

        assert result.success
        assert not result.applied
        assert result.edit_set.edit_count > 0
        assert result.message.startswith("Computed")
        assert workspace.read("shapes.lgt") == original

    def test_crlf_line_endings_preserved(self, workspace):
        path = workspace.root / "crlf.lgt"
        path.write_bytes(b":- public(foo/1).\r\nfoo(a).\r\nrun :- foo(b).\r\n")

        result = workspace.refactor("crlf.lgt", "foo", Add(2, "X"))

        assert result.success, result.error_message
        assert path.read_bytes() == b":- public(foo/2).\r\nfoo(a, X).\r\nrun :- foo(b, X).\r\n"


class TestFailures:
    """Failure reporting through RefactoringResult."""

    def test_invalid_position(self, workspace, ranges_source):
        workspace.write("ranges.lgt", ranges_source)

        result = workspace.refactor("ranges.lgt", "between", Remove(4))

        assert not result.success
        assert "between 1 and 3" in result.error_message
        assert workspace.read("ranges.lgt") == logtalk(ranges_source)

    def test_unresolved_indicator(self, workspace, ranges_source):
        workspace.write("ranges.lgt", ranges_source)

        result = workspace.refactor("ranges.lgt", "Low", Add(1, "X"))

        assert not result.success
        assert result.indicator is None

    def test_cancelled_before_collection(self, workspace, ranges_source):
        workspace.write("ranges.lgt", ranges_source)
        token = CancellationToken()
        token.cancel()

        result = workspace.refactor("ranges.lgt", "between", Add(1, "X"), token=token)

        assert not result.success
        assert "cancelled" in result.error_message
        assert result.indicator == "between/3"

    def test_no_locations(self):
        document = make_document("foo(a).\n")
        orchestrator = RefactoringOrchestrator(fake_locator(), MemoryDocuments(document))

        with pytest.raises(NoLocationsFound):
            orchestrator.compute_edits(document, position_of(document, "foo"), Add(1, "X"))

        result = orchestrator.add_argument(document, position_of(document, "foo"), 1, "X")
        assert not result.success
        assert "No locations found" in result.message

    def test_transaction_failure(self):
        document = make_document(":- public(foo/1).\nfoo(a).\n")
        locator = fake_locator(
            declaration=make_location(document, 0),
            implementations=[make_location(document, 1)],
        )
        transaction = Mock()
        transaction.apply.return_value = False
        orchestrator = RefactoringOrchestrator(locator, MemoryDocuments(document), transaction)

        result = orchestrator.remove_argument(document, position_of(document, "foo"), 1)

        assert not result.success
        assert "Failed to apply" in result.error_message
        transaction.apply.assert_called_once()

    def test_mock_locator_edits(self):
        document = make_document(":- public(foo/1).\n:- mode(foo(+atom), one).\nfoo(a).\nbar :- foo(b).\n")
        locator = fake_locator(
            declaration=make_location(document, 0),
            implementations=[make_location(document, 2)],
            references=[make_location(document, 1), make_location(document, 3)],
        )
        orchestrator = RefactoringOrchestrator(locator, MemoryDocuments(document))

        result = orchestrator.reorder_arguments(document, Position(0, 10), [1])
        assert result.success
        assert not result.edit_set

        result = orchestrator.add_argument(document, Position(0, 10), 1, "X")
        payload = result.to_dict()
        assert result.success
        assert payload["edit_count"] == 4
        assert payload["files_modified"] == [document.uri]
        assert payload["new_indicator"] == "foo/2"

    def test_definition_looked_up_from_declaration(self):
        document = make_document(":- public(foo/1).\nfoo(X) :- bar(X).\n")
        locator = fake_locator(declaration=make_location(document, 0), definition=make_location(document, 1))
        orchestrator = RefactoringOrchestrator(locator, MemoryDocuments(document))

        _, edit_set = orchestrator.compute_edits(document, Position(0, 10), Add(2, "Y"))

        locator.find_definition.assert_called_once_with(document, Position(0, 10), None)
        assert rewrite(MemoryDocuments(document), edit_set)[document.uri] == (
            ":- public(foo/2).\nfoo(X, Y) :- bar(X).\n"
        )


def make_location(document, line):
    return SourceLocation(document.uri, Range(Position(line, 0), Position(line, len(document.line_at(line)))))
