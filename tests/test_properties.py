"""
Property-based tests for edit operations using Hypothesis.

Covers the round-trip guarantees: adding then removing an argument at the
same position restores the text, and a reorder followed by its inverse is the
identity.
"""

from hypothesis import given, strategies as st

from lgtrefactor.refactoring.arguments import split_arguments
from lgtrefactor.refactoring.operations import Add, OccurrenceRewriter, Remove, Reorder


def apply_rewriter(text, name, arity, operation, value=None):
    for start, end, new in sorted(
        OccurrenceRewriter(name, arity, operation, value).edits(text, 0, len(text)),
        reverse=True,
    ):
        text = text[:start] + new + text[end:]
    return text


# Hypothesis strategies for generating Logtalk argument terms
atoms = st.from_regex(r"[a-z][a-z0-9_]{0,6}", fullmatch=True).filter(lambda atom: atom != "measure")
variables = st.from_regex(r"[A-Z][a-zA-Z0-9_]{0,6}", fullmatch=True)
numbers = st.integers(min_value=0, max_value=999).map(str)
simple_terms = st.one_of(atoms, variables, numbers)


@st.composite
def terms(draw):
    """A simple term, a compound, a list or a quoted atom."""
    kind = draw(st.sampled_from(["simple", "compound", "list", "quoted"]))
    if kind == "compound":
        functor = draw(atoms)
        arguments = draw(st.lists(simple_terms, min_size=1, max_size=3))
        return f"{functor}({', '.join(arguments)})"
    if kind == "list":
        return "[" + ", ".join(draw(st.lists(simple_terms, max_size=3))) + "]"
    if kind == "quoted":
        return "'" + draw(st.text(alphabet="abc ,()[]", max_size=6)) + "'"
    return draw(simple_terms)


@st.composite
def calls(draw, min_arity=0):
    arguments = draw(st.lists(terms(), min_size=min_arity, max_size=5))
    if arguments:
        return f"run :- measure({', '.join(arguments)}).", len(arguments)
    return "run :- measure.", 0


@st.composite
def permutations(draw, min_size=1, max_size=5):
    size = draw(st.integers(min_value=min_size, max_value=max_size))
    return tuple(p + 1 for p in draw(st.permutations(range(size))))


class TestOperationProperties:
    """Properties of the list-level operations."""

    @given(st.lists(simple_terms, max_size=6), st.data())
    def test_add_then_remove_is_identity(self, items, data):
        position = data.draw(st.integers(min_value=1, max_value=len(items) + 1))
        added = Add(position, "New").apply(items)
        assert len(added) == len(items) + 1
        assert added[position - 1] == "New"
        assert Remove(position).apply(added) == items

    @given(permutations())
    def test_reorder_inverse_is_identity(self, permutation):
        items = [f"a{i}" for i in range(1, len(permutation) + 1)]
        reorder = Reorder(permutation)
        assert reorder.inverse().apply(reorder.apply(items)) == items
        assert reorder.apply(items)[0] == items[permutation[0] - 1]


class TestRewriteProperties:
    """Properties of occurrence rewriting on source text."""

    @given(calls(), st.data())
    def test_add_then_remove_restores_text(self, call, data):
        text, arity = call
        position = data.draw(st.integers(min_value=1, max_value=arity + 1))

        added = apply_rewriter(text, "measure", arity, Add(position, "New"))
        assert added != text
        assert apply_rewriter(added, "measure", arity + 1, Remove(position)) == text

    @given(calls(min_arity=1), st.data())
    def test_reorder_then_inverse_restores_text(self, call, data):
        text, arity = call
        permutation = tuple(p + 1 for p in data.draw(st.permutations(range(arity))))
        reorder = Reorder(permutation)

        reordered = apply_rewriter(text, "measure", arity, reorder)
        assert apply_rewriter(reordered, "measure", arity, reorder.inverse()) == text

    @given(calls(min_arity=1))
    def test_other_arities_untouched(self, call):
        text, arity = call
        assert apply_rewriter(text, "measure", arity + 1, Add(1, "New")) == text

    @given(st.lists(terms(), min_size=1, max_size=5))
    def test_split_arguments_recovers_terms(self, arguments):
        text = "(" + ", ".join(arguments) + ")"
        spans = split_arguments(text, 0, len(text) - 1)
        assert [span.text for span in spans] == arguments
