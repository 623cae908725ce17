"""
Tests for user-supplied name and order validation.
"""

import pytest

from lgtrefactor.refactoring.errors import InvalidEditOperation
from lgtrefactor.refactoring.validation import (
    is_parameter_variable,
    is_valid_name,
    parse_permutation,
    validate_argument_name,
    validate_indicator,
    validate_parameter_name,
)


class TestNames:
    """Tests for argument and parameter names."""

    @pytest.mark.parametrize("name", ["X", "Units", "_", "_Acc", " Count "])
    def test_valid_argument_names(self, name):
        assert validate_argument_name(name) == name.strip()

    @pytest.mark.parametrize("name", ["x", "1X", "foo bar", "", "'X'"])
    def test_invalid_argument_names(self, name):
        with pytest.raises(InvalidEditOperation):
            validate_argument_name(name)

    def test_parameter_variables(self):
        assert is_parameter_variable("_Size_")
        assert not is_parameter_variable("Size")
        assert not is_parameter_variable("_size_")
        assert validate_parameter_name("_Size_") == "_Size_"
        assert validate_parameter_name("Size") == "Size"
        with pytest.raises(InvalidEditOperation):
            validate_parameter_name("size")


class TestPermutation:
    """Tests for parse_permutation."""

    def test_parse(self):
        assert parse_permutation("3,1,2") == [3, 1, 2]
        assert parse_permutation(" 2 , 1 ") == [2, 1]

    def test_arity_checked_when_given(self):
        assert parse_permutation("2,1", arity=2) == [2, 1]
        with pytest.raises(InvalidEditOperation):
            parse_permutation("1,1", arity=2)
        with pytest.raises(InvalidEditOperation):
            parse_permutation("1,2", arity=3)

    def test_not_integers(self):
        with pytest.raises(InvalidEditOperation, match="comma-separated integers"):
            parse_permutation("a,b")


class TestIndicators:
    """Tests for entity/predicate names and indicator text."""

    def test_names(self):
        assert is_valid_name("append")
        assert is_valid_name("my_list2")
        assert not is_valid_name("Append")
        assert not is_valid_name("_x")
        assert not is_valid_name("2d")

    def test_normalizes(self):
        assert validate_indicator(" foo / 2 ") == "foo/2"
        assert validate_indicator("list::foo//1") == "foo//1"

    def test_bad_name(self):
        with pytest.raises(InvalidEditOperation, match="name 'Foo'"):
            validate_indicator("Foo/2")

    def test_missing_arity(self):
        with pytest.raises(InvalidEditOperation, match="expected name/arity"):
            validate_indicator("foo")
