"""
Validation of user-supplied refactoring parameters.

These checks stand in for the interactive prompts of an editor integration:
names must be valid Logtalk atoms or variables, indicators must be
``name/arity`` or ``name//arity``, and orders must be comma-separated positions.
"""

import re
from typing import List, Optional

from .errors import InvalidEditOperation
from .indicators import Indicator, strip_qualification

NAME_PATTERN = re.compile(r"^[a-z][a-zA-Z0-9_]*$")
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Z_][a-zA-Z0-9_]*$")
PARAMETER_VARIABLE_PATTERN = re.compile(r"^_[A-Z][a-zA-Z0-9]*_$")


def is_valid_name(name: str) -> bool:
    """Entity, predicate and non-terminal names."""
    return bool(NAME_PATTERN.match(name))


def is_valid_variable_name(name: str) -> bool:
    return bool(VARIABLE_NAME_PATTERN.match(name))


def is_parameter_variable(name: str) -> bool:
    """True for ``_Name_`` parameter variables."""
    return bool(PARAMETER_VARIABLE_PATTERN.match(name))


def validate_argument_name(name: str) -> str:
    name = name.strip()
    if not is_valid_variable_name(name):
        raise InvalidEditOperation(
            f"Invalid argument name '{name}': must start with an uppercase letter or underscore"
        )
    return name


def validate_parameter_name(name: str) -> str:
    """Accept a plain variable name or a ``_Name_`` parameter variable."""
    name = name.strip()
    if not (is_valid_variable_name(name) or is_parameter_variable(name)):
        raise InvalidEditOperation(f"Invalid parameter name '{name}'")
    return name


def validate_indicator(text: str) -> str:
    """Normalize a user-supplied ``name/arity`` or ``name//arity`` indicator."""
    indicator = Indicator.parse(text)
    if indicator is None:
        name = strip_qualification(text).split("/")[0].strip()
        if not is_valid_name(name):
            raise InvalidEditOperation(f"Invalid predicate or non-terminal name '{name}'")
        raise InvalidEditOperation(f"Invalid indicator '{text}': expected name/arity or name//arity")
    return indicator.text


def parse_permutation(text: str, arity: Optional[int] = None) -> List[int]:
    """
    Parse a comma-separated order such as ``3,1,2``.

    When ``arity`` is given the order must be a bijection on ``1..arity``.
    """
    parts = [part.strip() for part in str(text).split(",") if part.strip()]
    try:
        permutation = [int(part) for part in parts]
    except ValueError:
        raise InvalidEditOperation(f"Order must be comma-separated integers, got '{text}'")
    if arity is not None and sorted(permutation) != list(range(1, arity + 1)):
        raise InvalidEditOperation(f"Order must be a permutation of 1..{arity}, got '{text}'")
    return permutation
