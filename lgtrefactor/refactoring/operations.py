"""
Argument edit operations and the generic occurrence rewrite.

An EditOperation is one of Add, Remove or Reorder. The same operation object
is applied to clause heads, calls, mode/meta templates, info lists and entity
identifiers; only the inserted value changes between those places (the new
argument name for code, ``?`` for mode templates, ``*`` for meta templates,
a quoted name for info lists).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Iterator, List, Optional, Sequence, Tuple

from .arguments import ArgumentList, Occurrence, find_occurrences
from .errors import InvalidEditOperation

logger = logging.getLogger(__name__)

Edit = Tuple[int, int, str]


class EditKind(Enum):
    """Kinds of argument edits."""

    ADD = "add"
    REMOVE = "remove"
    REORDER = "reorder"


class EditOperation(ABC):
    """Base class of the Add/Remove/Reorder variant."""

    kind: ClassVar[EditKind]

    @abstractmethod
    def new_arity(self, arity: int) -> int:
        """Arity after the edit."""
        raise NotImplementedError

    @abstractmethod
    def validate(self, arity: int) -> None:
        """Raise InvalidEditOperation unless the edit fits ``arity``."""
        raise NotImplementedError

    @abstractmethod
    def apply(self, items: Sequence[str], value: Optional[str] = None) -> List[str]:
        """Apply the edit to a plain list of items."""
        raise NotImplementedError

    @abstractmethod
    def apply_separated(
        self, items: Sequence[str], separators: Sequence[str], value: Optional[str] = None
    ) -> Tuple[List[str], List[str]]:
        """Apply the edit to items and the separators between them."""
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> str:
        raise NotImplementedError

    @property
    def is_noop(self) -> bool:
        return False


@dataclass(frozen=True)
class Add(EditOperation):
    """Insert a new argument so that it ends up at ``position`` (1-based)."""

    position: int
    name: str

    kind: ClassVar[EditKind] = EditKind.ADD

    def new_arity(self, arity: int) -> int:
        return arity + 1

    def validate(self, arity: int) -> None:
        if not 1 <= self.position <= arity + 1:
            raise InvalidEditOperation(
                f"Argument position must be between 1 and {arity + 1}, got {self.position}"
            )

    def apply(self, items: Sequence[str], value: Optional[str] = None) -> List[str]:
        result = list(items)
        result.insert(self.position - 1, self.name if value is None else value)
        return result

    def apply_separated(
        self, items: Sequence[str], separators: Sequence[str], value: Optional[str] = None
    ) -> Tuple[List[str], List[str]]:
        value = self.name if value is None else value
        items, separators = list(items), list(separators)
        index = self.position - 1
        if index >= len(items):
            if items:
                separators.append(", ")
            items.append(value)
        else:
            items.insert(index, value)
            separators.insert(index, ", ")
        return items, separators

    def describe(self) -> str:
        return f"add argument '{self.name}' at position {self.position}"


@dataclass(frozen=True)
class Remove(EditOperation):
    """Delete the argument at ``position`` (1-based)."""

    position: int

    kind: ClassVar[EditKind] = EditKind.REMOVE

    def new_arity(self, arity: int) -> int:
        return arity - 1

    def validate(self, arity: int) -> None:
        if arity < 1:
            raise InvalidEditOperation("Cannot remove an argument from a zero-arity construct")
        if not 1 <= self.position <= arity:
            raise InvalidEditOperation(
                f"Argument position must be between 1 and {arity}, got {self.position}"
            )

    def apply(self, items: Sequence[str], value: Optional[str] = None) -> List[str]:
        result = list(items)
        del result[self.position - 1]
        return result

    def apply_separated(
        self, items: Sequence[str], separators: Sequence[str], value: Optional[str] = None
    ) -> Tuple[List[str], List[str]]:
        items, separators = list(items), list(separators)
        index = self.position - 1
        del items[index]
        if separators:
            # the separator after the argument, or before it for the last one
            del separators[index if index < len(separators) else index - 1]
        return items, separators

    def describe(self) -> str:
        return f"remove argument at position {self.position}"


@dataclass(frozen=True)
class Reorder(EditOperation):
    """New argument ``i`` is old argument ``permutation[i]`` (both 1-based)."""

    permutation: Tuple[int, ...]

    kind: ClassVar[EditKind] = EditKind.REORDER

    def __post_init__(self) -> None:
        object.__setattr__(self, "permutation", tuple(self.permutation))

    def new_arity(self, arity: int) -> int:
        return arity

    def validate(self, arity: int) -> None:
        if sorted(self.permutation) != list(range(1, arity + 1)):
            raise InvalidEditOperation(
                f"Order must be a permutation of 1..{arity}, got "
                f"{','.join(str(p) for p in self.permutation) or 'nothing'}"
            )

    def apply(self, items: Sequence[str], value: Optional[str] = None) -> List[str]:
        return [items[p - 1] for p in self.permutation]

    def apply_separated(
        self, items: Sequence[str], separators: Sequence[str], value: Optional[str] = None
    ) -> Tuple[List[str], List[str]]:
        return self.apply(items), list(separators)

    def inverse(self) -> "Reorder":
        inverse = [0] * len(self.permutation)
        for new_index, old_position in enumerate(self.permutation, start=1):
            inverse[old_position - 1] = new_index
        return Reorder(tuple(inverse))

    @property
    def is_noop(self) -> bool:
        return all(p == i for i, p in enumerate(self.permutation, start=1))

    def describe(self) -> str:
        return "reorder arguments to " + ",".join(str(p) for p in self.permutation)


def rewrite_arguments(
    arguments: ArgumentList,
    operation: EditOperation,
    value: Optional[str] = None,
    item_texts: Optional[List[str]] = None,
) -> str:
    """Delimited text of ``arguments`` after the edit, layout preserved."""
    items = arguments.values if item_texts is None else item_texts
    items, separators = operation.apply_separated(items, arguments.separators(), value)
    return arguments.rebuild(items, separators)


class OccurrenceRewriter:
    """
    Arity-exact rewrite of every occurrence of one functor in a text region.

    Only occurrences whose argument count equals ``arity`` change. Nested
    occurrences (``foo(foo(X))``) are rewritten inside their enclosing
    occurrence, and each outermost occurrence yields a single edit, so the
    edits of one region never overlap.
    """

    def __init__(
        self,
        name: str,
        arity: int,
        operation: EditOperation,
        value: Optional[str] = None,
        include_object_refs: bool = False,
        accept: Optional[Callable[[Occurrence], bool]] = None,
    ):
        self.name = name
        self.arity = arity
        self.operation = operation
        self.value = value
        self.include_object_refs = include_object_refs
        self.accept = accept

    def edits(self, text: str, start: int, end: int) -> List[Edit]:
        """``(start, end, replacement)`` offsets for ``text[start:end]``."""
        occurrences = find_occurrences(text, self.name, start, end, self.include_object_refs)
        result: List[Edit] = []
        for occurrence in self._outermost(occurrences, start, None):
            original = text[occurrence.start:occurrence.end]
            replacement = self._rewrite(text, occurrence, occurrences)
            if replacement != original:
                logger.debug(
                    "Rewriting %s -> %s", original.replace("\n", " "), replacement.replace("\n", " ")
                )
                result.append((occurrence.start, occurrence.end, replacement))
        return result

    def _matches(self, occurrence: Occurrence) -> bool:
        if occurrence.arity != self.arity:
            return False
        return self.accept is None or self.accept(occurrence)

    @staticmethod
    def _outermost(
        occurrences: List[Occurrence], start: int, end: Optional[int]
    ) -> Iterator[Occurrence]:
        cursor = start
        for occurrence in occurrences:
            if occurrence.start < cursor:
                continue
            if end is not None and (occurrence.start >= end or occurrence.end > end):
                continue
            yield occurrence
            cursor = occurrence.end

    def _render(self, text: str, start: int, end: int, occurrences: List[Occurrence]) -> str:
        parts = []
        position = start
        for occurrence in self._outermost(occurrences, start, end):
            parts.append(text[position:occurrence.start])
            parts.append(self._rewrite(text, occurrence, occurrences))
            position = occurrence.end
        parts.append(text[position:end])
        return "".join(parts)

    def _rewrite(self, text: str, occurrence: Occurrence, occurrences: List[Occurrence]) -> str:
        name_text = text[occurrence.start:occurrence.name_end]
        arguments = occurrence.arguments
        if arguments is None or arguments.arity == 0:
            if self._matches(occurrence) and self.operation.kind is EditKind.ADD:
                value = self.value if self.value is not None else self.operation.apply([])[0]
                return name_text + "(" + value + ")"
            return text[occurrence.start:occurrence.end]

        items = [self._render(text, span.start, span.end, occurrences) for span in arguments.spans]
        if not self._matches(occurrence):
            return name_text + arguments.rebuild(items, arguments.separators())

        items, separators = self.operation.apply_separated(
            items, arguments.separators(), self.value
        )
        if not items:
            return name_text
        return name_text + arguments.rebuild(items, separators)
