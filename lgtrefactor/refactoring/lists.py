"""
Editing of ``[...]`` lists inside directives.

Two layouts are handled differently:

- one entry per line (the list opens and closes on different lines and every
  entry starts on its own line): edits are line based, so comments, commas and
  indentation of untouched entries stay where they are
- anything else: the list is rebuilt inline, keeping the existing separators
"""

import logging
import re
from typing import Iterator, List, Optional, Tuple

from ..document import TextDocument
from .arguments import ArgumentList, ArgumentSpan
from .operations import Edit, EditKind, EditOperation, rewrite_arguments

logger = logging.getLogger(__name__)

_KEYED_LIST = re.compile(r"([a-z][a-zA-Z0-9_]*)\s+is\s+\[")


def keyed_lists(
    text: str, entries: ArgumentList, keys: Tuple[str, ...]
) -> Iterator[Tuple[str, ArgumentSpan, ArgumentList]]:
    """Yield ``(key, entry, list)`` for entries of the form ``key is [...]``."""
    for entry in entries.spans:
        match = _KEYED_LIST.match(text, entry.start, entry.end)
        if not match or match.group(1) not in keys:
            continue
        inner = ArgumentList.at(text, match.end() - 1, entries.close)
        if inner is None:
            logger.debug("Unbalanced %s list at offset %d", match.group(1), entry.start)
            continue
        yield match.group(1), entry, inner


def is_line_per_entry(document: TextDocument, items: ArgumentList) -> bool:
    if not items.spans:
        return False
    if document.line_of(items.open) == document.line_of(items.close):
        return False
    previous_line = document.line_of(items.open)
    for span in items.spans:
        line = document.line_of(span.start)
        if line <= previous_line:
            return False
        if document.text[document.line_start(line):span.start].strip():
            return False
        previous_line = document.line_of(span.end)
    return True


def _indent(document: TextDocument, span: ArgumentSpan) -> str:
    return document.text[document.line_start(document.line_of(span.start)):span.start]


def _comma_after(text: str, span: ArgumentSpan, limit: int) -> Optional[int]:
    comma = text.find(",", span.end, limit)
    return None if comma == -1 else comma


def list_edits(
    document: TextDocument,
    items: ArgumentList,
    operation: EditOperation,
    value: Optional[str] = None,
) -> List[Edit]:
    """Offsets edits applying ``operation`` to the list ``items``."""
    if operation.kind is EditKind.REORDER:
        if operation.is_noop:
            return []
        reordered = operation.apply(items.values)
        closed_below = document.line_of(items.close) > document.line_of(items.spans[-1].end)
        if closed_below and is_line_per_entry(document, items):
            return _reorder_lines(document, items, operation, reordered)
        return [
            (span.start, span.end, new)
            for span, new in zip(items.spans, reordered)
            if new != span.text
        ]

    if is_line_per_entry(document, items) and not (
        operation.kind is EditKind.REMOVE and items.arity == 1
    ):
        if operation.kind is EditKind.ADD:
            return _add_line(document, items, operation.position, value)
        return _remove_line(document, items, operation.position)

    rebuilt = rewrite_arguments(items, operation, value)
    original = document.text[items.open:items.stop]
    return [] if rebuilt == original else [(items.open, items.stop, rebuilt)]


def _split_tail(text: str, start: int, end: int) -> Tuple[str, str]:
    """Split the rest of an entry's line into its separator and trailing comment."""
    tail = text[start:end]
    if tail.lstrip().startswith(","):
        cut = tail.index(",") + 1
        return tail[:cut], tail[cut:]
    return "", tail


def _reorder_lines(
    document: TextDocument, items: ArgumentList, operation: EditOperation, reordered: List[str]
) -> List[Edit]:
    # a trailing comment travels with its entry, separators stay in place
    text = document.text
    slots = []
    for span in items.spans:
        line_end = document.line_end(document.line_of(span.end))
        separator, comment = _split_tail(text, span.end, line_end)
        slots.append((span, line_end, separator, comment))
    comments = operation.apply([comment for _, _, _, comment in slots])
    edits: List[Edit] = []
    for (span, line_end, separator, _), value, comment in zip(slots, reordered, comments):
        new = value + separator + comment
        if new != text[span.start:line_end]:
            edits.append((span.start, line_end, new))
    return edits


def _add_line(document: TextDocument, items: ArgumentList, position: int, value: str) -> List[Edit]:
    if position <= items.arity:
        entry = items.spans[position - 1]
        line_start = document.line_start(document.line_of(entry.start))
        return [(line_start, line_start, _indent(document, entry) + value + "," + document.eol)]

    last = items.spans[-1]
    indent = _indent(document, last)
    last_line = document.line_of(last.end)
    line_end = document.line_end(last_line)
    if document.line_of(items.close) == last_line or line_end == last.end:
        return [(last.end, last.end, "," + document.eol + indent + value)]
    # keep a trailing comment on the old last entry's line
    return [(last.end, last.end, ","), (line_end, line_end, document.eol + indent + value)]


def _remove_line(document: TextDocument, items: ArgumentList, position: int) -> List[Edit]:
    entry = items.spans[position - 1]
    first_line = document.line_of(entry.start)
    if position < items.arity:
        following = items.spans[position]
        return [(document.line_start(first_line), document.line_start(document.line_of(following.start)), "")]

    previous = items.spans[-2]
    comma = _comma_after(document.text, previous, entry.start)
    last_line = document.line_of(entry.end)
    if document.line_of(items.close) == last_line:
        start = previous.end if comma is None else comma
        return [(start, entry.end, "")]
    edits: List[Edit] = []
    if comma is not None:
        edits.append((comma, comma + 1, ""))
    if last_line + 1 < document.line_count:
        end = document.line_start(last_line + 1)
    else:
        end = document.line_end(last_line)
    edits.append((document.line_start(first_line), end, ""))
    return edits


def remove_entries(items: ArgumentList, indices: List[int]) -> List[Edit]:
    """
    Offsets edits deleting the entries at ``indices`` (0-based) from ``items``.

    Each run of adjacent entries goes together with the separator before it,
    or the one after it when the run starts the list.
    """
    edits: List[Edit] = []
    spans = items.spans
    runs: List[List[int]] = []
    for index in sorted(set(indices)):
        if runs and runs[-1][-1] == index - 1:
            runs[-1].append(index)
        else:
            runs.append([index])
    for run in runs:
        first, last = run[0], run[-1]
        if first > 0:
            edits.append((spans[first - 1].end, spans[last].end, ""))
        elif last + 1 < len(spans):
            edits.append((spans[first].start, spans[last + 1].start, ""))
        else:
            edits.append((spans[first].start, spans[last].end, ""))
    return edits
