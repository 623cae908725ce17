"""
Directive rewriting.

Each recognized directive kind has its own policy:

- indicator-only kinds (scope, dynamic, discontiguous, multifile,
  synchronized, coinductive, uses) get the arity digits of the exact
  indicator updated and nothing else
- mode and meta directives have their callable template edited like a call,
  with a placeholder (``?`` or ``*``) as the inserted value
- info/2 directives get their indicator updated plus their ``argnames``,
  ``arguments`` and ``examples`` entries edited

Sibling discovery walks the directives that follow a declaration and stops
at the first one that is not about the same predicate.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set, Tuple

from ..config import RewriteConfig
from ..document import TextDocument
from ..edits import TextEdit
from .arguments import ArgumentList, code_offsets, find_occurrences
from .indicators import ResolvedIndicator
from .lists import is_line_per_entry, keyed_lists, list_edits, remove_entries
from .operations import Edit, EditKind, EditOperation, OccurrenceRewriter
from .ranges import directive_range

logger = logging.getLogger(__name__)

_DIRECTIVE_HEAD = re.compile(r"^\s*:-\s*([a-z][a-zA-Z0-9_]*)\s*\(")


class DirectiveKind(Enum):
    SCOPE = "scope"
    MODE = "mode"
    INFO = "info"
    META_PREDICATE = "meta_predicate"
    META_NON_TERMINAL = "meta_non_terminal"
    SYNCHRONIZED = "synchronized"
    COINDUCTIVE = "coinductive"
    DYNAMIC = "dynamic"
    DISCONTIGUOUS = "discontiguous"
    MULTIFILE = "multifile"
    USES = "uses"


DIRECTIVE_KEYWORDS = {
    "public": DirectiveKind.SCOPE,
    "protected": DirectiveKind.SCOPE,
    "private": DirectiveKind.SCOPE,
    "mode": DirectiveKind.MODE,
    "info": DirectiveKind.INFO,
    "meta_predicate": DirectiveKind.META_PREDICATE,
    "meta_non_terminal": DirectiveKind.META_NON_TERMINAL,
    "synchronized": DirectiveKind.SYNCHRONIZED,
    "coinductive": DirectiveKind.COINDUCTIVE,
    "dynamic": DirectiveKind.DYNAMIC,
    "discontiguous": DirectiveKind.DISCONTIGUOUS,
    "multifile": DirectiveKind.MULTIFILE,
    "uses": DirectiveKind.USES,
}

INDICATOR_ONLY_KINDS = frozenset(
    {
        DirectiveKind.SCOPE,
        DirectiveKind.SYNCHRONIZED,
        DirectiveKind.COINDUCTIVE,
        DirectiveKind.DYNAMIC,
        DirectiveKind.DISCONTIGUOUS,
        DirectiveKind.MULTIFILE,
        DirectiveKind.USES,
    }
)

TEMPLATE_KINDS = frozenset(
    {DirectiveKind.MODE, DirectiveKind.META_PREDICATE, DirectiveKind.META_NON_TERMINAL}
)

INFO_LIST_KEYS = ("argnames", "arguments")
INFO_KEYS = INFO_LIST_KEYS + ("examples",)


def classify_directive(line: str) -> Optional[DirectiveKind]:
    """DirectiveKind of a line that starts a recognized directive."""
    match = _DIRECTIVE_HEAD.match(line)
    if not match:
        return None
    return DIRECTIVE_KEYWORDS.get(match.group(1))


@dataclass(frozen=True)
class Directive:
    """A recognized directive located in a document snapshot."""

    kind: DirectiveKind
    keyword: str
    first_line: int
    last_line: int
    start: int
    end: int
    arguments: Optional[ArgumentList]

    def lines(self) -> range:
        return range(self.first_line, self.last_line + 1)


def parse_directive(document: TextDocument, line: int) -> Optional[Directive]:
    """The recognized directive starting on ``line``, if any."""
    text = document.line_at(line)
    match = _DIRECTIVE_HEAD.match(text)
    if not match or match.group(1) not in DIRECTIVE_KEYWORDS:
        return None
    first, last = directive_range(document, line)
    start = document.line_start(first)
    end = document.line_end(last)
    open_pos = start + match.end() - 1
    arguments = ArgumentList.at(document.text, open_pos, end)
    return Directive(
        DIRECTIVE_KEYWORDS[match.group(1)], match.group(1), first, last, start, end, arguments
    )


class DirectiveRewriter:
    """Rewrites the directives of one document for one resolved indicator."""

    def __init__(
        self,
        document: TextDocument,
        resolved: ResolvedIndicator,
        operation: EditOperation,
        config: Optional[RewriteConfig] = None,
    ):
        self.document = document
        self.resolved = resolved
        self.operation = operation
        self.config = config or RewriteConfig()
        self._indicator_pattern = resolved.indicator.pattern()

    # Public API

    def rewrite(self, directive: Directive) -> List[TextEdit]:
        """Edits for one directive according to its kind's policy."""
        if directive.kind in INDICATOR_ONLY_KINDS:
            offsets = self._indicator_edits(directive.start, directive.end)
        elif directive.kind in TEMPLATE_KINDS:
            offsets = self._template_edits(directive)
        elif directive.kind is DirectiveKind.INFO:
            offsets = self._info_edits(directive)
        else:
            offsets = []
        if not offsets:
            logger.debug(
                "No change for %s directive at %s:%d",
                directive.keyword,
                self.document.uri,
                directive.first_line + 1,
            )
        return self._to_text_edits(offsets)

    def is_related(self, directive: Directive) -> bool:
        """True when the directive is about the indicator being refactored."""
        if directive.kind in INDICATOR_ONLY_KINDS or directive.kind is DirectiveKind.INFO:
            return bool(self._indicator_matches(directive.start, directive.end))
        if directive.kind in TEMPLATE_KINDS:
            return self._template_occurrence(directive, check_kind=False) is not None
        return False

    def sibling_edits(self, after_line: int) -> Tuple[List[TextEdit], Set[int]]:
        """
        Rewrite the related directives following the one ending at ``after_line``.

        Blank and comment lines are skipped. The scan stops at a scope
        directive, at a directive that is unrecognized or about something
        else, and at the first line that is not a directive.
        """
        document = self.document
        edits: List[TextEdit] = []
        covered: Set[int] = set()
        line = after_line + 1
        while line < document.line_count:
            stripped = document.line_at(line).strip()
            if not stripped or stripped.startswith("%"):
                line += 1
                continue
            if stripped.startswith("/*"):
                opening = document.line_start(line) + document.line_at(line).index("/*")
                close = document.text.find("*/", opening + 2)
                if close == -1:
                    break
                line = document.line_of(close) + 1
                continue
            directive = parse_directive(document, line)
            if directive is None or directive.kind is DirectiveKind.SCOPE:
                break
            if not self.is_related(directive):
                break
            logger.debug(
                "Sibling %s directive at %s:%d", directive.keyword, document.uri, line + 1
            )
            edits.extend(self.rewrite(directive))
            covered.update(directive.lines())
            line = directive.last_line + 1
        return edits, covered

    # Policies

    def _indicator_matches(self, start: int, end: int) -> List["re.Match[str]"]:
        code = code_offsets(self.document.text, start, end)
        return [
            match
            for match in self._indicator_pattern.finditer(self.document.text, start, end)
            if match.start() in code
        ]

    def _indicator_edits(self, start: int, end: int) -> List[Edit]:
        if self.operation.kind is EditKind.REORDER:
            return []
        new_arity = str(self.resolved.new_indicator.arity)
        return [(m.start(1), m.end(1), new_arity) for m in self._indicator_matches(start, end)]

    def _template_applies(self, kind: DirectiveKind) -> bool:
        if kind is DirectiveKind.META_PREDICATE:
            return not self.resolved.is_non_terminal
        if kind is DirectiveKind.META_NON_TERMINAL:
            return self.resolved.is_non_terminal
        return True

    def _template_occurrence(self, directive: Directive, check_kind: bool = True):
        if directive.arguments is None or not directive.arguments.spans:
            return None
        if check_kind and not self._template_applies(directive.kind):
            return None
        template = directive.arguments.spans[0]
        for occurrence in find_occurrences(
            self.document.text, self.resolved.name, template.start, template.end
        ):
            if occurrence.start == template.start and occurrence.arity == self.resolved.arity:
                return occurrence
        return None

    def _template_edits(self, directive: Directive) -> List[Edit]:
        occurrence = self._template_occurrence(directive)
        if occurrence is None:
            return []
        if directive.kind is DirectiveKind.MODE:
            placeholder = self.config.mode_placeholder
        else:
            placeholder = self.config.meta_placeholder
        rewriter = OccurrenceRewriter(
            self.resolved.name,
            self.resolved.arity,
            self.operation,
            placeholder,
            accept=lambda occ: occ.start == occurrence.start,
        )
        return rewriter.edits(self.document.text, occurrence.start, occurrence.end)

    def _info_edits(self, directive: Directive) -> List[Edit]:
        arguments = directive.arguments
        if arguments is None or arguments.arity < 2:
            return []
        text = self.document.text
        indicator_span, entries_span = arguments.spans[0], arguments.spans[1]
        if not self._indicator_matches(indicator_span.start, indicator_span.end):
            return []
        edits = self._indicator_edits(indicator_span.start, indicator_span.end)
        if not entries_span.text.startswith("["):
            return edits
        entries = ArgumentList.at(text, entries_span.start, directive.end)
        if entries is None:
            return edits

        found_list_entry = False
        emptied: List[int] = []
        for key, entry, items in keyed_lists(text, entries, INFO_KEYS):
            if key == "examples":
                edits.extend(self._example_edits(items))
                continue
            found_list_entry = True
            if items.arity != self.resolved.arity:
                logger.debug(
                    "Skipping %s list with %d entries for %s", key, items.arity, self.resolved.indicator
                )
                continue
            if self.operation.kind is EditKind.REMOVE and items.arity == 1:
                emptied.append(entries.spans.index(entry))
                continue
            edits.extend(list_edits(self.document, items, self.operation, self._info_value(key)))
        edits.extend(remove_entries(entries, emptied))

        if (
            not found_list_entry
            and self.resolved.arity == 0
            and self.operation.kind is EditKind.ADD
        ):
            edits.extend(self._synthesize_argnames(entries))
        return edits

    def _info_value(self, key: str) -> Optional[str]:
        if self.operation.kind is not EditKind.ADD:
            return None
        template = self.config.argname_template if key == "argnames" else self.config.argument_template
        return template.format(name=self.operation.name)

    def _example_edits(self, items: ArgumentList) -> List[Edit]:
        value = self.operation.name if self.operation.kind is EditKind.ADD else None
        rewriter = OccurrenceRewriter(self.resolved.name, self.resolved.arity, self.operation, value)
        return rewriter.edits(self.document.text, items.open + 1, items.close)

    def _synthesize_argnames(self, entries: ArgumentList) -> List[Edit]:
        entry = "argnames is [" + self.config.argname_template.format(name=self.operation.name) + "]"
        if not entries.spans:
            return [(entries.open + 1, entries.open + 1, entry)]
        last = entries.spans[-1]
        if is_line_per_entry(self.document, entries):
            indent = self.document.text[self.document.line_start(self.document.line_of(last.start)):last.start]
            return [(last.end, last.end, "," + self.document.eol + (indent or self.config.default_indent) + entry)]
        return [(last.end, last.end, ", " + entry)]

    def _to_text_edits(self, offsets: List[Edit]) -> List[TextEdit]:
        return [TextEdit.from_offsets(self.document, start, end, new) for start, end, new in offsets]
