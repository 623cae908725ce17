"""
Refactoring commands for the lgtrefactor CLI.

This module contains command handlers for:
- Adding, removing and reordering predicate and non-terminal arguments
- Adding, removing and reordering parametric entity parameters
- Dry runs that print unified diffs instead of writing files
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from lgtrefactor.cli.rich_output import get_rich_output
from lgtrefactor.config import LgtRefactorConfig
from lgtrefactor.document import Position, TextDocument
from lgtrefactor.documents import DocumentStore
from lgtrefactor.index import WorkspaceIndex
from lgtrefactor.refactoring.errors import InvalidEditOperation, RefactoringError
from lgtrefactor.refactoring.executor import FileEditTransaction
from lgtrefactor.refactoring.operations import Add, EditOperation, Remove, Reorder
from lgtrefactor.refactoring.orchestrator import RefactoringOrchestrator, RefactoringResult
from lgtrefactor.refactoring.validation import (
    parse_permutation,
    validate_argument_name,
    validate_indicator,
    validate_parameter_name,
)

logger = logging.getLogger(__name__)

ARGUMENT_COMMANDS = {
    "add-argument": "add",
    "remove-argument": "remove",
    "reorder-arguments": "reorder",
}

PARAMETER_COMMANDS = {
    "add-parameter": "add",
    "remove-parameter": "remove",
    "reorder-parameters": "reorder",
}


def format_refactoring_result(result: RefactoringResult, format_type: str) -> str:
    """Format refactoring result for output."""
    if format_type == "json":
        return json.dumps(result.to_dict(), indent=2)

    output = []
    if result.success:
        output.append(result.message)
        for uri in result.files_modified:
            output.append(f"  {uri}")
    else:
        output.append("Refactoring failed")
        output.append(f"Error: {result.error_message}")

    if result.warnings:
        output.append("\nWarnings:")
        for warning in result.warnings:
            output.append(f"  {warning}")

    return "\n".join(output)


def build_operation(action: str, args, parameter: bool = False) -> EditOperation:
    """EditOperation for one CLI action, with names and orders validated."""
    if action == "add":
        if args.name is None:
            raise InvalidEditOperation("--name is required")
        validate = validate_parameter_name if parameter else validate_argument_name
        return Add(_required_position(args), validate(args.name))
    if action == "remove":
        return Remove(_required_position(args))
    if args.order is None:
        raise InvalidEditOperation("--order is required")
    return Reorder(tuple(parse_permutation(args.order)))


def _required_position(args) -> int:
    if args.position is None:
        raise InvalidEditOperation("--position is required")
    return args.position


def cursor_position(document: TextDocument, line: int, column: Optional[int], indicator: Optional[str]) -> Position:
    """
    Zero-based cursor for 1-based ``line``/``column``.

    Without a column the cursor goes to the indicator name on that line when
    ``--indicator`` is given, otherwise to the first non-blank character.
    """
    if not 1 <= line <= document.line_count:
        raise InvalidEditOperation(f"Line {line} is outside {document.uri} ({document.line_count} lines)")
    zero_line = line - 1
    if column is not None:
        return Position(zero_line, max(column - 1, 0))
    text = document.line_at(zero_line)
    if indicator:
        name = indicator.split("/")[0]
        found = text.find(name) if name else -1
        if found >= 0:
            return Position(zero_line, found)
    return Position(zero_line, len(text) - len(text.lstrip()))


def build_orchestrator(args, config: LgtRefactorConfig, dry_run: bool):
    """Document store, workspace index, transaction and orchestrator for one run."""
    workspace = config.workspace_settings
    store = DocumentStore(workspace.encoding, workspace.max_file_size)
    root = Path(args.root) if args.root else Path(args.file).resolve().parent
    index = WorkspaceIndex.from_config(root, workspace, store)

    settings = config.transaction_settings
    transaction = FileEditTransaction(
        store,
        backup_enabled=args.backup or settings.backup_enabled,
        backup_directory=settings.backup_directory,
        encoding=workspace.encoding,
    )
    orchestrator = RefactoringOrchestrator(
        index,
        store,
        transaction=None if dry_run else transaction,
        config=config.rewrite_settings,
    )
    return store, transaction, orchestrator


def cmd_refactor(args, config: LgtRefactorConfig) -> None:
    """Handle the argument and parameter refactoring commands."""
    from lgtrefactor.cli_entry import _is_machine_readable, _print_json_to_stdout

    output = get_rich_output()
    parameter = args.command in PARAMETER_COMMANDS
    action = (PARAMETER_COMMANDS if parameter else ARGUMENT_COMMANDS)[args.command]
    dry_run = args.dry_run or config.transaction_settings.dry_run

    store, transaction, orchestrator = build_orchestrator(args, config, dry_run)
    try:
        operation = build_operation(action, args, parameter)
        indicator = validate_indicator(args.indicator) if args.indicator else None
        document = store.open(args.file)
        position = cursor_position(document, args.line, args.column, indicator)
    except (RefactoringError, OSError, UnicodeDecodeError) as e:
        result = RefactoringResult(success=False, message=str(e), error_message=str(e))
    else:
        logger.debug("Running %s at %s:%d:%d", args.command, document.uri, position.line + 1, position.character + 1)
        if parameter:
            result = orchestrator.refactor_entity(document, position, operation)
        else:
            result = orchestrator.refactor(document, position, operation, indicator)

    diffs: Dict[str, str] = {}
    if result.success and dry_run and result.edit_set:
        diffs = transaction.preview(result.edit_set)

    if _is_machine_readable(args):
        payload: Dict[str, Any] = result.to_dict()
        payload["dry_run"] = dry_run
        if dry_run:
            payload["diffs"] = diffs
        _print_json_to_stdout(args, payload)
    else:
        _print_result(output, result, diffs, dry_run)

    if not result.success:
        sys.exit(1)


def _print_result(output, result: RefactoringResult, diffs: Dict[str, str], dry_run: bool) -> None:
    if not result.success:
        output.print_error(result.error_message or result.message)
        return

    if result.indicator:
        output.print_header(f"{result.indicator} -> {result.new_indicator}", result.message)
    else:
        output.print_success(result.message)
    for warning in result.warnings:
        output.print_warning(warning)

    if dry_run:
        if not diffs:
            output.print_info("Dry run: no changes")
        for uri, diff in diffs.items():
            output.print_diff(diff, title=uri)
        return

    if result.files_modified:
        output.print_table(
            "Modified files",
            ["File", "Edits"],
            [[uri, len(result.edit_set.get(uri))] for uri in result.files_modified],
        )
