"""
Command-line interface for lgtrefactor

Provides command-line access to the argument and parameter refactorings with
rich terminal output, unified diff previews and a machine-readable JSON mode.
"""

import argparse
import json
import logging
import sys
from typing import Any, Optional, TextIO

from lgtrefactor import __version__
from lgtrefactor.cli.commands.config import cmd_config
from lgtrefactor.cli.commands.refactoring import (
    ARGUMENT_COMMANDS,
    PARAMETER_COMMANDS,
    cmd_refactor,
)
from lgtrefactor.cli.rich_output import set_rich_enabled
from lgtrefactor.config import load_config


def _is_machine_readable(args: Any) -> bool:
    return bool(getattr(args, "machine_readable", False))


def _json_stdout(args: Any) -> TextIO:
    """
    When --machine-readable is enabled, main() redirects sys.stdout -> sys.stderr
    to prevent accidental non-JSON output. This function returns the original stdout.
    """
    return getattr(args, "_json_stdout", sys.__stdout__)


def _print_json_to_stdout(args: Any, payload: Any) -> None:
    """
    Always print JSON to the original stdout in machine-readable mode.
    """
    s = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
    print(s, file=_json_stdout(args))


def setup_logging(verbose: bool = False, level: Optional[str] = None) -> None:
    """Setup logging configuration."""
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (level or "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", help="Logtalk source file containing the cursor")
    parser.add_argument("--line", "-l", type=int, required=True, help="Cursor line (1-based)")
    parser.add_argument("--column", type=int, help="Cursor column (1-based)")
    parser.add_argument(
        "--root",
        type=str,
        help="Workspace directory to scan for references (default: the file's directory)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Print unified diffs instead of writing files")
    parser.add_argument("--backup", action="store_true", help="Back up every file before modifying it")


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="lgtrefactor",
        description="lgtrefactor - Argument and parameter refactoring for Logtalk",
        epilog='Use "lgtrefactor <command> --help" for detailed command help.',
    )

    # Global options
    parser.add_argument("--config", "-c", type=str, help="Path to configuration file")

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output and debug logging",
    )

    parser.add_argument(
        "--no-rich",
        action="store_true",
        help="Disable rich terminal output (use plain text)",
    )

    parser.add_argument(
        "--machine-readable",
        action="store_true",
        help="Output in machine-readable format (JSON)",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Predicate and non-terminal arguments
    add_argument_parser = subparsers.add_parser(
        "add-argument", help="Add an argument to a predicate or non-terminal"
    )
    _add_target_arguments(add_argument_parser)
    add_argument_parser.add_argument("--name", "-n", required=True, help="New argument variable name")
    add_argument_parser.add_argument(
        "--position", "-p", type=int, required=True, help="Position of the new argument (1-based)"
    )
    add_argument_parser.add_argument("--indicator", "-i", help="Indicator to refactor (e.g. foo/2)")

    remove_argument_parser = subparsers.add_parser(
        "remove-argument", help="Remove an argument from a predicate or non-terminal"
    )
    _add_target_arguments(remove_argument_parser)
    remove_argument_parser.add_argument(
        "--position", "-p", type=int, required=True, help="Position of the argument to remove (1-based)"
    )
    remove_argument_parser.add_argument("--indicator", "-i", help="Indicator to refactor (e.g. foo/2)")

    reorder_arguments_parser = subparsers.add_parser(
        "reorder-arguments", help="Reorder the arguments of a predicate or non-terminal"
    )
    _add_target_arguments(reorder_arguments_parser)
    reorder_arguments_parser.add_argument(
        "--order",
        "-o",
        required=True,
        help="New order as old positions, e.g. 3,1,2 makes old argument 3 the first",
    )
    reorder_arguments_parser.add_argument("--indicator", "-i", help="Indicator to refactor (e.g. foo/2)")

    # Parametric entity parameters
    add_parameter_parser = subparsers.add_parser(
        "add-parameter", help="Add a parameter to a parametric object or category"
    )
    _add_target_arguments(add_parameter_parser)
    add_parameter_parser.add_argument(
        "--name", "-n", required=True, help="New parameter variable name (e.g. _Size_)"
    )
    add_parameter_parser.add_argument(
        "--position", "-p", type=int, required=True, help="Position of the new parameter (1-based)"
    )

    remove_parameter_parser = subparsers.add_parser(
        "remove-parameter", help="Remove a parameter from a parametric object or category"
    )
    _add_target_arguments(remove_parameter_parser)
    remove_parameter_parser.add_argument(
        "--position", "-p", type=int, required=True, help="Position of the parameter to remove (1-based)"
    )

    reorder_parameters_parser = subparsers.add_parser(
        "reorder-parameters", help="Reorder the parameters of a parametric object or category"
    )
    _add_target_arguments(reorder_parameters_parser)
    reorder_parameters_parser.add_argument(
        "--order", "-o", required=True, help="New order as old positions, e.g. 2,1"
    )

    for entity_parser in (add_parameter_parser, remove_parameter_parser, reorder_parameters_parser):
        entity_parser.set_defaults(indicator=None)
    for name_less in (remove_argument_parser, reorder_arguments_parser, remove_parameter_parser, reorder_parameters_parser):
        name_less.set_defaults(name=None)
    for position_less in (reorder_arguments_parser, reorder_parameters_parser):
        position_less.set_defaults(position=None)
    for order_less in (
        add_argument_parser,
        remove_argument_parser,
        add_parameter_parser,
        remove_parameter_parser,
    ):
        order_less.set_defaults(order=None)

    # Config command
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_action", help="Config actions")

    config_subparsers.add_parser("show", help="Show current configuration")

    validate_config_parser = config_subparsers.add_parser("validate", help="Validate configuration file")
    validate_config_parser.add_argument(
        "config_file", nargs="?", help="Path to configuration file to validate"
    )

    return parser


def main() -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    # If machine-readable: ensure stdout is JSON-only.
    # We do this by redirecting sys.stdout -> sys.stderr, and explicitly printing JSON to args._json_stdout.
    if _is_machine_readable(args):
        args._json_stdout = sys.stdout
        sys.stdout = sys.stderr

    # Setup rich output
    use_rich = not getattr(args, "no_rich", False) and not getattr(args, "machine_readable", False)
    set_rich_enabled(use_rich)

    try:
        # Handle config commands before loading the configuration they inspect
        if args.command == "config":
            setup_logging(getattr(args, "verbose", False))
            if not getattr(args, "config_action", None):
                parser.parse_args(["config", "--help"])
            cmd_config(args)
            return

        config = load_config(getattr(args, "config", None))
        setup_logging(getattr(args, "verbose", False), config.logging_settings.level)

        if args.command in ARGUMENT_COMMANDS or args.command in PARAMETER_COMMANDS:
            cmd_refactor(args, config)

    except KeyboardInterrupt:
        if _is_machine_readable(args):
            _print_json_to_stdout(args, {"success": False, "error": "cancelled_by_user"})
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        if _is_machine_readable(args):
            _print_json_to_stdout(
                args,
                {"success": False, "error": str(e), "command": getattr(args, "command", None)},
            )
        print(f"Error: {e}", file=sys.stderr)
        if getattr(args, "verbose", False):
            import traceback

            traceback.print_exc()
        sys.exit(1)
    finally:
        if _is_machine_readable(args):
            sys.stdout = args._json_stdout


if __name__ == "__main__":
    main()
