"""
Configuration commands for the lgtrefactor CLI.

This module contains command handlers for:
- Showing the effective configuration (defaults, file, environment)
- Validating a configuration file
"""

import sys

from lgtrefactor.cli.rich_output import get_rich_output
from lgtrefactor.config import ConfigurationError, LgtRefactorConfig, load_config


def cmd_config(args) -> None:
    """Handle config command."""
    from lgtrefactor.cli_entry import _is_machine_readable, _print_json_to_stdout

    output = get_rich_output()

    if args.config_action == "show":
        config = load_config(getattr(args, "config", None))
        if _is_machine_readable(args):
            _print_json_to_stdout(args, config.to_dict())
        else:
            output.print_header("lgtrefactor configuration")
            output.console.print(config.get_config_summary(), markup=False, highlight=False)

    elif args.config_action == "validate":
        path = args.config_file or getattr(args, "config", None)
        try:
            if path:
                LgtRefactorConfig.load(path, use_env=False, validate=True)
            else:
                load_config()
        except ConfigurationError as e:
            if _is_machine_readable(args):
                _print_json_to_stdout(args, {"success": False, "valid": False, "error": str(e)})
            output.print_error(f"Configuration is invalid: {e}")
            sys.exit(1)

        if _is_machine_readable(args):
            _print_json_to_stdout(args, {"success": True, "valid": True, "config_file": path})
        else:
            output.print_success(f"Configuration {path or '(defaults and environment)'} is valid")
