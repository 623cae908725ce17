"""
Command-line interface package for lgtrefactor.

The argparse entry point lives in ``lgtrefactor.cli_entry``; this package
holds the command handlers and the terminal output helpers.
"""
