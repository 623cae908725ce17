"""
CLI command handlers.

Organized by functional domain:
- config.py: Configuration commands
- refactoring.py: Argument and parameter refactoring commands
"""

from .config import cmd_config
from .refactoring import (
    cmd_refactor,
    format_refactoring_result,
)

__all__ = [
    "cmd_config",
    "cmd_refactor",
    "format_refactoring_result",
]
