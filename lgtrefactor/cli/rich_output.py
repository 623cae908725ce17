"""
Rich terminal output utilities for the lgtrefactor CLI.

Provides panels, tables and syntax-highlighted diffs for refactoring
results, with a plain-text mode for pipes and ``--no-rich``.
"""

from typing import Any, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table


class RichOutputManager:
    """Manages rich terminal output with a plain-text mode."""

    def __init__(self, use_rich: bool = True):
        """Initialize the output manager."""
        self.use_rich = use_rich
        if use_rich:
            self.console = Console()
        else:
            self.console = Console(no_color=True, highlight=False, markup=False, emoji=False)

    def print_header(self, title: str, subtitle: Optional[str] = None) -> None:
        """Print a formatted header."""
        if self.use_rich:
            if subtitle:
                header_text = f"[bold blue]{title}[/bold blue]\n[dim]{subtitle}[/dim]"
            else:
                header_text = f"[bold blue]{title}[/bold blue]"

            self.console.print(Panel(header_text, border_style="blue", padding=(0, 2)))
        else:
            self.console.print(f"=== {title} ===")
            if subtitle:
                self.console.print(subtitle)

    def print_section(self, title: str) -> None:
        """Print a section separator."""
        if self.use_rich:
            self.console.rule(f"[bold]{title}[/bold]", style="blue")
        else:
            self.console.print(f"--- {title} ---")

    def print_success(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[green]✓[/green] {message}")
        else:
            self.console.print(f"OK: {message}")

    def print_warning(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[yellow]⚠[/yellow] {message}")
        else:
            self.console.print(f"WARNING: {message}")

    def print_error(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[red]✗[/red] {message}")
        else:
            self.console.print(f"ERROR: {message}")

    def print_info(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[blue]ℹ[/blue] {message}")
        else:
            self.console.print(message)

    def print_table(self, title: str, columns: List[str], rows: List[List[Any]]) -> None:
        """Print rows under the given column headers."""
        if self.use_rich:
            table = Table(title=title, show_header=True, header_style="bold blue")
            for column in columns:
                table.add_column(column)
            for row in rows:
                table.add_row(*[str(v) for v in row])
            self.console.print(table)
        else:
            self.console.print(title)
            self.console.print(" | ".join(columns))
            for row in rows:
                self.console.print(" | ".join(str(v) for v in row))

    def print_diff(self, diff: str, title: Optional[str] = None) -> None:
        """Print a unified diff, highlighted in rich mode."""
        if title:
            self.print_section(title)

        if self.use_rich:
            self.console.print(Syntax(diff, "diff", theme="ansi_dark", word_wrap=False))
        else:
            self.console.print(diff, end="" if diff.endswith("\n") else "\n")


# Global instance
rich_output = RichOutputManager()


def set_rich_enabled(enabled: bool) -> None:
    """Enable or disable rich output globally."""
    global rich_output
    rich_output = RichOutputManager(use_rich=enabled)


def get_rich_output() -> RichOutputManager:
    """Get the global rich output manager."""
    return rich_output
