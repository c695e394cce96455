import sys
from typing import List, Optional

from rich.console import Console
from rich.table import Table

_console = Console()
_err_console = Console(stderr=True)

SEVERITY_STYLES = {
    "critical": "bold red",
    "warning": "yellow",
    "info": "cyan",
}


def print_step(title: str) -> None:
    """Print a step header."""
    _console.rule(f"[bold blue]{title}[/]")


def print_success(message: str) -> None:
    """Print a success message."""
    _console.print(f"[bold green]SUCCESS:[/] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    _err_console.print(f"[bold yellow]WARNING:[/] {message}")


def print_error(message: str, exit_code: Optional[int] = None) -> None:
    """Print an error message and optionally exit."""
    _err_console.print(f"[bold red]ERROR:[/] {message}")
    if exit_code is not None:
        sys.exit(exit_code)


def severity_label(severity: str) -> str:
    style = SEVERITY_STYLES.get(severity)
    return f"[{style}]{severity}[/]" if style else severity


def print_table(title: str, columns: List[str], rows: List[List[str]]) -> None:
    """Print a table with optional title."""
    table = Table(title=title)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*row)
    if not rows:
        table.caption = "(No issues)"
    _console.print(table)
