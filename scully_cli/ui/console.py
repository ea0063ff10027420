"""Rich console wrapper and formatting utilities."""

import json
from typing import Any, List, Optional

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

# Global console instances; diagnostics go to stderr so stdout stays pipeable
console = Console()
err_console = Console(stderr=True)


def print_markdown(text: str, title: Optional[str] = None) -> None:
    """
    Print markdown formatted text.

    Args:
        text: Markdown text to print
        title: Optional panel title
    """
    md = Markdown(text)
    if title:
        console.print(Panel(md, title=title, border_style="cyan"))
    else:
        console.print(md)


def print_code(code: str, language: str = "swift", title: Optional[str] = None) -> None:
    """
    Print syntax highlighted code.

    Args:
        code: Code to print
        language: Language for syntax highlighting
        title: Optional panel title
    """
    syntax = Syntax(code, language, theme="monokai", line_numbers=True)
    if title:
        console.print(Panel(syntax, title=title, border_style="cyan"))
    else:
        console.print(syntax)


def print_json(data: Any) -> None:
    """Print data as plain JSON on stdout."""
    console.print_json(json.dumps(data, default=str))


def print_info(message: str, title: Optional[str] = None) -> None:
    if title:
        err_console.print(f"[cyan][bold]{title}:[/bold][/cyan] {message}")
    else:
        err_console.print(f"[cyan]{message}[/cyan]")


def print_success(message: str, title: Optional[str] = None) -> None:
    if title:
        err_console.print(f"[green][bold]{title}:[/bold][/green] {message}")
    else:
        err_console.print(f"[green]✓ {message}[/green]")


def print_warning(message: str, title: Optional[str] = None) -> None:
    if title:
        err_console.print(f"[yellow][bold]{title}:[/bold][/yellow] {message}")
    else:
        err_console.print(f"[yellow]⚠ {message}[/yellow]")


def print_error(message: str, title: Optional[str] = None) -> None:
    """
    Print error message to stderr.

    Args:
        message: Error message
        title: Optional title
    """
    if title:
        err_console.print(f"[red][bold]{title}:[/bold][/red] {message}")
    else:
        err_console.print(f"[red]✗ {message}[/red]")


def create_table(title: str, headers: List[str]) -> Table:
    """
    Create a Rich table.

    Args:
        title: Table title
        headers: Column headers

    Returns:
        Table instance
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for header in headers:
        table.add_column(header)
    return table


def print_panel(content: str, title: str, border_style: str = "cyan") -> None:
    console.print(Panel(content, title=title, border_style=border_style))
