"""Shared console helpers for nixbridge.

Rich-based status output used by the engine and the resource reconcilers.
Failures are raised, never printed here; these helpers only report progress
and warnings that the caller should surface to the user.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape

console = Console(stderr=True)


def format_command(argv: Sequence[str]) -> str:
    """Render an argv list as a copy-pasteable shell command line.

    Only used for display and error messages; commands are always executed
    from the argv list itself.
    """
    return shlex.join(argv)


def print_status(message: str) -> None:
    """Print a progress line for a mutating operation."""
    console.print(f"[cyan]{escape(message)}[/cyan]")


def print_success(message: str) -> None:
    """Print a green success line."""
    console.print(f"[green]{escape(message)}[/green]")


def print_warning(message: str) -> None:
    """Print a yellow warning line."""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def print_command(argv: Sequence[str]) -> None:
    """Echo a command about to be executed (verbose mode)."""
    console.print(f"  [dim]$ {escape(format_command(argv))}[/dim]")
