"""Central UI handler for rustgeiger.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Usage:
    from rustgeiger.pipeline.ui import console, print_header, print_warning

    console.print("[success]No unsafe usage[/success]")
    print_header("UNSAFE USAGE")
"""

import sys

from rich.console import Console
from rich.theme import Theme

GEIGER_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "unsafe": "bold red",
    "safe": "green",
    "forbids": "bold green",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

console = Console(
    theme=GEIGER_THEME,
    force_terminal=sys.stdout.isatty()
)

err_console = Console(theme=GEIGER_THEME, stderr=True)


def print_header(title: str) -> None:
    """Print a styled section header with horizontal rules."""
    console.rule(f"[bold]{title}[/bold]")


def print_warning(msg: str) -> None:
    """Print a warning message in yellow."""
    err_console.print(f"[warning]WARNING:[/warning] {msg}", highlight=False)
