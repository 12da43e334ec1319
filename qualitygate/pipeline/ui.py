"""Shared rich console and message helpers for qg output.

Commands print through `console` so the theme stays uniform. Rules and
panels are drawn with ASCII characters; Windows consoles running CP1252
cannot encode box-drawing glyphs.
"""

import sys

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

QG_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "cmd": "bold magenta",
    "dim": "dim white",
})

console = Console(
    theme=QG_THEME,
    force_terminal=sys.stdout.isatty()
)

# Panel level -> (status line style, border style)
_PANEL_STYLES = {
    "error": ("bold red", "red"),
    "warning": ("bold yellow", "yellow"),
    "success": ("bold green", "green"),
    "info": ("bold cyan", "cyan"),
}


def print_header(title: str) -> None:
    console.rule(f"[bold]{title}[/bold]", characters="=")


def print_error(msg: str) -> None:
    console.print(f"[error]ERROR:[/error] {msg}")


def print_warning(msg: str) -> None:
    console.print(f"[warning]WARNING:[/warning] {msg}")


def print_status_panel(status: str, message: str, detail: str = "", level: str = "info") -> None:
    """Print the end-of-run verdict.

    Args:
        status: Label shown as STATUS: [<status>], e.g. "PASSED" or "ABORTED"
        message: One-line verdict
        detail: Optional second line (first diagnostic, report location)
        level: Key of _PANEL_STYLES
    """
    status_style, border_style = _PANEL_STYLES.get(level, ("white", "white"))
    body = Text(f"STATUS: [{status}]\n", style=status_style)
    body.append(message, style=border_style)
    if detail:
        body.append(f"\n{detail}", style=border_style)
    console.print(Panel(body, box=box.ASCII, border_style=border_style, expand=False))
