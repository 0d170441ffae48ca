from __future__ import annotations

import sys
from typing import Mapping

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from dashtree import __version__


def print_session_summary(console: Console, command_name: str, settings: Mapping[str, object]) -> None:
    """Print the start banner and the resolved run settings on the (stderr) console."""

    banner = Panel(
        f"[bold cyan]dashtree {__version__}[/bold cyan]\n"
        "[white]Densified MinHash + neighbor-joining trees[/white]",
        title="[bold]CLI Start[/bold]",
        border_style="cyan",
        expand=False,
    )
    console.print(banner)

    stats = Table(
        title="[bold]Session Summary[/bold]",
        box=box.SIMPLE_HEAVY,
        show_header=False,
        expand=False,
    )
    stats.add_column("Key", style="bold cyan")
    stats.add_column("Value", style="white")
    stats.add_row("Command", command_name)
    for key, value in settings.items():
        stats.add_row(key, "-" if value is None else escape(str(value)))
    stats.add_row("Python", sys.version.split()[0])
    console.print(stats)
