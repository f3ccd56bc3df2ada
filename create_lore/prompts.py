"""Tool selection input for the CLI.

The engine never prompts: it only receives ``ScaffoldRequest.tools``.  This
module produces that list, either from the ``--tools`` flag or by asking on
the terminal when ``--interactive`` is given.
"""

from __future__ import annotations

import sys

from rich.console import Console
from rich.prompt import Confirm

from create_lore.utils import err_console


def parse_tools(value: str, supported: list[str]) -> list[str]:
    """Parse a comma-separated ``--tools`` value.

    Order follows *supported*; duplicates collapse.

    Raises:
        ValueError: An unknown tool name was given, or the list is empty.
    """
    requested = [part.strip().lower() for part in value.split(",") if part.strip()]
    if not requested:
        raise ValueError("--tools needs at least one tool name")
    unknown = sorted(set(requested) - set(supported))
    if unknown:
        raise ValueError(
            f"Unknown tool(s): {', '.join(unknown)}. Choose from: {', '.join(supported)}"
        )
    return [tool for tool in supported if tool in requested]


def can_prompt() -> bool:
    """Return ``True`` when stdin is an interactive terminal."""
    return sys.stdin is not None and sys.stdin.isatty()


def prompt_for_tools(
    supported: list[str],
    default: list[str],
    console: Console | None = None,
) -> list[str]:
    """Ask which agent tools the instance should be configured for.

    Each supported tool gets a yes/no question defaulting to its membership
    in *default*.  Choosing nothing falls back to *default*.
    """
    out = console or err_console
    out.print("[bold]Which agent tools will you use with this repo?[/bold]")
    selected = [
        tool
        for tool in supported
        if Confirm.ask(f"  {tool}", default=tool in default, console=out)
    ]
    if not selected:
        out.print("[yellow]No tools selected -- using the defaults.[/yellow]")
        return list(default)
    return selected
