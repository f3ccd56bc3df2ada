"""Shared utility functions for create-lore.

Provides async command execution, JSONC parsing, file-system helpers and
Rich-based console reporting.  Diagnostics (progress, warnings, errors) go to
``err_console`` on stderr; only the final success summary is printed to
stdout through ``console``.
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import shutil
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: float | None = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously without a shell.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits indefinitely.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timeout yields
        returncode ``-1`` with a ``Command timed out`` message in stderr.

    Raises:
        FileNotFoundError: If the program is not installed.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


# ---------------------------------------------------------------------------
# JSONC (JSON with comments and trailing commas)
# ---------------------------------------------------------------------------

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def strip_jsonc(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas from JSONC text.

    String literals are left untouched, so ``"https://..."`` survives.
    """
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False
    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return _remove_trailing_commas("".join(out))


def _remove_trailing_commas(text: str) -> str:
    # Only commas outside strings; strings were preserved verbatim above, so
    # re-scan to skip them.
    result: list[str] = []
    last = 0
    for match in re.finditer(r'"(?:\\.|[^"\\])*"', text):
        result.append(_TRAILING_COMMA.sub(r"\1", text[last:match.start()]))
        result.append(match.group(0))
        last = match.end()
    result.append(_TRAILING_COMMA.sub(r"\1", text[last:]))
    return "".join(result)


def loads_jsonc(text: str) -> dict[str, Any]:
    """Parse JSONC text into a dictionary.

    Raises:
        json.JSONDecodeError: If the text is not valid once comments are removed.
        ValueError: If the top-level value is not an object.
    """
    data = json.loads(strip_jsonc(text))
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object at the top level")
    return data


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def remove_path(path: Path) -> bool:
    """Remove a file, symlink, or directory tree.  Symlinks are never followed.

    Returns:
        ``True`` if something was removed, ``False`` if nothing was there.
    """
    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.is_dir():
        shutil.rmtree(path)
        return True
    if os.path.lexists(path):
        path.unlink()
        return True
    return False


def write_text(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_step(message: str) -> None:
    """Print a dim progress line for one engine step.

    *message* is plain text; Rich markup in it is printed literally.
    """
    err_console.print(f"[dim]-[/dim] {escape(message)}")


def print_success(message: str) -> None:
    """Print a green success message to stdout."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message to stderr."""
    err_console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message to stderr."""
    err_console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table to stdout.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(escape(key), escape(str(value)))

    console.print(table)
