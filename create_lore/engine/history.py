"""Version-control history handling.

Two operations bracket the scaffold: the template's own history is stripped
from the scratch tree before anything is copied, and a fresh, empty history
is started in the instance once its files are in place.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from create_lore.utils import remove_path, run_command

from .errors import HistoryInitFailure


async def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    timeout: float = 60.0,
) -> tuple[str, str]:
    """Run a git command asynchronously and return (stdout, stderr).

    Raises HistoryInitFailure if git is missing or exits non-zero.
    """
    cmd = ["git", *args]
    cmd_str = " ".join(cmd)

    try:
        returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout)
    except FileNotFoundError as exc:
        raise HistoryInitFailure(
            "git is not installed or not on PATH",
            target=Path(cwd) if cwd else None,
            command=cmd_str,
        ) from exc

    if returncode != 0:
        raise HistoryInitFailure(
            f"Git command failed (exit {returncode}): {cmd_str}\n{stderr}",
            target=Path(cwd) if cwd else None,
            command=cmd_str,
            stderr=stderr,
        )

    return stdout, stderr


async def strip_history(root: str | Path, dirname: str = ".git") -> bool:
    """Remove the version-control metadata at the root of *root*.

    Handles both a ``.git`` directory and a ``.git`` file (worktree or
    submodule checkouts).  Absence is a no-op.

    Returns:
        ``True`` if metadata was removed.
    """
    return await asyncio.to_thread(remove_path, Path(root) / dirname)


async def init_history(target: str | Path, branch: str = "main") -> None:
    """Start empty git history in *target* on *branch*.

    Uses ``git init -b``; git releases older than 2.28 lack ``-b``, so on
    failure the repository is initialised plainly and ``HEAD`` repointed.

    Raises:
        HistoryInitFailure: git is missing or both attempts fail.
    """
    target = Path(target)
    try:
        await _run_git("init", "-b", branch, cwd=target)
        return
    except HistoryInitFailure as exc:
        if "git is not installed" in str(exc):
            raise

    await _run_git("init", cwd=target)
    await _run_git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=target)
