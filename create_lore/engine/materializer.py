"""Copy the filtered scratch tree into the instance location.

The tree is copied into a hidden staging directory next to the target and
then renamed into place, so the target either appears complete or not at all.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from pathlib import Path

from create_lore.utils import remove_path

from .errors import MaterializeFailure, TargetExists


def _missing_parents(parent: Path) -> list[Path]:
    """Return the ancestors of a target that do not exist yet, deepest first."""
    missing: list[Path] = []
    while not os.path.lexists(parent):
        missing.append(parent)
        parent = parent.parent
    return missing


def _remove_created_parents(created: list[Path]) -> None:
    for directory in created:
        try:
            directory.rmdir()
        except OSError:
            # Not empty: something else now lives there.
            break


def _materialize(tree: Path, target: Path) -> None:
    if os.path.lexists(target):
        raise TargetExists(target)

    created = _missing_parents(target.parent)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{target.name}.", dir=target.parent))
    except OSError as exc:
        _remove_created_parents(created)
        raise MaterializeFailure(
            f"Could not prepare {target.parent} for the new project: {exc}", target=target
        ) from exc

    try:
        shutil.copytree(tree, staging, symlinks=True, dirs_exist_ok=True)
        # Re-check right before the rename; os.rename onto an existing empty
        # directory would silently succeed on POSIX.
        if os.path.lexists(target):
            raise TargetExists(target)
        os.rename(staging, target)
    except TargetExists:
        remove_path(staging)
        raise
    except (OSError, shutil.Error) as exc:
        remove_path(staging)
        _remove_created_parents(created)
        raise MaterializeFailure(
            f"Failed to copy the template into {target}: {exc}", target=target
        ) from exc


async def materialize(tree: str | Path, target: str | Path) -> Path:
    """Copy *tree* to *target*, which must not exist.

    Missing parent directories of *target* are created.

    Raises:
        TargetExists: *target* appeared since validation.
        MaterializeFailure: The copy or the final rename failed.  The staging
            directory and any parent directories created for the target are
            removed, so nothing is left behind.
    """
    tree, target = Path(tree), Path(target)
    await asyncio.to_thread(_materialize, tree, target)
    return target
