"""Remove development-only assets from the scratch tree.

Filtering works on paths relative to the tree root only; file contents are
never inspected.  The allowlist policy is the default: anything at the top
level that is not explicitly kept is dropped, so new clutter in the template
does not leak into instances.  The denylist policy removes a fixed set of
known dev-only paths and keeps everything else.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from create_lore.utils import remove_path

from .models import AllowlistPolicy, DenylistPolicy


def _apply_allowlist(root: Path, policy: AllowlistPolicy) -> list[str]:
    keep = set(policy.keep)
    removed: list[str] = []
    for child in sorted(root.iterdir()):
        if child.name in keep:
            continue
        remove_path(child)
        removed.append(child.name)
    return removed


def _apply_denylist(root: Path, policy: DenylistPolicy) -> list[str]:
    removed: list[str] = []
    for entry in policy.remove:
        if remove_path(root / entry):
            removed.append(entry)
    return sorted(removed)


def filter_tree(root: str | Path, policy: AllowlistPolicy | DenylistPolicy) -> list[str]:
    """Apply *policy* to *root* in place.

    Returns:
        Sorted relative paths that were removed.
    """
    root = Path(root)
    if isinstance(policy, AllowlistPolicy):
        return _apply_allowlist(root, policy)
    return _apply_denylist(root, policy)


async def apply_filter(root: str | Path, policy: AllowlistPolicy | DenylistPolicy) -> list[str]:
    """Async wrapper around :func:`filter_tree`."""
    return await asyncio.to_thread(filter_tree, root, policy)
