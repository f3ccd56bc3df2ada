"""Turn the raw name/path argument into a safe target location.

Two modes:

* **name mode** -- the argument has no path separator and names a plain
  subdirectory of the invocation directory (``myproject`` -> ``./myproject``).
* **path mode** -- the argument contains a separator and is resolved
  relative to the invocation directory (``./clients/acme``).

Either way the resolved target must sit strictly inside ``cwd``, every
user-controlled segment must match ``[A-Za-z0-9._-]+``, and nothing may exist
at the target yet.  Validation never touches the filesystem beyond one
existence probe.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from .errors import InvalidName, PathEscape, TargetExists
from .models import TargetLocation

SEGMENT_PATTERN = re.compile(r"[A-Za-z0-9._-]+")

_RESERVED_SEGMENTS = {".", ".."}


def is_valid_segment(segment: str) -> bool:
    """Return ``True`` if *segment* is an acceptable directory name."""
    return bool(SEGMENT_PATTERN.fullmatch(segment)) and segment not in _RESERVED_SEGMENTS


def is_path_argument(raw_arg: str) -> bool:
    """Return ``True`` if *raw_arg* should be treated as a path, not a name."""
    separators = {"/", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    return any(sep in raw_arg for sep in separators)


def validate_target(raw_arg: str, cwd: str | Path | None = None) -> TargetLocation:
    """Validate *raw_arg* against *cwd* and return the canonical target.

    Args:
        raw_arg: The positional argument exactly as the user supplied it.
        cwd: Invocation directory.  Defaults to ``os.getcwd()``.

    Returns:
        A ``TargetLocation`` whose ``absolute_path`` does not exist yet.

    Raises:
        InvalidName: Empty argument, or a segment with disallowed characters.
        PathEscape: The target is not strictly inside *cwd*.
        TargetExists: Something is already present at the target.
    """
    base = Path(os.path.abspath(cwd if cwd is not None else os.getcwd()))
    if not raw_arg or not raw_arg.strip():
        raise InvalidName(raw_arg)

    path_mode = is_path_argument(raw_arg)
    target = Path(os.path.abspath(os.path.join(base, raw_arg)))

    final_segment = target.name
    if not is_valid_segment(final_segment):
        raise InvalidName(final_segment or raw_arg, target=target)

    # "." and ".." in name mode land on cwd or its parent and fail here.
    if target == base or base not in target.parents:
        raise PathEscape(target, base)

    if path_mode:
        for segment in target.relative_to(base).parts:
            if not is_valid_segment(segment):
                raise InvalidName(segment, target=target)

    if os.path.lexists(target):
        raise TargetExists(target)

    return TargetLocation(
        absolute_path=target,
        final_segment=final_segment,
        project_name=final_segment,
        path_mode=path_mode,
    )
