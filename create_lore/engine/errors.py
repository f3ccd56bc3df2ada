"""Error taxonomy for the scaffolding engine.

Every failure the engine can report is a ``ScaffoldError`` subclass.  The
orchestrator maps them to user-facing messages and exit codes; components
raise them and never print.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ScaffoldError(Exception):
    """Base class for every engine failure.

    Attributes:
        target: The instance directory the operation was aiming at, when it
            was known at the time of failure.  Used to tell the user whether
            anything was left on disk.
    """

    def __init__(self, message: str, target: Path | None = None) -> None:
        self.target = target
        super().__init__(message)


# ---------------------------------------------------------------------------
# Validation stage (nothing is ever created)
# ---------------------------------------------------------------------------


class TargetValidationError(ScaffoldError):
    """Raised before any filesystem mutation when the target is unusable."""


class InvalidName(TargetValidationError):
    """A user-controlled path segment contains a disallowed character."""

    def __init__(self, segment: str, target: Path | None = None) -> None:
        self.segment = segment
        super().__init__(
            f"Invalid project name '{segment}'. "
            "Names may contain letters, numbers, dots, hyphens, and underscores.",
            target=target,
        )


class PathEscape(TargetValidationError):
    """The resolved target is not strictly inside the invocation directory."""

    def __init__(self, target: Path, cwd: Path) -> None:
        self.cwd = cwd
        super().__init__(
            f"Target directory '{target}' is outside the current working directory "
            f"'{cwd}'. Use a relative name or path within the current directory.",
            target=target,
        )


class TargetExists(TargetValidationError):
    """The target path is already present on disk."""

    def __init__(self, target: Path) -> None:
        super().__init__(f"{target} already exists", target=target)


# ---------------------------------------------------------------------------
# Acquisition
# ---------------------------------------------------------------------------


class AcquisitionFailure(str, Enum):
    """Classification of acquisition failures, used for messaging only."""

    REFERENCE_NOT_FOUND = "reference-not-found"
    HOST_UNREACHABLE = "host-unreachable"
    TRANSPORT_FAILURE = "transport-failure"


class AcquisitionError(ScaffoldError):
    """The template tree could not be materialized into the scratch location."""

    def __init__(
        self,
        message: str,
        kind: AcquisitionFailure = AcquisitionFailure.TRANSPORT_FAILURE,
        *,
        source: str = "",
        reference: str | None = None,
        stderr: str = "",
    ) -> None:
        self.kind = kind
        self.source = source
        self.reference = reference
        self.stderr = stderr
        super().__init__(message)


# ---------------------------------------------------------------------------
# Post-acquisition
# ---------------------------------------------------------------------------


class MaterializeFailure(ScaffoldError):
    """The filtered tree could not be copied into the target location."""


class TemplateMalformed(ScaffoldError):
    """A required template-shipped file is missing or unparsable."""

    def __init__(self, message: str, target: Path | None = None, path: str = "") -> None:
        self.path = path
        super().__init__(message, target=target)


class HistoryInitFailure(ScaffoldError):
    """``git init`` failed in the new instance directory."""

    def __init__(
        self, message: str, target: Path | None = None, command: str = "", stderr: str = ""
    ) -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message, target=target)
