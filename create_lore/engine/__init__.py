"""create-lore scaffolding engine.

Validation, acquisition, filtering, materialization, configuration and
history steps that turn a template tree into a new instance directory.

Key pieces:
    validate_target   - name/path validation
    TreeAcquirer      - local / git / archive template acquisition
    scratch_tree      - scratch directory with guaranteed cleanup
    strip_history     - template history removal
    apply_filter      - allowlist / denylist dev-asset filtering
    materialize       - staged copy into the target
    ConfigGenerator   - primary config and sticky files
    init_history      - fresh git history
"""

from .acquirer import (
    ArchiveTransport,
    GitTransport,
    LocalTransport,
    TreeAcquirer,
    scratch_tree,
)
from .configgen import ConfigGenerator, select_strategy, substitute
from .errors import (
    AcquisitionError,
    AcquisitionFailure,
    HistoryInitFailure,
    InvalidName,
    MaterializeFailure,
    PathEscape,
    ScaffoldError,
    TargetExists,
    TargetValidationError,
    TemplateMalformed,
)
from .filters import apply_filter
from .history import init_history, strip_history
from .materializer import materialize
from .validator import validate_target

__all__ = [
    # Steps
    "validate_target",
    "TreeAcquirer",
    "LocalTransport",
    "GitTransport",
    "ArchiveTransport",
    "scratch_tree",
    "strip_history",
    "apply_filter",
    "materialize",
    "ConfigGenerator",
    "select_strategy",
    "substitute",
    "init_history",
    # Errors
    "ScaffoldError",
    "TargetValidationError",
    "InvalidName",
    "PathEscape",
    "TargetExists",
    "AcquisitionError",
    "AcquisitionFailure",
    "MaterializeFailure",
    "TemplateMalformed",
    "HistoryInitFailure",
]
