"""Pydantic models for the scaffolding engine.

Every entity is a transient, process-lifetime value: the request built from
the command line, the validated target, the scratch tree, the static filter
policy, the generated instance configuration, and the final result.
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path, PurePosixPath
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Request / target
# ---------------------------------------------------------------------------


class ScaffoldRequest(BaseModel):
    """Immutable input assembled once from process arguments/environment."""

    model_config = ConfigDict(frozen=True)

    raw_name: str = Field(..., description="Positional name or path argument")
    explicit_template_source: Path | None = Field(
        default=None, description="Local template directory overriding the remote clone"
    )
    interactive: bool = Field(default=False)
    tools: list[str] | None = Field(
        default=None, description="Selected agent tools, None when no selection was made"
    )


class TargetLocation(BaseModel):
    """A validated, canonical, not-yet-existing instance directory."""

    model_config = ConfigDict(frozen=True)

    absolute_path: Path
    final_segment: str
    project_name: str
    path_mode: bool = False


class ScratchTree(BaseModel):
    """Process-local working copy of the template."""

    scratch_path: Path
    acquired: bool = False

    @property
    def tree_path(self) -> Path:
        """Directory the template tree is materialized into."""
        return self.scratch_path / "template"


# ---------------------------------------------------------------------------
# Filter policies
# ---------------------------------------------------------------------------


def _check_relative_entry(entry: str) -> str:
    if not entry or not entry.strip():
        raise ValueError("filter entries must be non-empty")
    pure = PurePosixPath(entry)
    if pure.is_absolute() or ".." in pure.parts or entry.startswith("\\"):
        raise ValueError(f"filter entry must be a relative path inside the tree: {entry!r}")
    return entry


class AllowlistPolicy(BaseModel):
    """Keep only the named top-level entries; remove everything else."""

    mode: Literal["allowlist"] = "allowlist"
    keep: list[str] = Field(default_factory=list)

    @field_validator("keep")
    @classmethod
    def _top_level_only(cls, value: list[str]) -> list[str]:
        for entry in value:
            _check_relative_entry(entry)
            if "/" in entry or "\\" in entry:
                raise ValueError(f"allowlist entries are top-level names, got {entry!r}")
        return value


class DenylistPolicy(BaseModel):
    """Remove the named paths (relative to the tree root) when present."""

    mode: Literal["denylist"] = "denylist"
    remove: list[str] = Field(default_factory=list)

    @field_validator("remove")
    @classmethod
    def _relative_only(cls, value: list[str]) -> list[str]:
        for entry in value:
            _check_relative_entry(entry)
        return value


FilterPolicy = Annotated[Union[AllowlistPolicy, DenylistPolicy], Field(discriminator="mode")]


# ---------------------------------------------------------------------------
# Instance configuration
# ---------------------------------------------------------------------------


class InstanceConfig(BaseModel):
    """Instance-specific metadata written to the primary config file."""

    name: str
    version: str = "0.0.0"
    created: date
    tools: list[str] | None = None

    def placeholders(self, default_tools: list[str] | None = None) -> dict[str, str]:
        """Return the ``{{key}}`` substitution map.

        ``tools`` renders as a JSON array and ``tools_csv`` as a comma list.
        When no selection was made, *default_tools* fills both.
        """
        tools = self.tools if self.tools is not None else list(default_tools or [])
        return {
            "name": self.name,
            "version": self.version,
            "created": self.created.isoformat(),
            "tools": json.dumps(tools),
            "tools_csv": ",".join(tools),
        }

    def to_record(self) -> dict[str, Any]:
        """Return the synthesized ``{name, version, created[, tools]}`` record."""
        record: dict[str, Any] = {
            "name": self.name,
            "version": self.version,
            "created": self.created.isoformat(),
        }
        if self.tools is not None:
            record["tools"] = list(self.tools)
        return record


class StickyFile(BaseModel):
    """A gitignored, instance-specific file regenerated from a template."""

    source: str = Field(..., description="Template path inside the copied tree")
    destination: str = Field(..., description="Output path inside the instance")
    required: bool = False
    substitute: bool = True

    @field_validator("source", "destination")
    @classmethod
    def _inside_tree(cls, value: str) -> str:
        return _check_relative_entry(value)


class SynthesizedRecord(BaseModel):
    """No config template shipped: write a minimal JSON record."""

    kind: Literal["synthesized"] = "synthesized"


class TemplateSubstitution(BaseModel):
    """Config template shipped: fill its placeholders."""

    kind: Literal["template"] = "template"
    template_path: Path


ConfigStrategy = Annotated[
    Union[SynthesizedRecord, TemplateSubstitution], Field(discriminator="kind")
]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


class ScaffoldResult(BaseModel):
    """Outcome of one successful scaffold operation."""

    target: TargetLocation
    config: InstanceConfig
    strategy: ConfigStrategy
    removed_paths: list[str] = Field(default_factory=list)
    sticky_files_written: list[str] = Field(default_factory=list)
    history_initialized: bool = False
    warnings: list[str] = Field(default_factory=list)
