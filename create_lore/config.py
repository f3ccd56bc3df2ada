"""create-lore configuration.

Centralised, typed static configuration for the scaffolding engine.  The
template address, filter policy, config locations and sticky-file table live
here and are injected into ``Scaffolder`` at construction, so every component
can be exercised with substituted values.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from create_lore import __version__
from create_lore.engine.models import (
    AllowlistPolicy,
    DenylistPolicy,
    FilterPolicy,
    StickyFile,
)

DEFAULT_REPO_URL = "https://github.com/lorehq/lore.git"

# Top-level entries of the Lore template that ship in an instance.
DEFAULT_KEEP: list[str] = [
    ".claude",
    ".cursor",
    ".gitignore",
    ".lore",
    ".lore-config",
    ".opencode",
    "AGENTS.md",
    "CLAUDE.md",
    "docs",
    "hooks",
    "lib",
    "mkdocs.yml",
    "opencode.json",
    "scripts",
]

# Development-only paths stripped under the denylist policy.
DEFAULT_DEV_ONLY: list[str] = [
    "test",
    ".github",
    "node_modules",
    "site",
    "docs/assets",
    "docs/javascripts",
    "docs/stylesheets",
    "CODE_OF_CONDUCT.md",
    "CONTRIBUTING.md",
    "SECURITY.md",
    "LICENSE",
    "README.md",
    ".prettierrc",
    ".prettierignore",
    "eslint.config.js",
    "package-lock.json",
]

SUPPORTED_TOOLS: list[str] = ["claude-code", "cursor", "opencode"]

DEFAULT_STICKY_FILES: list[StickyFile] = [
    StickyFile(
        source=".lore/templates/knowledge-index.md",
        destination="docs/knowledge/local/index.md",
    ),
    StickyFile(
        source=".lore/templates/operator-profile.md",
        destination="docs/knowledge/local/operator-profile.md",
    ),
    StickyFile(source=".lore/templates/env", destination=".env"),
]


class ScaffoldSettings(BaseModel):
    """Static configuration for one scaffold run.

    Instances are created once by the CLI entry point (usually through
    :meth:`from_env`) and handed to ``Scaffolder``.
    """

    version: str = Field(default=__version__, description="Tool version, used as the release tag")
    repo_url: str = Field(default=DEFAULT_REPO_URL)
    archive_url: str | None = Field(
        default=None,
        description=(
            "Tarball URL pattern with a {ref_path} slot; derived from repo_url when unset"
        ),
    )
    transport: Literal["git", "archive"] = Field(default="git")
    pin_version: bool = Field(
        default=True, description="Fetch the v<version> tag instead of the default branch"
    )
    ref: str | None = Field(default=None, description="Explicit reference, overrides pinning")
    acquire_timeout: float | None = Field(
        default=None, gt=0, description="Transport timeout in seconds (None waits indefinitely)"
    )
    scratch_prefix: str = Field(default="create-lore-")

    history_dir: str = Field(default=".git")
    default_branch: str = Field(default="main")

    filter_policy: FilterPolicy = Field(default_factory=lambda: AllowlistPolicy(keep=list(DEFAULT_KEEP)))

    config_path: str = Field(default=".lore-config")
    legacy_config_paths: list[str] = Field(default_factory=lambda: [".lore/config.json"])
    config_template_path: str = Field(default=".lore/templates/lore-config.jsonc")
    sticky_files: list[StickyFile] = Field(default_factory=lambda: list(DEFAULT_STICKY_FILES))

    supported_tools: list[str] = Field(default_factory=lambda: list(SUPPORTED_TOOLS))
    default_tools: list[str] = Field(default_factory=lambda: list(SUPPORTED_TOOLS))

    @field_validator("default_branch", "history_dir", "config_path")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def reference(self) -> str | None:
        """The git reference to fetch, or ``None`` for the default branch."""
        if self.ref:
            return self.ref
        if self.pin_version:
            return f"v{self.version}"
        return None

    @property
    def resolved_archive_url(self) -> str:
        """Tarball URL for :attr:`reference`."""
        ref = self.reference
        if ref is None:
            ref_path = "HEAD"
        elif ref.startswith("v") and ref[1:2].isdigit():
            ref_path = f"refs/tags/{ref}"
        else:
            ref_path = ref
        return self.archive_pattern.format(ref_path=ref_path)

    @property
    def archive_pattern(self) -> str:
        """Tarball URL pattern for the archive transport.

        Raises:
            ValueError: No explicit pattern is set and ``repo_url`` is not an
                HTTP(S) URL an archive address can be derived from.
        """
        if self.archive_url:
            return self.archive_url
        base = self.repo_url.rstrip("/")
        if not base.startswith(("https://", "http://")):
            raise ValueError(
                f"Cannot derive a template archive URL from {self.repo_url}; "
                "use the git transport or set LORE_ARCHIVE_URL"
            )
        base = base.removesuffix(".git")
        return f"{base}/archive/{{ref_path}}.tar.gz"

    @property
    def version_sources(self) -> list[str]:
        """Config locations probed for the template version, in order."""
        return [self.config_path, *self.legacy_config_paths]

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "ScaffoldSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            LORE_REPO_URL, LORE_REF, LORE_ARCHIVE_URL, LORE_TRANSPORT, LORE_TIMEOUT,
            LORE_FILTER (``allowlist`` or ``denylist``).

        ``LORE_TEMPLATE`` is read by the CLI, not here: it belongs to the
        request rather than to the static configuration.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        if env.get("LORE_REPO_URL"):
            kwargs["repo_url"] = env["LORE_REPO_URL"]
        if env.get("LORE_REF"):
            kwargs["ref"] = env["LORE_REF"]
        if env.get("LORE_ARCHIVE_URL"):
            kwargs["archive_url"] = env["LORE_ARCHIVE_URL"]
        if env.get("LORE_TRANSPORT"):
            kwargs["transport"] = env["LORE_TRANSPORT"]
        if env.get("LORE_TIMEOUT"):
            kwargs["acquire_timeout"] = float(env["LORE_TIMEOUT"])

        filter_mode = env.get("LORE_FILTER", "allowlist").strip().lower()
        if filter_mode == "denylist":
            kwargs["filter_policy"] = DenylistPolicy(remove=list(DEFAULT_DEV_ONLY))
        elif filter_mode != "allowlist":
            raise ValueError(f"LORE_FILTER must be 'allowlist' or 'denylist', got {filter_mode!r}")

        return cls(**kwargs)


def template_override_from_env(environ: dict[str, str] | None = None) -> Path | None:
    """Return the ``LORE_TEMPLATE`` local template directory, if set."""
    env = os.environ if environ is None else environ
    value = env.get("LORE_TEMPLATE", "").strip()
    return Path(value) if value else None
