"""Unit tests for ScaffoldSettings (create_lore.config).

Tests cover:
- Defaults (repository, allowlist policy, config locations, sticky files)
- Derived reference / archive URL / version sources
- from_env overrides and validation
- template_override_from_env
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from create_lore import __version__
from create_lore.config import (
    DEFAULT_DEV_ONLY,
    DEFAULT_KEEP,
    DEFAULT_REPO_URL,
    ScaffoldSettings,
    template_override_from_env,
)
from create_lore.engine.models import AllowlistPolicy, DenylistPolicy

pytestmark = pytest.mark.unit


class TestDefaults:
    def test_repository_and_transport(self):
        s = ScaffoldSettings()
        assert s.repo_url == DEFAULT_REPO_URL
        assert s.transport == "git"
        assert s.version == __version__
        assert s.acquire_timeout is None

    def test_allowlist_is_default_policy(self):
        s = ScaffoldSettings()
        assert isinstance(s.filter_policy, AllowlistPolicy)
        assert s.filter_policy.keep == DEFAULT_KEEP

    def test_allowlist_keeps_config_locations(self):
        keep = set(ScaffoldSettings().filter_policy.keep)
        assert ".lore" in keep
        assert ".lore-config" in keep

    def test_config_locations(self):
        s = ScaffoldSettings()
        assert s.config_path == ".lore-config"
        assert s.config_template_path == ".lore/templates/lore-config.jsonc"
        assert s.version_sources == [".lore-config", ".lore/config.json"]

    def test_sticky_files_include_env_at_root(self):
        destinations = [sf.destination for sf in ScaffoldSettings().sticky_files]
        assert ".env" in destinations
        assert all(not sf.required for sf in ScaffoldSettings().sticky_files)

    def test_default_branch_main(self):
        assert ScaffoldSettings().default_branch == "main"

    def test_empty_branch_rejected(self):
        with pytest.raises(ValidationError):
            ScaffoldSettings(default_branch="  ")

    def test_policy_from_dict(self):
        s = ScaffoldSettings(filter_policy={"mode": "denylist", "remove": ["test"]})
        assert isinstance(s.filter_policy, DenylistPolicy)


class TestReference:
    def test_pinned_to_tool_version(self):
        assert ScaffoldSettings(version="2.0.1").reference == "v2.0.1"

    def test_unpinned_uses_default_branch(self):
        assert ScaffoldSettings(pin_version=False).reference is None

    def test_explicit_ref_wins(self):
        assert ScaffoldSettings(ref="develop").reference == "develop"

    def test_archive_url_for_tag(self):
        s = ScaffoldSettings(version="2.0.1")
        assert s.resolved_archive_url == (
            "https://github.com/lorehq/lore/archive/refs/tags/v2.0.1.tar.gz"
        )

    def test_archive_url_for_default_branch(self):
        s = ScaffoldSettings(pin_version=False)
        assert s.resolved_archive_url.endswith("/archive/HEAD.tar.gz")

    def test_archive_url_for_branch_ref(self):
        s = ScaffoldSettings(ref="develop")
        assert s.resolved_archive_url.endswith("/archive/develop.tar.gz")

    def test_archive_url_follows_repo_url(self):
        s = ScaffoldSettings(repo_url="https://git.example.com/team/lore-fork.git", version="2.0.1")
        assert s.resolved_archive_url == (
            "https://git.example.com/team/lore-fork/archive/refs/tags/v2.0.1.tar.gz"
        )

    def test_explicit_archive_pattern_wins(self):
        s = ScaffoldSettings(
            repo_url="git@example.com:team/lore.git",
            archive_url="https://mirror.example.com/lore-{ref_path}.tgz",
            version="2.0.1",
        )
        assert s.resolved_archive_url == "https://mirror.example.com/lore-refs/tags/v2.0.1.tgz"

    @pytest.mark.parametrize("repo_url", ["git@github.com:lorehq/lore.git", "file:///srv/lore"])
    def test_archive_url_not_derivable(self, repo_url: str):
        with pytest.raises(ValueError, match="archive URL"):
            ScaffoldSettings(repo_url=repo_url).resolved_archive_url


class TestFromEnv:
    def test_empty_environment_gives_defaults(self):
        s = ScaffoldSettings.from_env({})
        assert s == ScaffoldSettings()

    def test_overrides(self):
        s = ScaffoldSettings.from_env({
            "LORE_REPO_URL": "https://example.com/lore.git",
            "LORE_REF": "v9.9.9",
            "LORE_TRANSPORT": "archive",
            "LORE_TIMEOUT": "30",
        })
        assert s.repo_url == "https://example.com/lore.git"
        assert s.reference == "v9.9.9"
        assert s.transport == "archive"
        assert s.acquire_timeout == 30.0
        assert s.resolved_archive_url == "https://example.com/lore/archive/refs/tags/v9.9.9.tar.gz"

    def test_archive_url_override(self):
        s = ScaffoldSettings.from_env({"LORE_ARCHIVE_URL": "https://mirror.example.com/{ref_path}.tar.gz"})
        assert s.archive_url == "https://mirror.example.com/{ref_path}.tar.gz"

    def test_denylist_mode(self):
        s = ScaffoldSettings.from_env({"LORE_FILTER": "denylist"})
        assert isinstance(s.filter_policy, DenylistPolicy)
        assert s.filter_policy.remove == DEFAULT_DEV_ONLY

    def test_unknown_filter_mode_rejected(self):
        with pytest.raises(ValueError, match="LORE_FILTER"):
            ScaffoldSettings.from_env({"LORE_FILTER": "everything"})

    def test_bad_transport_rejected(self):
        with pytest.raises(ValidationError):
            ScaffoldSettings.from_env({"LORE_TRANSPORT": "ftp"})

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            ScaffoldSettings.from_env({"LORE_TIMEOUT": "0"})


class TestTemplateOverride:
    def test_unset(self):
        assert template_override_from_env({}) is None

    def test_blank(self):
        assert template_override_from_env({"LORE_TEMPLATE": "  "}) is None

    def test_set(self):
        assert template_override_from_env({"LORE_TEMPLATE": "../lore"}) == Path("../lore")
