"""Unit tests for dev-asset filtering (create_lore.engine.filters)."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import TypeAdapter, ValidationError

from create_lore.config import DEFAULT_DEV_ONLY, DEFAULT_KEEP
from create_lore.engine.filters import apply_filter, filter_tree
from create_lore.engine.models import AllowlistPolicy, DenylistPolicy, FilterPolicy

pytestmark = pytest.mark.unit


def _names(root: Path) -> set[str]:
    return {p.name for p in root.iterdir()}


class TestAllowlist:
    def test_keeps_only_listed_entries(self, template_dir: Path):
        removed = filter_tree(template_dir, AllowlistPolicy(keep=DEFAULT_KEEP))
        assert _names(template_dir) <= set(DEFAULT_KEEP)
        for kept in ("CLAUDE.md", "AGENTS.md", ".lore", ".lore-config", "docs", "scripts", ".claude"):
            assert kept in _names(template_dir)
        for gone in ("test", ".github", "node_modules", "README.md", "LICENSE", "stray-notes.txt"):
            assert gone in removed
            assert not (template_dir / gone).exists()

    def test_removed_list_is_sorted(self, template_dir: Path):
        removed = filter_tree(template_dir, AllowlistPolicy(keep=["docs"]))
        assert removed == sorted(removed)

    def test_kept_contents_untouched(self, template_dir: Path):
        before = (template_dir / "docs" / "assets" / "logo.svg").read_bytes()
        filter_tree(template_dir, AllowlistPolicy(keep=["docs"]))
        assert (template_dir / "docs" / "assets" / "logo.svg").read_bytes() == before

    def test_unknown_clutter_dropped(self, template_dir: Path):
        (template_dir / "brand-new-tooling").mkdir()
        removed = filter_tree(template_dir, AllowlistPolicy(keep=DEFAULT_KEEP))
        assert "brand-new-tooling" in removed

    def test_symlink_removed_not_followed(self, tmp_path: Path):
        root = tmp_path / "tree"
        root.mkdir()
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "precious.txt").write_text("keep me")
        (root / "link").symlink_to(outside, target_is_directory=True)
        filter_tree(root, AllowlistPolicy(keep=[]))
        assert not os.path.lexists(root / "link")
        assert (outside / "precious.txt").read_text() == "keep me"

    def test_nested_paths_rejected(self):
        with pytest.raises(ValidationError):
            AllowlistPolicy(keep=["docs/assets"])


class TestDenylist:
    def test_removes_listed_paths(self, template_dir: Path):
        removed = filter_tree(template_dir, DenylistPolicy(remove=DEFAULT_DEV_ONLY))
        for gone in ("test", ".github", "README.md", "LICENSE", "package-lock.json"):
            assert not (template_dir / gone).exists()
            assert gone in removed
        # Unlisted clutter survives a denylist.
        assert (template_dir / "stray-notes.txt").exists()
        assert (template_dir / "CLAUDE.md").exists()

    def test_nested_path(self, template_dir: Path):
        removed = filter_tree(template_dir, DenylistPolicy(remove=["docs/assets"]))
        assert removed == ["docs/assets"]
        assert not (template_dir / "docs" / "assets").exists()
        assert (template_dir / "docs" / "index.md").exists()

    def test_absent_entries_ignored(self, tmp_path: Path):
        (tmp_path / "keep.md").write_text("x")
        assert filter_tree(tmp_path, DenylistPolicy(remove=["nope", "also/nope"])) == []
        assert (tmp_path / "keep.md").exists()

    @pytest.mark.parametrize("entry", ["", "/etc", "../up", "a/../../b", "\\win"])
    def test_escaping_entries_rejected(self, entry: str):
        with pytest.raises(ValidationError):
            DenylistPolicy(remove=[entry])


class TestPolicyUnion:
    def test_discriminated_by_mode(self):
        adapter = TypeAdapter(FilterPolicy)
        assert isinstance(adapter.validate_python({"mode": "allowlist", "keep": ["a"]}), AllowlistPolicy)
        assert isinstance(adapter.validate_python({"mode": "denylist", "remove": ["a"]}), DenylistPolicy)

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(FilterPolicy).validate_python({"mode": "magic"})


@pytest.mark.asyncio
async def test_apply_filter_async(template_dir: Path):
    removed = await apply_filter(template_dir, AllowlistPolicy(keep=["CLAUDE.md"]))
    assert _names(template_dir) == {"CLAUDE.md"}
    assert ".git" in removed
