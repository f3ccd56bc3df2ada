"""Shared pytest fixtures for the create-lore test suite.

Provides reusable fixtures for:
- A fake Lore template tree (with template history and dev-only clutter)
- An isolated invocation directory
- A redirected scratch location so cleanup can be asserted
- Mock subprocess helpers
- Real git helpers for integration tests
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import textwrap
from datetime import date
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from create_lore.config import ScaffoldSettings

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")

FIXED_DAY = date(2026, 1, 15)


# ---------------------------------------------------------------------------
# Template tree
# ---------------------------------------------------------------------------

CONFIG_TEMPLATE = textwrap.dedent("""\
    // Lore instance configuration. Generated by create-lore.
    {
      "name": "{{name}}",
      "version": "{{version}}", // template release this instance came from
      "created": "{{created}}",
      "tools": {{tools}},
    }
    """)


def build_template(
    root: Path,
    *,
    version: str | None = "1.2.3",
    config_template: bool = True,
    fake_history: bool = True,
) -> Path:
    """Write a small Lore-like template tree under *root* and return it."""
    files: dict[str, str] = {
        "CLAUDE.md": "# Lore\n\nRead .lore/instructions.md first.\n",
        "AGENTS.md": "# Agents\n",
        ".gitignore": ".env\ndocs/knowledge/local/\n",
        ".lore/instructions.md": "Knowledge lives in docs/.\n",
        ".lore/templates/knowledge-index.md": "# {{name}} local knowledge\n\nCreated {{created}}.\n",
        ".lore/templates/operator-profile.md": "# Operator\n\nTools: {{tools_csv}}\n",
        ".lore/templates/env": "LORE_PROJECT={{name}}\nLORE_VERSION={{version}}\n",
        ".claude/settings.json": '{"hooks": {"SessionStart": []}}\n',
        "docs/index.md": "# Docs\n",
        "docs/assets/logo.svg": "<svg/>\n",
        "scripts/validate-consistency.sh": "#!/bin/sh\necho PASSED\n",
        "test/create-lore.test.js": "// template tests\n",
        ".github/workflows/ci.yml": "on: push\n",
        "node_modules/left-pad/index.js": "module.exports = 1;\n",
        "README.md": "# Lore template\n",
        "LICENSE": "Apache-2.0\n",
        "CONTRIBUTING.md": "PRs welcome\n",
        "package-lock.json": "{}\n",
        "eslint.config.js": "module.exports = [];\n",
        "stray-notes.txt": "scratch notes\n",
    }
    if fake_history:
        files[".git/HEAD"] = "ref: refs/heads/main\n"
        files[".git/config"] = "[core]\n\tbare = false\n"
    if version is not None:
        files[".lore-config"] = (
            "// template config\n"
            f'{{\n  "name": "lore",\n  "version": "{version}",\n  "created": "2025-01-01",\n}}\n'
        )
    if config_template:
        files[".lore/templates/lore-config.jsonc"] = CONFIG_TEMPLATE

    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A local Lore template directory with a fake ``.git`` and dev clutter."""
    return build_template(tmp_path / "lore-template")


# ---------------------------------------------------------------------------
# Invocation directory & scratch location
# ---------------------------------------------------------------------------

@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty invocation directory, made the process cwd."""
    cwd = tmp_path / "work"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    return cwd


@pytest.fixture
def scratch_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect ``tempfile`` so scratch directories land in a known place."""
    root = tmp_path / "scratch"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def settings() -> ScaffoldSettings:
    """Default settings (allowlist policy, pinned to the tool version)."""
    return ScaffoldSettings()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every ``LORE_*`` variable from the environment."""
    for key in list(os.environ):
        if key.startswith("LORE_"):
            monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Real git helpers
# ---------------------------------------------------------------------------

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Lore Test",
    "GIT_AUTHOR_EMAIL": "test@lore.local",
    "GIT_COMMITTER_NAME": "Lore Test",
    "GIT_COMMITTER_EMAIL": "test@lore.local",
}


def git(*args: str, cwd: Path) -> str:
    """Run git synchronously in *cwd* and return stripped stdout."""
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        env={**os.environ, **GIT_ENV},
    )
    return result.stdout.strip()


@pytest.fixture
def template_repo(tmp_path: Path) -> Path:
    """A real git repository holding the template, tagged ``v1.2.3``."""
    repo = tmp_path / "lore-repo"
    repo.mkdir()
    git("init", cwd=repo)
    build_template(repo, fake_history=False)
    git("add", "-A", cwd=repo)
    git("commit", "-m", "Template release", cwd=repo)
    git("tag", "v1.2.3", cwd=repo)
    return repo
