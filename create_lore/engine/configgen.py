"""Instance configuration and sticky-file generation.

Runs after the tree has been materialized, against the instance directory.
The primary config (``.lore-config``) is produced by one of two strategies,
chosen once by probing the copied tree:

* ``TemplateSubstitution`` - the template ships a config template with
  ``{{name}}``-style placeholders; they are filled and the text is written
  verbatim, comments and all.
* ``SynthesizedRecord`` - no config template; a minimal JSON record is
  serialized directly.

Sticky files (gitignored, instance-local files such as the local knowledge
index or the ``.env`` for downstream tooling) are regenerated from their
template counterparts the same way.  Every write is a pure function of the
inputs, so regenerating yields byte-identical files.
"""

from __future__ import annotations

import asyncio
import json
import re
from datetime import date
from pathlib import Path

from create_lore.utils import loads_jsonc, write_text

from .errors import TemplateMalformed
from .models import (
    InstanceConfig,
    StickyFile,
    SynthesizedRecord,
    TemplateSubstitution,
)

DEFAULT_VERSION = "0.0.0"

_SEMVER = re.compile(r"\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]+)?")

REQUIRED_KEYS = ("name", "version", "created")


# ---------------------------------------------------------------------------
# Placeholder substitution
# ---------------------------------------------------------------------------


def substitute(text: str, values: dict[str, str]) -> str:
    """Replace each literal ``{{key}}`` in *text* with ``values[key]``.

    No whitespace tolerance, nesting, or conditionals; unknown placeholders
    are left untouched.
    """
    for key, value in values.items():
        text = text.replace("{{" + key + "}}", value)
    return text


# ---------------------------------------------------------------------------
# Probing
# ---------------------------------------------------------------------------


def read_template_version(root: Path, sources: list[str]) -> str:
    """Return the version declared by the first readable config in *sources*.

    Missing files, unparsable JSONC, and non-semver values fall through to
    the next source and finally to ``0.0.0``.
    """
    for rel in sources:
        path = root / rel
        if not path.is_file():
            continue
        try:
            data = loads_jsonc(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValueError):
            continue
        version = data.get("version")
        if isinstance(version, str) and _SEMVER.fullmatch(version.strip()):
            return version.strip()
    return DEFAULT_VERSION


def select_strategy(
    root: Path, template_path: str
) -> SynthesizedRecord | TemplateSubstitution:
    """Pick the config strategy by probing for *template_path* under *root*."""
    candidate = root / template_path
    if candidate.is_file():
        return TemplateSubstitution(template_path=candidate)
    return SynthesizedRecord()


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class ConfigGenerator:
    """Writes the primary config and every declared sticky file.

    Args:
        config_path: Instance-relative path of the primary config.
        template_path: Instance-relative path of the config template.
        version_sources: Config locations probed for the template version.
        sticky_files: Sticky-file declarations.
        default_tools: Tool list used for ``{{tools}}`` when no selection
            was made.
    """

    def __init__(
        self,
        config_path: str = ".lore-config",
        template_path: str = ".lore/templates/lore-config.jsonc",
        version_sources: list[str] | None = None,
        sticky_files: list[StickyFile] | None = None,
        default_tools: list[str] | None = None,
    ) -> None:
        self.config_path = config_path
        self.template_path = template_path
        self.version_sources = version_sources or [config_path]
        self.sticky_files = list(sticky_files or [])
        self.default_tools = list(default_tools or [])

    def build_config(
        self, root: Path, project_name: str, created: date, tools: list[str] | None = None
    ) -> InstanceConfig:
        """Compute the ``InstanceConfig`` for the instance at *root*."""
        return InstanceConfig(
            name=project_name,
            version=read_template_version(root, self.version_sources),
            created=created,
            tools=tools,
        )

    def render_config(
        self,
        config: InstanceConfig,
        strategy: SynthesizedRecord | TemplateSubstitution,
        target: Path | None = None,
    ) -> str:
        """Return the primary config text for *strategy*.

        Raises:
            TemplateMalformed: The template is unreadable, or the substituted
                text does not parse or lacks a required key.
        """
        if isinstance(strategy, SynthesizedRecord):
            return json.dumps(config.to_record(), indent=2) + "\n"

        try:
            raw = strategy.template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise TemplateMalformed(
                f"Config template {self.template_path} could not be read: {exc}",
                target=target,
                path=self.template_path,
            ) from exc

        rendered = substitute(raw, config.placeholders(self.default_tools))
        try:
            parsed = loads_jsonc(rendered)
        except ValueError as exc:
            raise TemplateMalformed(
                f"Config template {self.template_path} does not produce valid JSON: {exc}",
                target=target,
                path=self.template_path,
            ) from exc
        missing = [key for key in REQUIRED_KEYS if key not in parsed]
        if missing:
            raise TemplateMalformed(
                f"Config template {self.template_path} is missing keys: {', '.join(missing)}",
                target=target,
                path=self.template_path,
            )
        return rendered

    def write_sticky_files(self, root: Path, config: InstanceConfig) -> list[str]:
        """Regenerate every declared sticky file under *root*.

        Returns:
            Destinations written, in declaration order.

        Raises:
            TemplateMalformed: A required sticky source is missing, or a
                destination cannot be written.
        """
        values = config.placeholders(self.default_tools)
        written: list[str] = []
        for sticky in self.sticky_files:
            source = root / sticky.source
            if not source.is_file():
                if sticky.required:
                    raise TemplateMalformed(
                        f"Required template file {sticky.source} is missing",
                        target=root,
                        path=sticky.source,
                    )
                continue
            try:
                content = source.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise TemplateMalformed(
                    f"Template file {sticky.source} could not be read: {exc}",
                    target=root,
                    path=sticky.source,
                ) from exc
            if sticky.substitute:
                content = substitute(content, values)
            try:
                write_text(root / sticky.destination, content)
            except OSError as exc:
                raise TemplateMalformed(
                    f"Could not write {sticky.destination}: {exc}",
                    target=root,
                    path=sticky.destination,
                ) from exc
            written.append(sticky.destination)
        return written

    def _generate(
        self, root: Path, project_name: str, created: date, tools: list[str] | None
    ) -> tuple[InstanceConfig, SynthesizedRecord | TemplateSubstitution, list[str]]:
        config = self.build_config(root, project_name, created, tools)
        strategy = select_strategy(root, self.template_path)
        text = self.render_config(config, strategy, target=root)
        try:
            write_text(root / self.config_path, text)
        except OSError as exc:
            raise TemplateMalformed(
                f"Could not write {self.config_path}: {exc}",
                target=root,
                path=self.config_path,
            ) from exc
        sticky = self.write_sticky_files(root, config)
        return config, strategy, sticky

    async def generate(
        self,
        root: str | Path,
        project_name: str,
        created: date,
        tools: list[str] | None = None,
    ) -> tuple[InstanceConfig, SynthesizedRecord | TemplateSubstitution, list[str]]:
        """Write the primary config and sticky files into the instance at *root*.

        Returns:
            ``(config, strategy, sticky_destinations_written)``.
        """
        return await asyncio.to_thread(
            self._generate, Path(root), project_name, created, tools
        )
