"""create-lore scaffold orchestrator.

Runs the single-pass scaffold:

1. VALIDATE    -- check the name/path argument and claim the target.
2. ACQUIRE     -- clone the template (or copy the local override) to scratch.
3. STRIP       -- drop the template's own git history.
4. FILTER      -- remove development-only assets.
5. MATERIALIZE -- copy the filtered tree into the target.
6. CONFIGURE   -- write ``.lore-config`` and the sticky files.
7. INIT        -- start a fresh git history (best effort).

Steps 2-7 run inside ``scratch_tree()``, so the scratch directory is removed
on every exit path.

Usage::

    create-lore myproject
    create-lore ./clients/acme --interactive
    LORE_TEMPLATE=../lore create-lore demo
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Callable
from datetime import date
from pathlib import Path

from create_lore import __version__
from create_lore.config import ScaffoldSettings, template_override_from_env
from create_lore.engine import (
    AcquisitionError,
    AcquisitionFailure,
    ArchiveTransport,
    ConfigGenerator,
    GitTransport,
    HistoryInitFailure,
    MaterializeFailure,
    ScaffoldError,
    TargetValidationError,
    TemplateMalformed,
    TreeAcquirer,
    apply_filter,
    init_history,
    materialize,
    scratch_tree,
    strip_history,
    validate_target,
)
from create_lore.engine.acquirer import Transport
from create_lore.engine.models import ScaffoldRequest, ScaffoldResult
from create_lore.prompts import can_prompt, parse_tools, prompt_for_tools
from create_lore.utils import (
    console,
    err_console,
    print_error,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
)


def build_remote_transport(settings: ScaffoldSettings) -> Transport:
    """Return the remote transport selected by *settings*."""
    if settings.transport == "archive":
        return ArchiveTransport(
            settings.resolved_archive_url,
            reference=settings.reference,
            timeout=settings.acquire_timeout,
        )
    return GitTransport(
        settings.repo_url,
        reference=settings.reference,
        timeout=settings.acquire_timeout,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Scaffolder:
    """Sequences the scaffold steps for one request.

    Attributes:
        settings: Static configuration (template address, filter policy,
            config locations, sticky-file table).
        acquirer: Template acquirer; the remote transport can be injected.
        config_generator: Writes ``.lore-config`` and the sticky files.
        clock: Returns the creation date (injectable for tests).
    """

    def __init__(
        self,
        settings: ScaffoldSettings | None = None,
        *,
        remote: Transport | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.settings = settings or ScaffoldSettings()
        self.acquirer = TreeAcquirer(remote or build_remote_transport(self.settings))
        self.config_generator = ConfigGenerator(
            config_path=self.settings.config_path,
            template_path=self.settings.config_template_path,
            version_sources=self.settings.version_sources,
            sticky_files=self.settings.sticky_files,
            default_tools=self.settings.default_tools,
        )
        self.clock = clock or date.today

    async def run(
        self, request: ScaffoldRequest, cwd: str | Path | None = None
    ) -> ScaffoldResult:
        """Scaffold the instance described by *request*.

        Returns:
            A ``ScaffoldResult``.  A failed ``git init`` is recorded in
            ``warnings`` rather than raised.

        Raises:
            ScaffoldError: Any other step failed.  ``target`` is set on the
                exception so callers can tell whether anything is on disk.
        """
        target = validate_target(request.raw_name, cwd)
        dest = target.absolute_path

        try:
            async with scratch_tree(self.settings.scratch_prefix) as scratch:
                source = request.explicit_template_source
                print_step(
                    f"Copying template from {source}"
                    if source is not None
                    else f"Fetching template {self.settings.reference or 'default branch'}"
                )
                await self.acquirer.acquire(scratch, source)

                try:
                    await strip_history(scratch.tree_path, self.settings.history_dir)
                    removed = await apply_filter(scratch.tree_path, self.settings.filter_policy)
                except OSError as exc:
                    raise MaterializeFailure(
                        f"Could not prepare the template tree: {exc}", target=dest
                    ) from exc
                if removed:
                    print_step(f"Removed {len(removed)} development-only path(s)")

                print_step(f"Creating {dest}")
                await materialize(scratch.tree_path, dest)

                config, strategy, sticky = await self.config_generator.generate(
                    dest, target.project_name, self.clock(), request.tools
                )
                print_step(f"Wrote {self.settings.config_path} (version {config.version})")

                warnings: list[str] = []
                history_initialized = False
                try:
                    await init_history(dest, self.settings.default_branch)
                    history_initialized = True
                except HistoryInitFailure as exc:
                    warnings.append(f"git init failed: {exc}")
        except ScaffoldError as exc:
            if exc.target is None:
                exc.target = dest
            raise

        return ScaffoldResult(
            target=target,
            config=config,
            strategy=strategy,
            removed_paths=removed,
            sticky_files_written=sticky,
            history_initialized=history_initialized,
            warnings=warnings,
        )


async def _run_cancellable(
    scaffolder: Scaffolder, request: ScaffoldRequest, cwd: Path | None = None
) -> ScaffoldResult:
    """Run *scaffolder*, turning SIGTERM into task cancellation.

    Cancellation unwinds through ``scratch_tree()``, so the scratch directory
    is still removed.
    """
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    installed = False
    if task is not None:
        try:
            loop.add_signal_handler(signal.SIGTERM, task.cancel)
            installed = True
        except (NotImplementedError, RuntimeError):
            # No loop signal handlers on Windows or outside the main thread.
            installed = False
    try:
        return await scaffolder.run(request, cwd)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGTERM)


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def _leftover_note(target: Path | None) -> str:
    if target is not None and target.exists():
        return (
            f"{target} exists but setup did not finish. "
            "Remove it before trying again."
        )
    return "Nothing was created."


def report_failure(exc: ScaffoldError) -> None:
    """Print a specific, actionable message for *exc* to stderr."""
    if isinstance(exc, TargetValidationError):
        print_error(f"Error: {exc}")
        err_console.print("Nothing was created.")
        return

    if isinstance(exc, AcquisitionError):
        if exc.kind is AcquisitionFailure.REFERENCE_NOT_FOUND and exc.reference:
            print_error(f"Error: {exc}")
            err_console.print("This usually means the release tag is missing. Try:")
            err_console.print("  pip install --upgrade create-lore")
        elif exc.kind is AcquisitionFailure.HOST_UNREACHABLE:
            print_error(f"Error: {exc}")
            err_console.print(
                "Check your internet connection, DNS, and firewall/proxy settings."
            )
        else:
            print_error(f"Error: {exc}")
            if exc.stderr:
                err_console.print(exc.stderr, markup=False, highlight=False)
    elif isinstance(exc, TemplateMalformed):
        print_error(f"Error: {exc}")
        err_console.print(
            f"Project files were created at {exc.target}, but its configuration "
            "was not generated.",
            markup=False,
        )
        return
    else:
        print_error(f"Error: {exc}")

    err_console.print(_leftover_note(exc.target), markup=False)


def report_success(request: ScaffoldRequest, result: ScaffoldResult) -> None:
    """Print the summary and next steps to stdout."""
    for warning in result.warnings:
        print_warning(f"Warning: {warning}")

    print_success(f"\nCreated {request.raw_name}")
    summary = {
        "Path": str(result.target.absolute_path),
        "Name": result.config.name,
        "Version": result.config.version,
        "Created": result.config.created.isoformat(),
        "Config": result.strategy.kind,
        "Git": "initialized" if result.history_initialized else "not initialized",
    }
    if result.config.tools is not None:
        summary["Tools"] = ", ".join(result.config.tools) or "(none)"
    print_summary_table(summary, title="create-lore")

    console.print("\nNext steps:")
    console.print(f"  cd {request.raw_name}", markup=False)
    if not result.history_initialized:
        console.print("  git init -b main")
    console.print('  git add -A && git commit -m "Init Lore"')


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-lore",
        description="Bootstrap a new Lore knowledge-persistent agent repo.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  create-lore myproject       # creates ./myproject/\n"
            "  create-lore ./custom-path   # creates at specific path\n"
        ),
    )
    parser.add_argument("name", nargs="?", help="Project name or path under the current directory")
    parser.add_argument(
        "-v", "--version", action="version", version=__version__,
    )
    parser.add_argument(
        "--template",
        default=None,
        help="Local template directory to copy instead of cloning (env: LORE_TEMPLATE)",
    )
    parser.add_argument(
        "--transport",
        choices=["git", "archive"],
        default=None,
        help="How to fetch the remote template (default: git)",
    )
    parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Ask which agent tools to configure",
    )
    parser.add_argument(
        "--tools",
        default=None,
        help="Comma-separated agent tools to configure (skips the prompt)",
    )
    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the scaffold, and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.name:
        err_console.print("Usage: create-lore <name>", markup=False)
        return 1

    try:
        settings = ScaffoldSettings.from_env()
        if args.transport:
            settings = settings.model_copy(update={"transport": args.transport})
        tools = parse_tools(args.tools, settings.supported_tools) if args.tools else None
        scaffolder = Scaffolder(settings)
    except ValueError as exc:
        print_error(f"Error: {exc}")
        return 1

    if args.interactive and tools is None:
        if can_prompt():
            tools = prompt_for_tools(settings.supported_tools, settings.default_tools)
        else:
            print_warning("Not a terminal -- skipping tool selection, using defaults.")

    template = Path(args.template) if args.template else template_override_from_env()
    request = ScaffoldRequest(
        raw_name=args.name,
        explicit_template_source=template,
        interactive=args.interactive,
        tools=tools,
    )

    try:
        result = asyncio.run(_run_cancellable(scaffolder, request))
    except ScaffoldError as exc:
        report_failure(exc)
        return 1
    except (KeyboardInterrupt, asyncio.CancelledError):
        print_error("Interrupted.")
        return 1

    report_success(request, result)
    return 0


def main() -> None:
    """CLI entry point for ``create-lore`` and ``python -m create_lore``."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
