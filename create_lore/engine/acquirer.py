"""Materialize the template into an isolated scratch location.

The acquirer abstracts over three transports:

* ``LocalTransport``   - recursive copy of a local override directory
* ``GitTransport``     - shallow, single-revision ``git clone``
* ``ArchiveTransport`` - release tarball download over HTTPS

Each transport writes a byte-for-byte tree into a destination that does not
exist yet, or raises ``AcquisitionError`` with a classified ``kind``.  The
scratch directory itself is owned by :func:`scratch_tree`, which deletes it
on every exit path.
"""

from __future__ import annotations

import asyncio
import io
import shutil
import tarfile
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath
from typing import Protocol

import httpx

from create_lore.utils import remove_path, run_command

from .errors import AcquisitionError, AcquisitionFailure
from .models import ScratchTree

# Substrings of ``git clone`` stderr, checked in order.
_REFERENCE_MARKERS = ("not found", "not a valid", "Remote branch")
_HOST_MARKERS = (
    "Could not resolve host",
    "unable to access",
    "Failed to connect",
    "Connection refused",
    "Connection timed out",
)


# ---------------------------------------------------------------------------
# Scratch lifetime
# ---------------------------------------------------------------------------


@asynccontextmanager
async def scratch_tree(prefix: str = "create-lore-") -> AsyncIterator[ScratchTree]:
    """Create a process-unique scratch directory and always delete it.

    The directory is registered for deletion as soon as it exists; removal
    runs on success, on any raised error, and on task cancellation.
    """
    path = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix=prefix))
    scratch = ScratchTree(scratch_path=path)
    try:
        yield scratch
    finally:
        await asyncio.to_thread(shutil.rmtree, path, True)


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------


class Transport(Protocol):
    """Produces a template tree at *destination* (which must not exist)."""

    async def fetch(self, destination: Path) -> None: ...


class LocalTransport:
    """Copy a local template directory (the ``LORE_TEMPLATE`` override)."""

    def __init__(self, source: str | Path) -> None:
        self.source = Path(source).expanduser()

    async def fetch(self, destination: Path) -> None:
        if not self.source.is_dir():
            raise AcquisitionError(
                f"Template directory not found: {self.source}",
                AcquisitionFailure.TRANSPORT_FAILURE,
                source=str(self.source),
            )
        try:
            await asyncio.to_thread(
                shutil.copytree, self.source, destination, symlinks=True
            )
        except (OSError, shutil.Error) as exc:
            await asyncio.to_thread(remove_path, destination)
            raise AcquisitionError(
                f"Failed to copy template from {self.source}: {exc}",
                AcquisitionFailure.TRANSPORT_FAILURE,
                source=str(self.source),
            ) from exc


class GitTransport:
    """Shallow-clone the template repository at a single reference."""

    def __init__(
        self, repo_url: str, reference: str | None = None, timeout: float | None = None
    ) -> None:
        self.repo_url = repo_url
        self.reference = reference
        self.timeout = timeout

    def command(self, destination: Path) -> list[str]:
        cmd = ["git", "clone", "--depth", "1"]
        if self.reference:
            cmd += ["--branch", self.reference]
        cmd += [self.repo_url, str(destination)]
        return cmd

    async def fetch(self, destination: Path) -> None:
        try:
            returncode, _, stderr = await run_command(
                self.command(destination), timeout=self.timeout
            )
        except FileNotFoundError as exc:
            raise AcquisitionError(
                "git is not installed or not on PATH",
                AcquisitionFailure.TRANSPORT_FAILURE,
                source=self.repo_url,
                reference=self.reference,
            ) from exc

        if returncode == 0:
            return

        await asyncio.to_thread(remove_path, destination)
        kind = classify_git_error(stderr)
        if kind is AcquisitionFailure.REFERENCE_NOT_FOUND and self.reference:
            message = f"Version tag {self.reference} not found in {self.repo_url}"
        elif kind is AcquisitionFailure.REFERENCE_NOT_FOUND:
            message = f"Template repository not found: {self.repo_url}"
        elif kind is AcquisitionFailure.HOST_UNREACHABLE:
            message = f"Cannot reach the template host for {self.repo_url}"
        else:
            message = f"Failed to clone template from {self.repo_url}"
        raise AcquisitionError(
            message, kind, source=self.repo_url, reference=self.reference, stderr=stderr
        )


def classify_git_error(stderr: str) -> AcquisitionFailure:
    """Map ``git clone`` stderr to an ``AcquisitionFailure`` kind."""
    if any(marker in stderr for marker in _HOST_MARKERS):
        return AcquisitionFailure.HOST_UNREACHABLE
    if any(marker in stderr for marker in _REFERENCE_MARKERS):
        return AcquisitionFailure.REFERENCE_NOT_FOUND
    return AcquisitionFailure.TRANSPORT_FAILURE


class ArchiveTransport:
    """Download and unpack a release tarball (used when git is unavailable).

    GitHub-style archives hold a single top-level directory
    (``lore-0.1.0/``); it is stripped so the tree root matches a clone.
    """

    def __init__(
        self,
        url: str,
        reference: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.reference = reference
        self.timeout = timeout
        self._client = client

    async def _download(self) -> bytes:
        client = self._client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), follow_redirects=True
        )
        try:
            response = await client.get(self.url)
            response.raise_for_status()
            return response.content
        finally:
            if self._client is None:
                await client.aclose()

    async def fetch(self, destination: Path) -> None:
        try:
            payload = await self._download()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            kind = (
                AcquisitionFailure.REFERENCE_NOT_FOUND
                if status == 404
                else AcquisitionFailure.TRANSPORT_FAILURE
            )
            raise AcquisitionError(
                f"Template archive request failed with HTTP {status}: {self.url}",
                kind,
                source=self.url,
                reference=self.reference,
            ) from exc
        except httpx.ConnectError as exc:
            raise AcquisitionError(
                f"Cannot reach the template host for {self.url}",
                AcquisitionFailure.HOST_UNREACHABLE,
                source=self.url,
                reference=self.reference,
            ) from exc
        except httpx.HTTPError as exc:
            raise AcquisitionError(
                f"Failed to download template archive {self.url}: {exc}",
                AcquisitionFailure.TRANSPORT_FAILURE,
                source=self.url,
                reference=self.reference,
            ) from exc

        try:
            await asyncio.to_thread(extract_archive, payload, destination)
        except (OSError, tarfile.TarError, ValueError) as exc:
            await asyncio.to_thread(remove_path, destination)
            raise AcquisitionError(
                f"Template archive from {self.url} could not be unpacked: {exc}",
                AcquisitionFailure.TRANSPORT_FAILURE,
                source=self.url,
                reference=self.reference,
            ) from exc


def extract_archive(payload: bytes, destination: Path) -> None:
    """Unpack a gzipped tarball into *destination*, dropping its top-level dir.

    Uses tarfile's ``data`` filter, which rejects absolute paths, ``..``
    members, device files and links pointing outside the destination.
    """
    with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as archive:
        members = archive.getmembers()
        roots = {PurePosixPath(m.name).parts[0] for m in members if m.name.strip("/")}
        if len(roots) != 1:
            raise ValueError("expected a single top-level directory in the archive")
        root = roots.pop()

        stripped: list[tarfile.TarInfo] = []
        for member in members:
            parts = PurePosixPath(member.name).parts
            if len(parts) <= 1:
                continue
            member.name = str(PurePosixPath(*parts[1:]))
            if member.islnk():
                link_parts = PurePosixPath(member.linkname).parts
                if link_parts and link_parts[0] == root:
                    member.linkname = str(PurePosixPath(*link_parts[1:]))
            stripped.append(member)

        destination.mkdir(parents=True)
        archive.extractall(destination, members=stripped, filter="data")


# ---------------------------------------------------------------------------
# Acquirer
# ---------------------------------------------------------------------------


class TreeAcquirer:
    """Chooses a transport and fills a ``ScratchTree``.

    Args:
        remote: Transport used when no local override is supplied.
    """

    def __init__(self, remote: Transport) -> None:
        self.remote = remote

    def transport_for(self, override: str | Path | None) -> Transport:
        if override is not None:
            return LocalTransport(override)
        return self.remote

    async def acquire(
        self, scratch: ScratchTree, override: str | Path | None = None
    ) -> ScratchTree:
        """Materialize the template at ``scratch.tree_path``.

        Raises:
            AcquisitionError: The transport failed; ``scratch.acquired`` stays
                ``False`` and no partial tree is left at ``tree_path``.
        """
        transport = self.transport_for(override)
        await transport.fetch(scratch.tree_path)
        scratch.acquired = True
        return scratch
