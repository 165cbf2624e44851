"""Workspace provisioning - materialize a repository into a session directory.

Workspaces live under ``<root>/<session_id>`` so concurrent provision/discard
calls for different sessions never touch the same path.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

from devspace.errors import ProvisioningError

logger = structlog.get_logger()

# Bytes of git stderr kept in error details
_STDERR_TAIL = 2000


class WorkspaceProvisioner(ABC):
    """Abstract workspace provisioner."""

    def __init__(self, root_path: str | Path) -> None:
        self._root = Path(root_path)

    def path_for(self, session_id: str) -> Path:
        """Session-scoped workspace directory (not created)."""
        return self._root / session_id

    @abstractmethod
    async def provision(self, source_ref: str, destination: Path) -> None:
        """Fetch ``source_ref`` into ``destination``.

        Raises:
            ProvisioningError: If the fetch fails
        """
        ...

    async def discard(self, destination: Path) -> None:
        """Remove a workspace directory. Missing directories are fine."""
        destination = Path(destination)
        if not destination.exists():
            return
        await asyncio.to_thread(shutil.rmtree, destination)
        logger.info("workspace.discarded", path=str(destination))


class GitWorkspaceProvisioner(WorkspaceProvisioner):
    """Clones repositories with the git CLI."""

    def __init__(
        self,
        root_path: str | Path,
        *,
        git_binary: str = "git",
        clone_depth: int | None = 1,
        timeout: float = 300.0,
    ) -> None:
        super().__init__(root_path)
        self._git = git_binary
        self._depth = clone_depth
        self._timeout = timeout
        self._log = logger.bind(component="workspace", provisioner="git")

    def build_clone_args(self, source_ref: str, destination: Path) -> list[str]:
        args = [self._git, "clone"]
        if self._depth:
            args += ["--depth", str(self._depth)]
        # "--" keeps a ref starting with "-" from being read as an option
        args += ["--", source_ref, str(destination)]
        return args

    async def provision(self, source_ref: str, destination: Path) -> None:
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        args = self.build_clone_args(source_ref, destination)

        self._log.info("workspace.clone", source_ref=source_ref, path=str(destination))

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
        except FileNotFoundError as e:
            raise ProvisioningError(
                f"git binary not found: {self._git}",
                details={"source_ref": source_ref},
            ) from e

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            self._log.error("workspace.clone_timeout", source_ref=source_ref, timeout=self._timeout)
            raise ProvisioningError(
                f"Clone timed out after {self._timeout}s",
                details={"source_ref": source_ref},
            ) from e

        if process.returncode != 0:
            error_text = stderr.decode(errors="replace")[-_STDERR_TAIL:].strip()
            self._log.error(
                "workspace.clone_failed",
                source_ref=source_ref,
                returncode=process.returncode,
                stderr=error_text,
            )
            raise ProvisioningError(
                f"Failed to clone repository: {source_ref}",
                details={
                    "source_ref": source_ref,
                    "returncode": process.returncode,
                    "stderr": error_text,
                },
            )

        self._log.info("workspace.cloned", source_ref=source_ref, path=str(destination))


class DeferredWorkspaceProvisioner(WorkspaceProvisioner):
    """No host-side fetch: the container clones the source on startup.

    Failures only show up in the container logs.
    """

    async def provision(self, source_ref: str, destination: Path) -> None:
        logger.debug("workspace.deferred", source_ref=source_ref)