"""ContainerSupervisor - editor-server container lifecycle for sessions.

Responsibilities:
1. Build the container description for a session
2. Create / start / inspect / stop / destroy / read logs via the driver
3. Run one detached readiness watch per session after start

The readiness watch never blocks create and never fails a session on its own:
an exhausted probe budget is only logged. A container found exited is
reported through the ``on_exit`` callback.
"""

from __future__ import annotations

import asyncio
import shlex
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import structlog

from devspace.drivers.base import ContainerInfo, ContainerSpec
from devspace.errors import DevspaceError, SupervisionWarning
from devspace.services.readiness import ReadinessProbe

if TYPE_CHECKING:
    from devspace.config import EditorConfig, ReadinessConfig
    from devspace.drivers.base import Driver
    from devspace.models.session import Session

logger = structlog.get_logger()

ExitCallback = Callable[[str, ContainerInfo], Awaitable[None]]

# Extra seconds on top of the engine stop timeout before giving up on a stuck stop
STOP_GRACE_SECONDS = 5


class ContainerSupervisor:
    """Supervises editor-server containers."""

    def __init__(
        self,
        driver: "Driver",
        editor: "EditorConfig",
        readiness: "ReadinessConfig",
        *,
        workspace_mode: str = "host",
        probe: ReadinessProbe | None = None,
    ) -> None:
        self._driver = driver
        self._editor = editor
        self._readiness = readiness
        self._workspace_mode = workspace_mode
        self._probe = probe or ReadinessProbe(
            attempts=readiness.attempts,
            interval=readiness.interval_seconds,
            request_timeout=readiness.request_timeout_seconds,
        )
        self._watches: dict[str, asyncio.Task] = {}
        self._log = logger.bind(manager="supervisor")

    # Container description

    def container_name(self, session_id: str) -> str:
        return f"{self._editor.name_prefix}-{session_id}"

    def build_spec(self, session: "Session") -> ContainerSpec:
        """ContainerSpec embedding port binding and workspace."""
        mount_path = self._editor.mount_path

        env = {
            "OPENVSCODE_DISABLE_WELCOME_PAGE": "true",
            **self._editor.env,
            "DEVSPACE_SESSION_ID": session.id,
        }
        labels = {
            "devspace.managed": "true",
            "devspace.session_id": session.id,
            "devspace.source_ref": session.source_ref,
        }

        binds: list[str] = []
        entrypoint = None
        command = None
        auto_remove = self._editor.auto_remove

        if self._workspace_mode == "container":
            # Clone inside the container, then hand over to the editor server
            env["REPO_URL"] = session.source_ref
            entrypoint = ["/bin/sh", "-c"]
            command = [
                f'git clone --depth 1 -- "$REPO_URL" {shlex.quote(mount_path)} '
                f"&& {self._editor.server_command}"
            ]
            auto_remove = False
        elif session.workspace_path is not None:
            binds.append(f"{session.workspace_path.resolve()}:{mount_path}:rw")

        return ContainerSpec(
            name=self.container_name(session.id),
            image=self._editor.image,
            container_port=self._editor.container_port,
            host_port=session.port,
            env=env,
            labels=labels,
            binds=binds,
            working_dir=mount_path,
            entrypoint=entrypoint,
            command=command,
            auto_remove=auto_remove,
        )

    # Lifecycle

    async def create(self, session: "Session") -> str:
        """Create (not start) the session's container. Returns container id."""
        spec = self.build_spec(session)
        self._log.info(
            "supervisor.create",
            session_id=session.id,
            image=spec.image,
            host_port=spec.host_port,
        )
        return await self._driver.create(spec)

    async def start(self, container_id: str) -> None:
        await self._driver.start(container_id)

    async def inspect(self, container_id: str) -> ContainerInfo:
        return await self._driver.status(container_id)

    async def logs(self, container_id: str, tail: int = 200) -> str:
        return await self._driver.logs(container_id, tail=tail)

    async def stop(self, container_id: str) -> None:
        """Stop a container within a bounded time.

        Raises:
            SupervisionWarning: stop failed or timed out. Callers treat
                this as best-effort and continue.
        """
        timeout = self._editor.stop_timeout_seconds
        try:
            await asyncio.wait_for(
                self._driver.stop(container_id, timeout=timeout),
                timeout=timeout + STOP_GRACE_SECONDS,
            )
        except asyncio.TimeoutError as e:
            raise SupervisionWarning(
                "Timed out stopping container",
                details={"container_id": container_id, "timeout": timeout + STOP_GRACE_SECONDS},
            ) from e
        except DevspaceError as e:
            raise SupervisionWarning(
                f"Failed to stop container: {e.message}",
                details={"container_id": container_id},
            ) from e
        self._log.info("supervisor.stopped", container_id=container_id)

    async def destroy(self, container_id: str) -> None:
        """Force-remove a container (rollback of a failed start, or teardown).

        Bounded like ``stop`` so a hung engine call cannot stall teardown.
        """
        timeout = self._editor.stop_timeout_seconds + STOP_GRACE_SECONDS
        try:
            await asyncio.wait_for(self._driver.destroy(container_id), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise SupervisionWarning(
                "Timed out removing container",
                details={"container_id": container_id, "timeout": timeout},
            ) from e
        except DevspaceError as e:
            raise SupervisionWarning(
                f"Failed to remove container: {e.message}",
                details={"container_id": container_id},
            ) from e

    # Readiness watch

    def watch(self, session: "Session", on_exit: ExitCallback | None = None) -> asyncio.Task:
        """Spawn the detached readiness watch for a started session."""
        if session.container_id is None:
            raise ValueError(f"Session {session.id} has no container to watch")

        self.unwatch(session.id)

        task = asyncio.create_task(
            self._watch(session.id, session.container_id, session.port, on_exit),
            name=f"readiness-{session.id}",
        )
        self._watches[session.id] = task
        task.add_done_callback(lambda t, sid=session.id: self._forget(sid, t))
        return task

    def unwatch(self, session_id: str) -> bool:
        """Cancel a session's readiness watch. Returns True if one was running."""
        task = self._watches.pop(session_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        self._log.debug("supervisor.unwatch", session_id=session_id)
        return True

    def is_watching(self, session_id: str) -> bool:
        task = self._watches.get(session_id)
        return task is not None and not task.done()

    async def close(self) -> None:
        """Cancel all readiness watches and wait for them to finish."""
        tasks = list(self._watches.values())
        self._watches.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, session_id: str, task: asyncio.Task) -> None:
        if self._watches.get(session_id) is task:
            del self._watches[session_id]

    async def _watch(
        self,
        session_id: str,
        container_id: str,
        port: int,
        on_exit: ExitCallback | None,
    ) -> None:
        log = self._log.bind(session_id=session_id, container_id=container_id)
        try:
            info = await self.inspect(container_id)
            if not info.is_running:
                await self._report_exit(session_id, info, on_exit)
                return

            url = f"http://{self._readiness.probe_host}:{port}/"
            result = await self._probe.wait_ready(url, session_id=session_id)
            if result.ready:
                return

            # Probe gave up; the container may have died meanwhile
            info = await self.inspect(container_id)
            if not info.is_running:
                await self._report_exit(session_id, info, on_exit)
            else:
                log.warning(
                    "supervisor.not_ready",
                    attempts=result.attempts,
                    last_status=result.last_status,
                )
        except asyncio.CancelledError:
            log.debug("supervisor.watch_cancelled")
            raise
        except Exception:
            log.exception("supervisor.watch_failed")

    async def _report_exit(
        self,
        session_id: str,
        info: ContainerInfo,
        on_exit: ExitCallback | None,
    ) -> None:
        output = ""
        try:
            output = await self._driver.logs(info.container_id, tail=self._readiness.log_tail)
        except DevspaceError as e:
            output = f"<logs unavailable: {e.message}>"

        self._log.error(
            "supervisor.container_exited",
            session_id=session_id,
            container_id=info.container_id,
            exit_detail=info.exit_detail,
            logs=output,
        )
        if on_exit is not None:
            await on_exit(session_id, info)
