"""Orchestrator - session create/list/delete and failure policy.

Composes the port allocator, workspace provisioner, container supervisor and
session registry. Owns every session state transition.

Failure policy:
- Errors before a session is fully started are rolled back with compensating
  actions (container, workspace, port, registry entry) and reported.
- Teardown never fails from the caller's point of view: each step is
  best-effort, failures are collected and logged.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

import structlog

from devspace.concurrency.locks import cleanup_session_lock, get_session_lock
from devspace.config import Settings, get_settings
from devspace.errors import NotFoundError, ProvisioningError, ResourceExhaustionError, ValidationError
from devspace.models.session import Session, SessionStatus
from devspace.utils.cleanup import CleanupPlan, CleanupReport

if TYPE_CHECKING:
    from devspace.drivers.base import ContainerInfo
    from devspace.managers.supervisor import ContainerSupervisor
    from devspace.registry.base import SessionRegistry
    from devspace.services.ports import PortAllocator
    from devspace.services.workspace import WorkspaceProvisioner

logger = structlog.get_logger()


def new_session_id() -> str:
    return f"sess-{uuid.uuid4().hex[:12]}"


class Orchestrator:
    """Drives sessions through their lifecycle."""

    def __init__(
        self,
        registry: "SessionRegistry",
        allocator: "PortAllocator",
        provisioner: "WorkspaceProvisioner",
        supervisor: "ContainerSupervisor",
        settings: Settings | None = None,
    ) -> None:
        self._registry = registry
        self._allocator = allocator
        self._provisioner = provisioner
        self._supervisor = supervisor
        self._settings = settings or get_settings()
        # Guards admission check + port reservation + first registry put
        self._admission_lock = asyncio.Lock()
        self._log = logger.bind(manager="orchestrator")

    @property
    def host_workspaces(self) -> bool:
        return self._settings.workspace.mode == "host"

    def access_url(self, session: Session) -> str:
        return session.access_url(self._settings.editor.public_host)

    # Create

    async def create(self, source_ref: str | None) -> Session:
        """Create and start a session for ``source_ref``.

        Returns as soon as the container has started; readiness is probed
        in the background.

        Raises:
            ValidationError: Empty source reference (nothing allocated)
            ResourceExhaustionError: No port / admission slot (nothing retained)
            ProvisioningError: Clone or container start failed (rolled back)
        """
        source_ref = (source_ref or "").strip()
        if not source_ref:
            raise ValidationError(
                "Repository URL is required",
                details={"field": "source_ref"},
            )

        session_id = new_session_id()
        log = self._log.bind(session_id=session_id)

        session_lock = await get_session_lock(session_id)
        try:
            async with session_lock:
                session = await self._reserve(session_id, source_ref)
                log.info("session.create", source_ref=source_ref, port=session.port)

                try:
                    session.transition(SessionStatus.PROVISIONING)
                    await self._registry.put(session)

                    if session.workspace_path is not None:
                        await self._provisioner.provision(source_ref, session.workspace_path)

                    session.transition(SessionStatus.STARTING)
                    await self._registry.put(session)

                    session.container_id = await self._supervisor.create(session)
                    await self._registry.put(session)
                    await self._supervisor.start(session.container_id)
                except asyncio.CancelledError as e:
                    # Caller went away mid-create; undo before propagating
                    await self._rollback(session, e)
                    raise
                except Exception as e:
                    await self._rollback(session, e)
                    if isinstance(e, ProvisioningError):
                        raise
                    raise ProvisioningError(
                        f"Failed to start dev server: {getattr(e, 'message', None) or e}",
                        details={"session_id": session_id, "source_ref": source_ref},
                    ) from e

                session.transition(SessionStatus.RUNNING)
                await self._registry.put(session)

                if self._settings.readiness.enabled:
                    self._supervisor.watch(session, on_exit=self.handle_container_exit)
        finally:
            if await self._registry.get(session_id) is None:
                await cleanup_session_lock(session_id)

        log.info(
            "session.running",
            container_id=session.container_id,
            port=session.port,
        )
        return session

    async def _reserve(self, session_id: str, source_ref: str) -> Session:
        """Admission check, port allocation and first registry entry."""
        async with self._admission_lock:
            max_sessions = self._settings.sessions.max_sessions
            if max_sessions is not None:
                live = await self._registry.count()
                if live >= max_sessions:
                    raise ResourceExhaustionError(
                        f"Session limit reached: {max_sessions}",
                        details={"max_sessions": max_sessions},
                    )

            port = self._allocator.allocate()
            session = Session(
                id=session_id,
                source_ref=source_ref,
                port=port,
                workspace_path=(
                    self._provisioner.path_for(session_id) if self.host_workspaces else None
                ),
            )
            await self._registry.put(session)
            return session

    async def _rollback(self, session: Session, error: BaseException) -> None:
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        self._log.error(
            "session.create_failed",
            session_id=session.id,
            status=session.status.value,
            error=message,
            error_type=type(error).__name__,
        )
        if session.can_transition(SessionStatus.FAILED):
            session.transition(SessionStatus.FAILED, error=message)
            await self._registry.put(session)

        plan = CleanupPlan("create.rollback", session_id=session.id)
        if session.container_id is not None:
            container_id = session.container_id
            plan.add("remove_container", lambda: self._supervisor.destroy(container_id))
        if session.workspace_path is not None:
            workspace_path = session.workspace_path
            plan.add("discard_workspace", lambda: self._provisioner.discard(workspace_path))
        plan.add("release_port", self._release_port_step(session.port))
        plan.add("remove_from_registry", self._remove_step(session.id))
        await plan.run()

    # Read

    async def list(self) -> list[Session]:
        """All tracked sessions. No side effects."""
        return await self._registry.list()

    async def get(self, session_id: str) -> Session:
        session = await self._registry.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Session not found: {session_id}",
                details={"session_id": session_id},
            )
        return session

    async def logs(self, session_id: str, tail: int | None = None) -> str:
        """Tail of the session container's combined output.

        Raises:
            NotFoundError: Unknown session or no container yet
        """
        session = await self.get(session_id)
        if session.container_id is None:
            raise NotFoundError(
                f"Session has no container: {session_id}",
                details={"session_id": session_id},
            )
        if tail is None:
            tail = self._settings.sessions.logs_default_tail
        return await self._supervisor.logs(session.container_id, tail=tail)

    # Delete

    async def delete(self, session_id: str) -> CleanupReport:
        """Tear a session down and stop tracking it.

        Waits for an in-flight create on the same id. Sub-step failures are
        reported in the returned CleanupReport, never raised.

        Raises:
            NotFoundError: Unknown session id (registry untouched)
        """
        await self.get(session_id)

        log = self._log.bind(session_id=session_id)
        session_lock = await get_session_lock(session_id)
        async with session_lock:
            session = await self._registry.get(session_id)
            if session is not None:
                report = await self._teardown(session)

        await cleanup_session_lock(session_id)
        if session is None:
            # A concurrent delete won, or the create we waited on rolled back
            log.info("session.delete.already_gone")
            raise NotFoundError(
                f"Session not found: {session_id}",
                details={"session_id": session_id},
            )

        log.info("session.deleted", warnings=report.warnings)
        return report

    async def _teardown(self, session: Session) -> CleanupReport:
        self._log.info("session.delete", session_id=session.id, status=session.status.value)
        # Failed is absorbing: tear down without touching the status
        if session.can_transition(SessionStatus.STOPPING):
            session.transition(SessionStatus.STOPPING)
            await self._registry.put(session)

        report = await self._teardown_plan(session).run()

        if session.can_transition(SessionStatus.TERMINATED):
            session.transition(SessionStatus.TERMINATED)
        await self._registry.remove(session.id)
        return report

    def _teardown_plan(self, session: Session) -> CleanupPlan:
        plan = CleanupPlan("session.teardown", session_id=session.id)
        plan.add("cancel_readiness", self._unwatch_step(session.id))
        if session.container_id is not None:
            container_id = session.container_id
            plan.add("stop_container", lambda: self._supervisor.stop(container_id))
            plan.add("remove_container", lambda: self._supervisor.destroy(container_id))
        if session.workspace_path is not None:
            workspace_path = session.workspace_path
            plan.add("discard_workspace", lambda: self._provisioner.discard(workspace_path))
        plan.add("release_port", self._release_port_step(session.port))
        return plan

    # Supervision callbacks

    async def handle_container_exit(self, session_id: str, info: "ContainerInfo") -> None:
        """Readiness watch found the container exited: mark the session failed."""
        if await self._registry.get(session_id) is None:
            return

        session_lock = await get_session_lock(session_id)
        async with session_lock:
            session = await self._registry.get(session_id)
            if session is not None and session.status == SessionStatus.RUNNING:
                session.transition(SessionStatus.FAILED, error=info.exit_detail)
                await self._registry.put(session)
                self._log.warning(
                    "session.container_exited",
                    session_id=session_id,
                    exit_detail=info.exit_detail,
                )
        if session is None:
            # Deleted while we waited; drop the lock this call created
            await cleanup_session_lock(session_id)

    # Shutdown

    async def shutdown(self) -> None:
        """Best-effort teardown of every tracked session, then stop probes."""
        if self._settings.sessions.cleanup_on_shutdown:
            sessions = await self._registry.list()
            for session in sessions:
                try:
                    await self.delete(session.id)
                except NotFoundError:
                    continue
            if sessions:
                self._log.info("orchestrator.shutdown_cleanup", total=len(sessions))

        await self._supervisor.close()

    # Step factories

    def _release_port_step(self, port: int):
        async def release_port() -> None:
            self._allocator.release(port)

        return release_port

    def _remove_step(self, session_id: str):
        async def remove_from_registry() -> None:
            await self._registry.remove(session_id)

        return remove_from_registry

    def _unwatch_step(self, session_id: str):
        async def cancel_readiness() -> None:
            self._supervisor.unwatch(session_id)

        return cancel_readiness
