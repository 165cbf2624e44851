"""Session data model.

Session represents one user-requested development environment.
- 1 Session = 1 editor container + 1 host port + (host mode) 1 workspace dir
- Volatile: lives only in the session registry
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from devspace.errors import InvalidStateTransitionError
from devspace.utils.datetime import utcnow


class SessionStatus(str, Enum):
    """Session lifecycle status."""

    PENDING = "pending"  # Id allocated, nothing else yet
    PROVISIONING = "provisioning"  # Fetching source
    STARTING = "starting"  # Creating/starting container
    RUNNING = "running"  # Container started (readiness not implied)
    STOPPING = "stopping"  # Teardown in progress
    TERMINATED = "terminated"  # Torn down
    FAILED = "failed"  # Creation failed or container exited


_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.PROVISIONING, SessionStatus.FAILED}),
    SessionStatus.PROVISIONING: frozenset(
        {SessionStatus.STARTING, SessionStatus.STOPPING, SessionStatus.FAILED}
    ),
    SessionStatus.STARTING: frozenset(
        {SessionStatus.RUNNING, SessionStatus.STOPPING, SessionStatus.FAILED}
    ),
    SessionStatus.RUNNING: frozenset({SessionStatus.STOPPING, SessionStatus.FAILED}),
    SessionStatus.STOPPING: frozenset({SessionStatus.TERMINATED, SessionStatus.FAILED}),
    SessionStatus.TERMINATED: frozenset(),
    # Absorbing: teardown of a failed session keeps the status
    SessionStatus.FAILED: frozenset(),
}


@dataclass
class Session:
    """Session - one editor environment."""

    id: str
    source_ref: str
    port: int
    workspace_path: Path | None = None
    container_id: str | None = None
    status: SessionStatus = SessionStatus.PENDING
    error: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def can_transition(self, target: SessionStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    def transition(self, target: SessionStatus, *, error: str | None = None) -> None:
        """Move to ``target`` or raise InvalidStateTransitionError."""
        if not self.can_transition(target):
            raise InvalidStateTransitionError(
                f"Cannot move session {self.id} from {self.status.value} to {target.value}",
                details={
                    "session_id": self.id,
                    "from": self.status.value,
                    "to": target.value,
                },
            )
        self.status = target
        if error is not None:
            self.error = error
        self.updated_at = utcnow()

    def access_url(self, host: str = "localhost") -> str:
        return f"http://{host}:{self.port}"

    def summary(self) -> dict[str, Any]:
        """Externally visible projection used by list()."""
        return {
            "id": self.id,
            "source_ref": self.source_ref,
            "port": self.port,
            "status": self.status.value,
            "container_id": self.container_id,
        }
