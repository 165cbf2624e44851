"""In-process session registry."""

from __future__ import annotations

import asyncio

import structlog

from devspace.models.session import Session
from devspace.registry.base import SessionRegistry

logger = structlog.get_logger()


class InMemorySessionRegistry(SessionRegistry):
    """Dict-backed registry. Lost on process restart."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()
        self._log = logger.bind(component="registry")

    async def put(self, session: Session) -> None:
        async with self._lock:
            is_new = session.id not in self._sessions
            self._sessions[session.id] = session
        if is_new:
            self._log.debug("registry.put", session_id=session.id)

    async def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    async def list(self) -> list[Session]:
        return list(self._sessions.values())

    async def remove(self, session_id: str) -> Session | None:
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            self._log.debug("registry.remove", session_id=session_id)
        return session

    async def count(self) -> int:
        return len(self._sessions)
