"""Session registry interface.

The registry is the single source of truth for which sessions exist and what
state they are in. It validates nothing beyond key uniqueness; state changes
are owned by the orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devspace.models.session import Session


class SessionRegistry(ABC):
    """Abstract session store with atomic put/get/remove."""

    @abstractmethod
    async def put(self, session: "Session") -> None:
        """Insert or replace the entry keyed by ``session.id``."""
        ...

    @abstractmethod
    async def get(self, session_id: str) -> "Session | None":
        ...

    @abstractmethod
    async def list(self) -> list["Session"]:
        """Snapshot of all entries. Order is not significant."""
        ...

    @abstractmethod
    async def remove(self, session_id: str) -> "Session | None":
        """Remove and return the entry, or None if absent."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...
