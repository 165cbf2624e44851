"""Per-session in-memory locks.

Serializes create/delete on the same session id within one process.
Operations on different sessions never contend.
"""

from __future__ import annotations

import asyncio

_session_locks: dict[str, asyncio.Lock] = {}
_locks_guard = asyncio.Lock()


async def get_session_lock(session_id: str) -> asyncio.Lock:
    """Get (or create) the lock for a session id."""
    async with _locks_guard:
        lock = _session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            _session_locks[session_id] = lock
        return lock


async def cleanup_session_lock(session_id: str) -> None:
    """Drop the lock once the session is gone from the registry."""
    async with _locks_guard:
        lock = _session_locks.get(session_id)
        if lock is not None and not lock.locked():
            del _session_locks[session_id]
