"""Unit tests for InMemorySessionRegistry."""

from __future__ import annotations

from devspace.models.session import Session, SessionStatus
from devspace.registry import InMemorySessionRegistry


def _session(session_id: str, port: int = 8080) -> Session:
    return Session(id=session_id, source_ref="https://example.com/demo.git", port=port)


class TestInMemorySessionRegistry:
    async def test_put_get_and_overwrite(self):
        registry = InMemorySessionRegistry()
        session = _session("sess-1")

        await registry.put(session)
        session.transition(SessionStatus.PROVISIONING)
        await registry.put(session)

        stored = await registry.get("sess-1")
        assert stored is session
        assert stored.status == SessionStatus.PROVISIONING
        assert await registry.count() == 1

    async def test_get_unknown(self):
        assert await InMemorySessionRegistry().get("nope") is None

    async def test_list_returns_snapshot(self):
        registry = InMemorySessionRegistry()
        await registry.put(_session("sess-1"))
        await registry.put(_session("sess-2", port=8081))

        snapshot = await registry.list()
        await registry.remove("sess-1")

        assert {s.id for s in snapshot} == {"sess-1", "sess-2"}
        assert [s.id for s in await registry.list()] == ["sess-2"]

    async def test_remove_is_idempotent(self):
        registry = InMemorySessionRegistry()
        session = _session("sess-1")
        await registry.put(session)

        assert await registry.remove("sess-1") is session
        assert await registry.remove("sess-1") is None
        assert await registry.count() == 0
