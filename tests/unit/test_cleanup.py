"""Unit tests for CleanupPlan."""

from __future__ import annotations

from devspace.errors import SupervisionWarning
from devspace.utils.cleanup import CleanupPlan


class TestCleanupPlan:
    async def test_runs_every_step_in_order(self):
        calls: list[str] = []

        def step(name: str):
            async def action() -> None:
                calls.append(name)

            return action

        plan = CleanupPlan("test", session_id="sess-1")
        plan.add("a", step("a")).add("b", step("b")).add("c", step("c"))

        report = await plan.run()

        assert calls == ["a", "b", "c"]
        assert report.ok
        assert report.completed == ["a", "b", "c"]
        assert report.warnings == []

    async def test_failures_do_not_stop_later_steps(self):
        calls: list[str] = []

        async def warn() -> None:
            raise SupervisionWarning("stop timed out", details={"container_id": "c1"})

        async def crash() -> None:
            raise RuntimeError("disk gone")

        async def last() -> None:
            calls.append("last")

        plan = CleanupPlan("test")
        plan.add("stop_container", warn)
        plan.add("discard_workspace", crash)
        plan.add("release_port", last)

        report = await plan.run()

        assert calls == ["last"]
        assert not report.ok
        assert report.completed == ["release_port"]
        assert report.warnings == [
            "stop_container: stop timed out",
            "discard_workspace: disk gone",
        ]

    async def test_empty_plan(self):
        report = await CleanupPlan("empty").run()

        assert report.ok
        assert report.completed == []
