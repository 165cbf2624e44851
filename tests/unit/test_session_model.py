"""Unit tests for the Session model state machine."""

from __future__ import annotations

import pytest

from devspace.errors import InvalidStateTransitionError
from devspace.models.session import Session, SessionStatus


def _session(status: SessionStatus = SessionStatus.PENDING) -> Session:
    return Session(id="sess-1", source_ref="https://example.com/demo.git", port=8080, status=status)


class TestTransitions:
    def test_happy_path(self):
        session = _session()

        for target in (
            SessionStatus.PROVISIONING,
            SessionStatus.STARTING,
            SessionStatus.RUNNING,
            SessionStatus.STOPPING,
            SessionStatus.TERMINATED,
        ):
            session.transition(target)

        assert session.status == SessionStatus.TERMINATED

    def test_failure_records_error(self):
        session = _session(SessionStatus.STARTING)
        before = session.updated_at

        session.transition(SessionStatus.FAILED, error="boom")

        assert session.status == SessionStatus.FAILED
        assert session.error == "boom"
        assert session.updated_at >= before

    @pytest.mark.parametrize("target", list(SessionStatus))
    def test_failed_is_absorbing(self, target: SessionStatus):
        session = _session(SessionStatus.FAILED)

        assert not session.can_transition(target)
        with pytest.raises(InvalidStateTransitionError):
            session.transition(target)
        assert session.status == SessionStatus.FAILED

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (SessionStatus.PENDING, SessionStatus.RUNNING),
            (SessionStatus.RUNNING, SessionStatus.PROVISIONING),
            (SessionStatus.TERMINATED, SessionStatus.STOPPING),
            (SessionStatus.TERMINATED, SessionStatus.FAILED),
        ],
    )
    def test_illegal_transitions(self, start: SessionStatus, target: SessionStatus):
        session = _session(start)

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            session.transition(target)

        assert session.status == start
        assert exc_info.value.details == {
            "session_id": "sess-1",
            "from": start.value,
            "to": target.value,
        }


class TestProjection:
    def test_summary(self):
        session = _session(SessionStatus.RUNNING)
        session.container_id = "c1"

        assert session.summary() == {
            "id": "sess-1",
            "source_ref": "https://example.com/demo.git",
            "port": 8080,
            "status": "running",
            "container_id": "c1",
        }

    def test_access_url(self):
        assert _session().access_url("dev.example.com") == "http://dev.example.com:8080"

