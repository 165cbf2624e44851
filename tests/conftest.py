"""Test configuration and fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from devspace.config import Settings
from devspace.managers.orchestrator import Orchestrator
from devspace.managers.supervisor import ContainerSupervisor
from devspace.registry import InMemorySessionRegistry
from devspace.services.ports import PortAllocator
from tests.fakes import FakeDriver, FakeProvisioner


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with workspaces under tmp_path and probing disabled."""
    return Settings(
        workspace={"root_path": str(tmp_path / "repos")},
        ports={"bind_host": "127.0.0.1"},
        readiness={"enabled": False, "attempts": 3, "interval_seconds": 0.0},
    )


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver(log_output="line 1\nline 2\nline 3\n")


@pytest.fixture
def provisioner(test_settings: Settings) -> FakeProvisioner:
    return FakeProvisioner(test_settings.workspace.root_path)


@pytest.fixture
def allocator(test_settings: Settings) -> PortAllocator:
    return PortAllocator(
        preferred=test_settings.ports.preferred,
        bind_host=test_settings.ports.bind_host,
    )


@pytest.fixture
def registry() -> InMemorySessionRegistry:
    return InMemorySessionRegistry()


def make_orchestrator(
    settings: Settings,
    driver: FakeDriver,
    *,
    provisioner: FakeProvisioner | None = None,
    allocator: PortAllocator | None = None,
    registry: InMemorySessionRegistry | None = None,
) -> Orchestrator:
    supervisor = ContainerSupervisor(
        driver,
        settings.editor,
        settings.readiness,
        workspace_mode=settings.workspace.mode,
    )
    return Orchestrator(
        registry=registry or InMemorySessionRegistry(),
        allocator=allocator or PortAllocator(bind_host=settings.ports.bind_host),
        provisioner=provisioner or FakeProvisioner(settings.workspace.root_path),
        supervisor=supervisor,
        settings=settings,
    )


@pytest.fixture
def orchestrator(
    test_settings: Settings,
    fake_driver: FakeDriver,
    provisioner: FakeProvisioner,
    allocator: PortAllocator,
    registry: InMemorySessionRegistry,
) -> Orchestrator:
    return make_orchestrator(
        test_settings,
        fake_driver,
        provisioner=provisioner,
        allocator=allocator,
        registry=registry,
    )
