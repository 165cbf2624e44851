"""Container engine adapter interface.

A driver only talks to the engine. Session state, readiness probing,
workspaces and host ports belong to the layers above it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class ContainerStatus(str, Enum):
    """Engine-side container state, collapsed to what supervision needs."""

    CREATED = "created"
    RUNNING = "running"
    EXITED = "exited"
    REMOVING = "removing"
    NOT_FOUND = "not_found"


@dataclass
class ContainerInfo:
    """Result of inspecting one container."""

    container_id: str
    status: ContainerStatus
    exit_code: int | None = None
    error: str | None = None

    @property
    def is_running(self) -> bool:
        return self.status == ContainerStatus.RUNNING

    @property
    def exit_detail(self) -> str:
        if self.status == ContainerStatus.NOT_FOUND:
            return "container not found"
        detail = f"status={self.status.value}"
        if self.exit_code is not None:
            detail += f" exit_code={self.exit_code}"
        if self.error:
            detail += f" error={self.error}"
        return detail


@dataclass
class ContainerSpec:
    """Everything a driver needs to create one editor container."""

    name: str
    image: str
    container_port: int
    host_port: int
    env: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    binds: list[str] = field(default_factory=list)
    working_dir: str | None = None
    entrypoint: list[str] | None = None
    command: list[str] | None = None
    auto_remove: bool = True


class Driver(ABC):
    """Container lifecycle operations against one engine.

    Containers are created with the labels from their ContainerSpec so that
    leftovers can be found after a restart.
    """

    @abstractmethod
    async def create(self, spec: ContainerSpec) -> str:
        """Create (not start) a container and return its id."""
        ...

    @abstractmethod
    async def start(self, container_id: str) -> None:
        ...

    @abstractmethod
    async def stop(self, container_id: str, *, timeout: int = 10) -> None:
        """Ask the container to exit, killing it after ``timeout`` seconds.

        Missing or already-stopped containers are not an error.
        """
        ...

    @abstractmethod
    async def destroy(self, container_id: str) -> None:
        """Force-remove a container. Missing containers are not an error."""
        ...

    @abstractmethod
    async def status(self, container_id: str) -> ContainerInfo:
        """Inspect a container; unknown ids map to ``NOT_FOUND``."""
        ...

    @abstractmethod
    async def logs(self, container_id: str, tail: int = 200) -> str:
        """Last ``tail`` lines of combined stdout/stderr."""
        ...

    async def close(self) -> None:
        """Release engine connections."""
