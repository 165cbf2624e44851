"""aiodocker-backed driver for the local Docker engine.

Works with a host docker.sock or one mounted into the devspace container.
"""

from __future__ import annotations

from typing import Any

import aiodocker
import structlog
from aiodocker.exceptions import DockerError

from devspace.drivers.base import ContainerInfo, ContainerSpec, ContainerStatus, Driver
from devspace.errors import DriverError

logger = structlog.get_logger()


def build_container_config(spec: ContainerSpec, *, network: str | None = None) -> dict[str, Any]:
    """Translate a ContainerSpec into a Docker Engine create payload."""
    port_key = f"{spec.container_port}/tcp"

    host_config: dict[str, Any] = {
        "PortBindings": {port_key: [{"HostPort": str(spec.host_port)}]},
        "Binds": list(spec.binds),
        "AutoRemove": spec.auto_remove,
    }
    if network:
        host_config["NetworkMode"] = network

    config: dict[str, Any] = {
        "Image": spec.image,
        "Env": [f"{k}={v}" for k, v in spec.env.items()],
        "Labels": dict(spec.labels),
        "ExposedPorts": {port_key: {}},
        "HostConfig": host_config,
    }
    if spec.working_dir:
        config["WorkingDir"] = spec.working_dir
    if spec.entrypoint is not None:
        config["Entrypoint"] = spec.entrypoint
    if spec.command is not None:
        config["Cmd"] = spec.command

    return config


def _map_status(docker_status: str) -> ContainerStatus:
    if docker_status == "running":
        return ContainerStatus.RUNNING
    if docker_status == "created":
        return ContainerStatus.CREATED
    if docker_status == "removing":
        return ContainerStatus.REMOVING
    # exited, dead, paused, restarting and unknown values
    return ContainerStatus.EXITED


class DockerDriver(Driver):
    """Talks to Docker over its HTTP API socket."""

    def __init__(self, socket: str = "unix:///var/run/docker.sock", network: str | None = None) -> None:
        if socket.startswith(("unix://", "tcp://", "http://", "https://")):
            self._socket = socket
        else:
            self._socket = f"unix://{socket}"

        self._network = network
        self._log = logger.bind(driver="docker")
        self._client: aiodocker.Docker | None = None

    async def _get_client(self) -> aiodocker.Docker:
        if self._client is None:
            self._client = aiodocker.Docker(url=self._socket)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def create(self, spec: ContainerSpec) -> str:
        """Create the container described by ``spec``; returns its id."""
        client = await self._get_client()

        self._log.info(
            "docker.create",
            name=spec.name,
            image=spec.image,
            host_port=spec.host_port,
        )

        try:
            container = await client.containers.create(
                config=build_container_config(spec, network=self._network),
                name=spec.name,
            )
        except DockerError as e:
            self._log.error("docker.create_failed", name=spec.name, status=e.status, error=e.message)
            raise DriverError(
                f"Failed to create container: {e.message}",
                details={"name": spec.name, "image": spec.image, "status": e.status},
            ) from e

        container_id = container.id
        self._log.info("docker.created", container_id=container_id)
        return container_id

    async def start(self, container_id: str) -> None:
        client = await self._get_client()
        self._log.info("docker.start", container_id=container_id)

        try:
            container = client.containers.container(container_id)
            await container.start()
        except DockerError as e:
            self._log.error("docker.start_failed", container_id=container_id, error=e.message)
            raise DriverError(
                f"Failed to start container: {e.message}",
                details={"container_id": container_id, "status": e.status},
            ) from e

        self._log.info("docker.started", container_id=container_id)

    async def stop(self, container_id: str, *, timeout: int = 10) -> None:
        """Stop a container. 404 and 304 (already stopped) are tolerated."""
        client = await self._get_client()
        self._log.info("docker.stop", container_id=container_id)

        try:
            container = client.containers.container(container_id)
            await container.stop(t=timeout)
        except DockerError as e:
            if e.status == 404:
                self._log.warning("docker.stop.not_found", container_id=container_id)
            elif e.status == 304:
                self._log.info("docker.stop.already_stopped", container_id=container_id)
            else:
                raise DriverError(
                    f"Failed to stop container: {e.message}",
                    details={"container_id": container_id, "status": e.status},
                ) from e

    async def destroy(self, container_id: str) -> None:
        """Force-remove a container."""
        client = await self._get_client()
        self._log.info("docker.destroy", container_id=container_id)

        try:
            container = client.containers.container(container_id)
            await container.delete(force=True)
        except DockerError as e:
            # 409: AutoRemove already in progress
            if e.status in (404, 409):
                self._log.warning("docker.destroy.not_found", container_id=container_id, status=e.status)
            else:
                raise DriverError(
                    f"Failed to remove container: {e.message}",
                    details={"container_id": container_id, "status": e.status},
                ) from e

    async def status(self, container_id: str) -> ContainerInfo:
        client = await self._get_client()

        try:
            container = client.containers.container(container_id)
            info = await container.show()
        except DockerError as e:
            if e.status == 404:
                return ContainerInfo(
                    container_id=container_id,
                    status=ContainerStatus.NOT_FOUND,
                )
            raise DriverError(
                f"Failed to inspect container: {e.message}",
                details={"container_id": container_id, "status": e.status},
            ) from e

        state = info.get("State", {})
        return ContainerInfo(
            container_id=container_id,
            status=_map_status(state.get("Status", "unknown")),
            exit_code=state.get("ExitCode"),
            error=state.get("Error") or None,
        )

    async def logs(self, container_id: str, tail: int = 200) -> str:
        """Combined stdout/stderr tail; empty once the container is gone."""
        client = await self._get_client()

        try:
            container = client.containers.container(container_id)
            logs = await container.log(stdout=True, stderr=True, tail=tail)
            return "".join(logs)
        except DockerError as e:
            if e.status == 404:
                return ""
            raise DriverError(
                f"Failed to read container logs: {e.message}",
                details={"container_id": container_id, "status": e.status},
            ) from e
