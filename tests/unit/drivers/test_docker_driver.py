"""Unit tests for DockerDriver payloads and error mapping.

The aiodocker client is replaced with a small in-memory stand-in so no
Docker daemon is needed.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from aiodocker.exceptions import DockerError

from devspace.drivers.base import ContainerSpec, ContainerStatus
from devspace.drivers.docker import DockerDriver, build_container_config
from devspace.drivers.docker.docker import _map_status
from devspace.errors import DriverError


class FakeContainer:
    def __init__(self, error: DockerError | None = None, state: dict[str, Any] | None = None):
        self.error = error
        self.state = state or {"Status": "running", "ExitCode": 0, "Error": ""}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def _call(self, name: str, **kwargs: Any) -> Any:
        self.calls.append((name, kwargs))
        if self.error is not None:
            raise self.error

    async def start(self) -> None:
        await self._call("start")

    async def stop(self, **kwargs: Any) -> None:
        await self._call("stop", **kwargs)

    async def delete(self, **kwargs: Any) -> None:
        await self._call("delete", **kwargs)

    async def show(self) -> dict[str, Any]:
        await self._call("show")
        return {"State": self.state}

    async def log(self, **kwargs: Any) -> list[str]:
        await self._call("log", **kwargs)
        return ["line 1\n", "line 2\n"]


class FakeContainers:
    def __init__(self, container: FakeContainer):
        self._container = container
        self.created: list[dict[str, Any]] = []

    def container(self, container_id: str) -> FakeContainer:
        return self._container

    async def create(self, *, config: dict[str, Any], name: str) -> SimpleNamespace:
        if self._container.error is not None:
            raise self._container.error
        self.created.append({"config": config, "name": name})
        return SimpleNamespace(id="abc123")


def _driver(monkeypatch: pytest.MonkeyPatch, container: FakeContainer) -> tuple[DockerDriver, FakeContainers]:
    driver = DockerDriver(socket="/var/run/docker.sock")
    containers = FakeContainers(container)
    client = SimpleNamespace(containers=containers)

    async def get_client() -> SimpleNamespace:
        return client

    monkeypatch.setattr(driver, "_get_client", get_client)
    return driver, containers


def _spec(**overrides: Any) -> ContainerSpec:
    defaults: dict[str, Any] = {
        "name": "openvscode-sess-1",
        "image": "gitpod/openvscode-server:latest",
        "container_port": 3000,
        "host_port": 8080,
        "env": {"OPENVSCODE_DISABLE_WELCOME_PAGE": "true"},
        "labels": {"devspace.session_id": "sess-1"},
        "binds": ["/srv/repos/sess-1:/home/workspace:rw"],
        "working_dir": "/home/workspace",
    }
    defaults.update(overrides)
    return ContainerSpec(**defaults)


class TestBuildContainerConfig:
    def test_host_mode_payload(self):
        config = build_container_config(_spec())

        assert config["Image"] == "gitpod/openvscode-server:latest"
        assert config["ExposedPorts"] == {"3000/tcp": {}}
        assert config["HostConfig"]["PortBindings"] == {"3000/tcp": [{"HostPort": "8080"}]}
        assert config["HostConfig"]["Binds"] == ["/srv/repos/sess-1:/home/workspace:rw"]
        assert config["HostConfig"]["AutoRemove"] is True
        assert "NetworkMode" not in config["HostConfig"]
        assert config["Env"] == ["OPENVSCODE_DISABLE_WELCOME_PAGE=true"]
        assert config["Labels"] == {"devspace.session_id": "sess-1"}
        assert config["WorkingDir"] == "/home/workspace"
        assert "Entrypoint" not in config
        assert "Cmd" not in config

    def test_entrypoint_command_and_network(self):
        config = build_container_config(
            _spec(entrypoint=["/bin/sh", "-c"], command=["echo hi"], auto_remove=False),
            network="devspace",
        )

        assert config["Entrypoint"] == ["/bin/sh", "-c"]
        assert config["Cmd"] == ["echo hi"]
        assert config["HostConfig"]["AutoRemove"] is False
        assert config["HostConfig"]["NetworkMode"] == "devspace"


@pytest.mark.parametrize(
    ("docker_status", "expected"),
    [
        ("running", ContainerStatus.RUNNING),
        ("created", ContainerStatus.CREATED),
        ("removing", ContainerStatus.REMOVING),
        ("exited", ContainerStatus.EXITED),
        ("dead", ContainerStatus.EXITED),
    ],
)
def test_map_status(docker_status: str, expected: ContainerStatus):
    assert _map_status(docker_status) == expected


class TestDockerDriver:
    def test_socket_normalization(self):
        assert DockerDriver(socket="/var/run/docker.sock")._socket == "unix:///var/run/docker.sock"
        assert DockerDriver(socket="tcp://docker:2375")._socket == "tcp://docker:2375"

    async def test_create_returns_id(self, monkeypatch: pytest.MonkeyPatch):
        driver, containers = _driver(monkeypatch, FakeContainer())

        container_id = await driver.create(_spec())

        assert container_id == "abc123"
        assert containers.created[0]["name"] == "openvscode-sess-1"

    async def test_create_error_is_driver_error(self, monkeypatch: pytest.MonkeyPatch):
        error = DockerError(409, {"message": "Conflict. The container name is already in use"})
        driver, _ = _driver(monkeypatch, FakeContainer(error=error))

        with pytest.raises(DriverError, match="already in use"):
            await driver.create(_spec())

    async def test_stop_passes_timeout(self, monkeypatch: pytest.MonkeyPatch):
        container = FakeContainer()
        driver, _ = _driver(monkeypatch, container)

        await driver.stop("abc123", timeout=3)

        assert container.calls == [("stop", {"t": 3})]

    @pytest.mark.parametrize("status", [404, 304])
    async def test_stop_tolerates_gone_or_stopped(self, monkeypatch: pytest.MonkeyPatch, status: int):
        driver, _ = _driver(monkeypatch, FakeContainer(error=DockerError(status, {"message": "x"})))

        await driver.stop("abc123")

    async def test_stop_other_errors_raise(self, monkeypatch: pytest.MonkeyPatch):
        driver, _ = _driver(monkeypatch, FakeContainer(error=DockerError(500, {"message": "daemon down"})))

        with pytest.raises(DriverError, match="daemon down"):
            await driver.stop("abc123")

    @pytest.mark.parametrize("status", [404, 409])
    async def test_destroy_tolerates_missing(self, monkeypatch: pytest.MonkeyPatch, status: int):
        driver, _ = _driver(monkeypatch, FakeContainer(error=DockerError(status, {"message": "x"})))

        await driver.destroy("abc123")

    async def test_destroy_forces_removal(self, monkeypatch: pytest.MonkeyPatch):
        container = FakeContainer()
        driver, _ = _driver(monkeypatch, container)

        await driver.destroy("abc123")

        assert container.calls == [("delete", {"force": True})]

    async def test_status_maps_state(self, monkeypatch: pytest.MonkeyPatch):
        container = FakeContainer(state={"Status": "exited", "ExitCode": 128, "Error": ""})
        driver, _ = _driver(monkeypatch, container)

        info = await driver.status("abc123")

        assert info.status == ContainerStatus.EXITED
        assert info.exit_code == 128
        assert info.error is None
        assert info.exit_detail == "status=exited exit_code=128"

    async def test_status_not_found(self, monkeypatch: pytest.MonkeyPatch):
        driver, _ = _driver(monkeypatch, FakeContainer(error=DockerError(404, {"message": "No such container"})))

        info = await driver.status("abc123")

        assert info.status == ContainerStatus.NOT_FOUND
        assert info.exit_detail == "container not found"

    async def test_logs_joins_lines(self, monkeypatch: pytest.MonkeyPatch):
        container = FakeContainer()
        driver, _ = _driver(monkeypatch, container)

        logs = await driver.logs("abc123", tail=2)

        assert logs == "line 1\nline 2\n"
        assert container.calls == [("log", {"stdout": True, "stderr": True, "tail": 2})]

    async def test_logs_of_removed_container_are_empty(self, monkeypatch: pytest.MonkeyPatch):
        driver, _ = _driver(monkeypatch, FakeContainer(error=DockerError(404, {"message": "gone"})))

        assert await driver.logs("abc123") == ""
