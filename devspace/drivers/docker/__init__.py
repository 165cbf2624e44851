from devspace.drivers.docker.docker import DockerDriver, build_container_config

__all__ = ["DockerDriver", "build_container_config"]
