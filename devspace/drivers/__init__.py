"""Driver layer - container engine abstraction."""

from devspace.drivers.base import ContainerInfo, ContainerSpec, ContainerStatus, Driver
from devspace.drivers.docker import DockerDriver

__all__ = ["ContainerInfo", "ContainerSpec", "ContainerStatus", "DockerDriver", "Driver"]
