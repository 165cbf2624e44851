"""Manager layer - business logic."""

from devspace.managers.orchestrator import Orchestrator
from devspace.managers.supervisor import ContainerSupervisor

__all__ = ["ContainerSupervisor", "Orchestrator"]
