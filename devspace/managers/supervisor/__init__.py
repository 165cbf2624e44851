from devspace.managers.supervisor.supervisor import ContainerSupervisor

__all__ = ["ContainerSupervisor"]
