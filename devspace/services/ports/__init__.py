from devspace.services.ports.allocator import PortAllocator

__all__ = ["PortAllocator"]
