"""Session registry - authoritative table of sessions."""

from devspace.registry.base import SessionRegistry
from devspace.registry.memory import InMemorySessionRegistry

__all__ = ["InMemorySessionRegistry", "SessionRegistry"]
