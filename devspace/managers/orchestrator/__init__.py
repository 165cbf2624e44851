from devspace.managers.orchestrator.orchestrator import Orchestrator

__all__ = ["Orchestrator"]
