from devspace.services.readiness.probe import ProbeResult, ReadinessProbe

__all__ = ["ProbeResult", "ReadinessProbe"]
