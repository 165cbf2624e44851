"""Devspace error hierarchy.

Every error carries a stable ``code`` and an HTTP ``status_code`` so the API
layer can render it without knowing the concrete type.
"""

from __future__ import annotations

from typing import Any


class DevspaceError(Exception):
    """Base class for all devspace errors."""

    code: str = "internal_error"
    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        """Render as API error body."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(DevspaceError):
    """Request rejected before any resource was allocated."""

    code = "validation_error"
    status_code = 400
    default_message = "Validation failed"


class NotFoundError(DevspaceError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class ResourceExhaustionError(DevspaceError):
    """No host port (or admission slot) available for a new session."""

    code = "resource_exhausted"
    status_code = 503
    default_message = "No resources available"


class ProvisioningError(DevspaceError):
    """Source fetch or container start failed; the attempt was rolled back."""

    code = "provisioning_failed"
    status_code = 502
    default_message = "Failed to provision session"


class DriverError(DevspaceError):
    """Container engine call failed."""

    code = "driver_error"
    status_code = 502
    default_message = "Container engine error"


class InvalidStateTransitionError(DevspaceError):
    code = "invalid_state_transition"
    status_code = 409
    default_message = "Invalid session state transition"


class SupervisionWarning(DevspaceError):
    """A teardown step failed.

    Collected into a cleanup report and logged; never fails a delete.
    """

    code = "supervision_warning"
    status_code = 500
    default_message = "Cleanup step failed"
