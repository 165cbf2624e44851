"""Data models."""

from devspace.models.session import Session, SessionStatus

__all__ = [
    "Session",
    "SessionStatus",
]
