"""Host port allocation for session containers.

A returned port is a reservation by convention: the probe socket is closed
before returning, so the container must bind it promptly. Reserved ports are
remembered in-process so two live sessions are never handed the same port.
"""

from __future__ import annotations

import errno
import socket

import structlog

from devspace.errors import ResourceExhaustionError

logger = structlog.get_logger()


def _try_bind(host: str, port: int) -> int | None:
    """Bind a throwaway socket; return the bound port or None if in use."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return sock.getsockname()[1]
    except OSError as e:
        if e.errno in (errno.EADDRINUSE, errno.EACCES, errno.EADDRNOTAVAIL):
            return None
        raise
    finally:
        sock.close()


class PortAllocator:
    """Finds unused host ports and tracks which ones live sessions hold."""

    def __init__(
        self,
        *,
        preferred: int = 8080,
        bind_host: str = "0.0.0.0",
        max_attempts: int = 32,
    ) -> None:
        self._preferred = preferred
        self._bind_host = bind_host
        self._max_attempts = max_attempts
        self._reserved: set[int] = set()
        self._log = logger.bind(component="port_allocator")

    @property
    def reserved(self) -> frozenset[int]:
        return frozenset(self._reserved)

    def allocate(self, preferred_port: int | None = None) -> int:
        """Reserve a host port.

        Tries ``preferred_port`` (or the configured default) first and falls
        back to OS-assigned ephemeral ports.

        Raises:
            ResourceExhaustionError: If no port could be bound.
        """
        preferred = self._preferred if preferred_port is None else preferred_port

        try:
            port = self._find_port(preferred)
        except OSError as e:
            self._log.error("ports.bind_failed", error=str(e))
            raise ResourceExhaustionError(
                f"No host port available: {e}",
                details={"preferred": preferred},
            ) from e

        if port is None:
            raise ResourceExhaustionError(
                "No host port available",
                details={"preferred": preferred, "attempts": self._max_attempts},
            )

        self._reserved.add(port)
        self._log.info("ports.allocated", port=port, preferred=preferred)
        return port

    def release(self, port: int) -> None:
        """Return a port to the pool. Unknown ports are ignored."""
        if port in self._reserved:
            self._reserved.discard(port)
            self._log.info("ports.released", port=port)

    def _find_port(self, preferred: int) -> int | None:
        if preferred and preferred not in self._reserved:
            port = _try_bind(self._bind_host, preferred)
            if port is not None:
                return port
            self._log.debug("ports.preferred_in_use", port=preferred)

        for _ in range(self._max_attempts):
            port = _try_bind(self._bind_host, 0)
            if port is not None and port not in self._reserved:
                return port
        return None
