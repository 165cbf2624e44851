"""HTTP readiness probe for editor-server containers.

Polls the session's host port until the editor answers 200 or the retry
budget runs out. Purely diagnostic: the outcome is logged and returned,
never raised.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx
import structlog

logger = structlog.get_logger()


@dataclass
class ProbeResult:
    ready: bool
    attempts: int
    last_status: int | None = None
    last_error: str | None = None


class ReadinessProbe:
    """Bounded HTTP polling against one URL."""

    def __init__(
        self,
        *,
        attempts: int = 10,
        interval: float = 1.0,
        request_timeout: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._attempts = attempts
        self._interval = interval
        self._request_timeout = request_timeout
        self._transport = transport

    async def wait_ready(self, url: str, *, session_id: str | None = None) -> ProbeResult:
        """Poll ``url`` until HTTP 200 or the attempt budget is spent."""
        log = logger.bind(probe="readiness", url=url, session_id=session_id)
        result = ProbeResult(ready=False, attempts=0)

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._request_timeout,
        ) as client:
            for attempt in range(1, self._attempts + 1):
                result.attempts = attempt
                try:
                    response = await client.get(url)
                    result.last_status = response.status_code
                    result.last_error = None
                    if response.status_code == 200:
                        result.ready = True
                        log.info("readiness.ready", attempt=attempt)
                        return result
                    log.debug("readiness.not_ready", attempt=attempt, status=response.status_code)
                except httpx.HTTPError as e:
                    result.last_error = str(e) or type(e).__name__
                    log.debug("readiness.request_error", attempt=attempt, error=result.last_error)

                if attempt < self._attempts:
                    await asyncio.sleep(self._interval)

        log.warning(
            "readiness.gave_up",
            attempts=result.attempts,
            last_status=result.last_status,
            last_error=result.last_error,
        )
        return result
