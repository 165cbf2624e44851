"""Compensating actions.

A CleanupPlan is an ordered list of independently fallible steps. Running it
executes every step regardless of earlier failures and collects what went
wrong, so teardown and rollback never abort halfway.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from devspace.errors import SupervisionWarning

logger = structlog.get_logger()

CleanupStep = Callable[[], Awaitable[None]]


@dataclass
class CleanupFailure:
    step: str
    error: str


@dataclass
class CleanupReport:
    """Outcome of one CleanupPlan run."""

    completed: list[str] = field(default_factory=list)
    failures: list[CleanupFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def warnings(self) -> list[str]:
        return [f"{f.step}: {f.error}" for f in self.failures]


class CleanupPlan:
    """Ordered compensating actions for one session."""

    def __init__(self, name: str, **context: object) -> None:
        self._name = name
        self._steps: list[tuple[str, CleanupStep]] = []
        self._log = logger.bind(plan=name, **context)

    def add(self, step_name: str, action: CleanupStep) -> "CleanupPlan":
        self._steps.append((step_name, action))
        return self

    async def run(self) -> CleanupReport:
        """Run every step in order. Never raises for step failures."""
        report = CleanupReport()
        for step_name, action in self._steps:
            try:
                await action()
            except SupervisionWarning as exc:
                self._log.warning(
                    "cleanup.step_failed",
                    step=step_name,
                    error=exc.message,
                    details=exc.details,
                )
                report.failures.append(CleanupFailure(step=step_name, error=exc.message))
            except Exception as exc:
                self._log.warning(
                    "cleanup.step_failed",
                    step=step_name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                report.failures.append(CleanupFailure(step=step_name, error=str(exc)))
            else:
                report.completed.append(step_name)

        self._log.info(
            "cleanup.done",
            completed=report.completed,
            failed=[f.step for f in report.failures],
        )
        return report
