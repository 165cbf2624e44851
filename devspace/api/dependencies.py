"""FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from devspace.managers.orchestrator import Orchestrator


def get_orchestrator(request: Request) -> Orchestrator:
    """Orchestrator built during app lifespan startup."""
    return request.app.state.orchestrator


OrchestratorDep = Annotated[Orchestrator, Depends(get_orchestrator)]
