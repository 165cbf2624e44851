"""Dev-server session endpoints.

Thin handlers over the Orchestrator. JSON fields are camelCase for the
polling web UI.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from devspace.api.dependencies import OrchestratorDep
from devspace.models.session import Session

router = APIRouter()


# Request/Response Models


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateSessionRequest(CamelModel):
    """Request to create a dev-server session."""

    # Optional so a missing value reaches the orchestrator's validation
    repo_url: str | None = None


class CreateSessionResponse(CamelModel):
    session_id: str
    repo_url: str
    port: int
    status: str
    url: str


class SessionSummary(CamelModel):
    session_id: str
    repo_url: str
    port: int
    status: str
    container_id: str | None


class SessionDetail(SessionSummary):
    url: str
    error: str | None
    created_at: datetime
    updated_at: datetime


class SessionListResponse(CamelModel):
    sessions: list[SessionSummary]


class DeleteSessionResponse(CamelModel):
    message: str
    warnings: list[str] = []


class SessionLogsResponse(CamelModel):
    session_id: str
    logs: str


def _summary(session: Session) -> SessionSummary:
    summary = session.summary()
    return SessionSummary(
        session_id=summary["id"],
        repo_url=summary["source_ref"],
        port=summary["port"],
        status=summary["status"],
        container_id=summary["container_id"],
    )


# Endpoints


@router.post("", response_model=CreateSessionResponse, status_code=201)
async def create_session(
    request: CreateSessionRequest,
    orchestrator: OrchestratorDep,
) -> CreateSessionResponse:
    """Clone a repository and start an editor server for it.

    Returns once the container has started; the editor may need a few more
    seconds before it accepts connections.
    """
    session = await orchestrator.create(request.repo_url)
    return CreateSessionResponse(
        session_id=session.id,
        repo_url=session.source_ref,
        port=session.port,
        status=session.status.value,
        url=orchestrator.access_url(session),
    )


@router.get("", response_model=SessionListResponse)
async def list_sessions(orchestrator: OrchestratorDep) -> SessionListResponse:
    """List tracked sessions."""
    sessions = await orchestrator.list()
    return SessionListResponse(sessions=[_summary(s) for s in sessions])


@router.get("/{session_id}", response_model=SessionDetail)
async def get_session(session_id: str, orchestrator: OrchestratorDep) -> SessionDetail:
    session = await orchestrator.get(session_id)
    return SessionDetail(
        **_summary(session).model_dump(),
        url=orchestrator.access_url(session),
        error=session.error,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


@router.delete("/{session_id}", response_model=DeleteSessionResponse)
async def delete_session(session_id: str, orchestrator: OrchestratorDep) -> DeleteSessionResponse:
    """Stop the editor server and clean up.

    Succeeds even when individual cleanup steps fail; those are listed in
    ``warnings``.
    """
    report = await orchestrator.delete(session_id)
    return DeleteSessionResponse(
        message="Dev server stopped and cleaned up successfully",
        warnings=report.warnings,
    )


@router.get("/{session_id}/logs", response_model=SessionLogsResponse)
async def get_session_logs(
    session_id: str,
    orchestrator: OrchestratorDep,
    tail: int | None = Query(None, ge=1, le=10000),
) -> SessionLogsResponse:
    """Tail of the editor container's output."""
    logs = await orchestrator.logs(session_id, tail=tail)
    return SessionLogsResponse(session_id=session_id, logs=logs)
