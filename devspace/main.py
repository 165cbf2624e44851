"""Devspace application entrypoint.

Builds the orchestrator and its collaborators during FastAPI lifespan
startup and tears every tracked session down on shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from devspace import __version__
from devspace.api.v1 import router as v1_router
from devspace.config import Settings, get_settings
from devspace.drivers.base import Driver
from devspace.drivers.docker import DockerDriver
from devspace.errors import DevspaceError
from devspace.logging_config import configure_logging
from devspace.managers.orchestrator import Orchestrator
from devspace.managers.supervisor import ContainerSupervisor
from devspace.registry import InMemorySessionRegistry
from devspace.services.ports import PortAllocator
from devspace.services.workspace import (
    DeferredWorkspaceProvisioner,
    GitWorkspaceProvisioner,
    WorkspaceProvisioner,
)
from devspace.utils.datetime import utcnow

logger = structlog.get_logger()


def build_provisioner(settings: Settings) -> WorkspaceProvisioner:
    ws = settings.workspace
    if ws.mode == "container":
        return DeferredWorkspaceProvisioner(ws.root_path)
    return GitWorkspaceProvisioner(
        ws.root_path,
        git_binary=ws.git_binary,
        clone_depth=ws.clone_depth,
        timeout=ws.clone_timeout_seconds,
    )


def build_orchestrator(settings: Settings, driver: Driver) -> Orchestrator:
    """Wire the orchestrator from settings and a container driver."""
    supervisor = ContainerSupervisor(
        driver,
        settings.editor,
        settings.readiness,
        workspace_mode=settings.workspace.mode,
    )
    allocator = PortAllocator(
        preferred=settings.ports.preferred,
        bind_host=settings.ports.bind_host,
        max_attempts=settings.ports.max_attempts,
    )
    return Orchestrator(
        registry=InMemorySessionRegistry(),
        allocator=allocator,
        provisioner=build_provisioner(settings),
        supervisor=supervisor,
        settings=settings,
    )


def create_app(settings: Settings | None = None, driver: Driver | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings to use (defaults to get_settings())
        driver: Container driver (defaults to DockerDriver from settings)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.logging.level, settings.logging.json_output)

        app_driver = driver or DockerDriver(
            socket=settings.driver.docker.socket,
            network=settings.driver.docker.network,
        )
        Path(settings.workspace.root_path).mkdir(parents=True, exist_ok=True)

        orchestrator = build_orchestrator(settings, app_driver)
        app.state.orchestrator = orchestrator

        logger.info(
            "devspace.started",
            port=settings.server.port,
            workspace_root=str(Path(settings.workspace.root_path).resolve()),
            workspace_mode=settings.workspace.mode,
            image=settings.editor.image,
        )
        try:
            yield
        finally:
            await orchestrator.shutdown()
            await app_driver.close()
            logger.info("devspace.stopped")

    app = FastAPI(title="devspace", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DevspaceError)
    async def devspace_error_handler(request: Request, exc: DevspaceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": utcnow().isoformat()}

    app.include_router(v1_router, prefix="/api")
    return app


def run() -> None:
    """Console entrypoint: serve the API with uvicorn."""
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    run()
