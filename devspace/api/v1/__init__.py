"""API router."""

from fastapi import APIRouter

from devspace.api.v1.sessions import router as sessions_router

router = APIRouter()

# Path kept from the original dev-server API consumed by the web UI
router.include_router(sessions_router, prefix="/dev-server", tags=["sessions"])
