"""Router aggregations for public API endpoints."""

from fastapi import APIRouter

from progress_sync.api.routes import health, progress, sync

# Health router (no prefix)
root_router = APIRouter()
root_router.include_router(health.router, tags=["health"])

# Mini App handlers with /api prefix
api_router = APIRouter(prefix="/api")
api_router.include_router(sync.router)
api_router.include_router(progress.router)

__all__ = ["api_router", "root_router"]
