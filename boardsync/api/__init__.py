"""
API routes for the sync service.
"""

from fastapi import APIRouter

from boardsync.api.webhooks import router as webhooks_router

# Main API router
api_router = APIRouter(prefix="/api")

api_router.include_router(webhooks_router, tags=["Webhooks"])

__all__ = ["api_router"]
