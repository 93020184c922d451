"""API v1 routing configuration.

This module defines all v1 API routes.
"""

from fastapi import APIRouter

from areahub.api.v1 import executions, services

router = APIRouter()

# Domain routers
router.include_router(services.router, prefix="/services", tags=["Services"])
router.include_router(executions.router, prefix="/executions", tags=["Executions"])


@router.get("/status", tags=["Status"])
async def api_status() -> dict[str, str]:
    """API v1 status check."""
    return {"status": "ok", "version": "v1"}
