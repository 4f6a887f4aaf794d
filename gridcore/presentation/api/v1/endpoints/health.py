"""Health check endpoint: no database access, always available."""

from fastapi import APIRouter, Request

from gridcore.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Returns the application status and the registered tables."""
    settings = get_settings()
    catalog = getattr(request.app.state, "table_catalog", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "tables": catalog.table_ids() if catalog is not None else [],
    }
