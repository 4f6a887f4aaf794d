"""V1 API router: aggregates all v1 endpoint routers."""

from fastapi import APIRouter

from gridcore.presentation.api.v1.endpoints.health import router as health_router
from gridcore.presentation.api.v1.tables_controller import router as tables_router

router = APIRouter(prefix="/v1")
router.include_router(health_router)
router.include_router(tables_router)
