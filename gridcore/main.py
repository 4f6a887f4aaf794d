"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gridcore.config import get_settings
from gridcore.application.services import TableSessionManager
from gridcore.infrastructure.database import engine
from gridcore.infrastructure.database.table_catalog import TableCatalog
from gridcore.infrastructure.dependencies import build_session_manager
from gridcore.infrastructure.logging.log_config import setup_logging
from gridcore.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


def _load_catalog() -> TableCatalog:
    """Load the YAML table catalog; an absent file yields an empty catalog."""
    settings = get_settings()
    path = Path(settings.tables_config_file)
    if not path.exists():
        logger.warning("Table catalog %s not found; no tables registered", path)
        return TableCatalog()
    return TableCatalog.from_yaml(path)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: configure logging and register tables."""
    setup_logging()

    # Configuration errors are fatal here, before the first request.
    if app.state.table_catalog is None:
        app.state.table_catalog = _load_catalog()
    logger.info("Serving tables: %s", app.state.table_catalog.table_ids())

    yield

    await engine.dispose()


def create_app(
    catalog: TableCatalog | None = None,
    session_manager: TableSessionManager | None = None,
) -> FastAPI:
    """Factory function that builds and configures the FastAPI application.

    ``catalog`` skips loading the YAML catalog at startup (tests, embedding).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.table_catalog = catalog
    app.state.session_manager = session_manager or build_session_manager(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gridcore.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
