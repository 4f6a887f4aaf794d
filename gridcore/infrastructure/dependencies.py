"""FastAPI dependency injection: wires infrastructure to application layer."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from gridcore.config import Settings, get_settings
from gridcore.application.interfaces import IdentityProvider
from gridcore.application.services import DataTableService, TableSessionManager
from gridcore.domain.exceptions import UnknownTableError
from gridcore.infrastructure.cache import InMemoryCacheStore
from gridcore.infrastructure.database.query_executor import SQLAlchemyQueryExecutor
from gridcore.infrastructure.database.session import get_db_session
from gridcore.infrastructure.database.table_catalog import TableCatalog, TableEntry
from gridcore.infrastructure.identity import HeaderIdentityProvider


@dataclass
class TableContext:
    """Everything one table request needs: its session service and an executor."""

    entry: TableEntry
    service: DataTableService
    executor: SQLAlchemyQueryExecutor


def build_session_manager(settings: Settings | None = None) -> TableSessionManager:
    """Session manager with one result store and one distinct-value store."""
    settings = settings or get_settings()
    return TableSessionManager(
        result_store=InMemoryCacheStore(max_entries=settings.result_cache_max_entries),
        distinct_store=InMemoryCacheStore(max_entries=settings.result_cache_max_entries),
        max_sessions=settings.max_table_sessions,
        result_ttl_seconds=settings.result_cache_ttl_seconds,
        distinct_ttl_seconds=settings.distinct_values_ttl_seconds,
        distinct_limit=settings.distinct_values_limit,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def get_table_catalog(request: Request) -> TableCatalog:
    return request.app.state.table_catalog


def get_session_manager(request: Request) -> TableSessionManager:
    return request.app.state.session_manager


def get_identity_provider(
    x_user_id: str | None = Header(None),
    x_session_id: str | None = Header(None),
) -> IdentityProvider:
    """Scope discriminator from the X-User-Id / X-Session-Id headers."""
    return HeaderIdentityProvider(x_user_id, x_session_id)


def get_table_entry(
    table_id: str,
    catalog: TableCatalog = Depends(get_table_catalog),
) -> TableEntry:
    try:
        return catalog.get(table_id)
    except UnknownTableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


async def get_table_context(
    entry: TableEntry = Depends(get_table_entry),
    manager: TableSessionManager = Depends(get_session_manager),
    identity: IdentityProvider = Depends(get_identity_provider),
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[TableContext, None]:
    """Provides the caller's table session plus an executor bound to this request."""
    service = manager.get_or_create(identity.scope_for(entry.table_id), entry.registry)
    yield TableContext(
        entry=entry,
        service=service,
        executor=SQLAlchemyQueryExecutor(session, entry.model),
    )
