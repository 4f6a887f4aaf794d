"""Table endpoints: paginated rows, filter values and cache control."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status

from gridcore.application.schemas.table import (
    ColumnSchema,
    DistinctValuesResponse,
    InvalidationResponse,
    PageResponse,
    PaginationSchema,
    RelationPlanResponse,
    StateQuery,
)
from gridcore.domain.entities import CachedResult, ColumnDescriptor, InteractionState
from gridcore.domain.exceptions import DataSourceError
from gridcore.infrastructure.database.table_catalog import TableEntry
from gridcore.infrastructure.dependencies import TableContext, get_table_context, get_table_entry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tables", tags=["Tables"])


def _state_query(
    search: str = Query("", description="Case-insensitive search over visible columns"),
    filter_column: str | None = Query(None),
    filter_operator: str | None = Query(None),
    filter_value: list[str] = Query([], description="Repeat for select filters or a date range"),
    date_start: date | None = Query(None, description="ISO date, inclusive"),
    date_end: date | None = Query(None, description="ISO date, inclusive"),
    sort_column: str | None = Query(None),
    sort_direction: str = Query("asc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1),
    visible: list[str] = Query([], description="Visible column keys; all when omitted"),
) -> StateQuery:
    return StateQuery(
        search=search,
        filter_column=filter_column,
        filter_operator=filter_operator,
        filter_value=filter_value,
        date_start=date_start,
        date_end=date_end,
        sort_column=sort_column,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size,
        visible=visible,
    )


def _to_state(query: StateQuery) -> InteractionState:
    values = [v for v in query.filter_value if v.strip()]
    if not values:
        filter_value = None
    elif len(values) == 1:
        filter_value = values[0]
    else:
        filter_value = tuple(values)
    return InteractionState(
        search_term=query.search.strip(),
        filter_column=query.filter_column,
        filter_operator=query.filter_operator,
        filter_value=filter_value,
        date_range_start=query.date_start,
        date_range_end=query.date_end,
        sort_column=query.sort_column,
        sort_direction=query.sort_direction,
        page_number=query.page,
        page_size=query.page_size,
    )


def _to_column_schema(column: ColumnDescriptor, operators: list[str]) -> ColumnSchema:
    return ColumnSchema(
        key=column.key,
        label=column.label,
        kind=column.kind.value,
        path=column.source.path,
        sortable=column.sortable,
        searchable=column.searchable,
        filterable=column.filterable,
        value_type=column.value_type.value if column.value_type else None,
        operators=operators,
    )


def _to_page_response(result: CachedResult) -> PageResponse:
    return PageResponse(
        rows=list(result.rows),
        pagination=PaginationSchema(
            page=result.page_number,
            page_size=result.page_size,
            total_count=result.total_count,
            last_page=result.last_page,
        ),
        relations_loaded=sorted(result.relations_loaded),
        fingerprint=result.fingerprint,
        from_cache=result.from_cache,
        created_at=result.created_at,
    )


@router.get("/{table_id}/columns", response_model=list[ColumnSchema])
async def list_columns(entry: TableEntry = Depends(get_table_entry)) -> list[ColumnSchema]:
    """Registered column metadata of a table."""
    registry = entry.registry
    schemas = []
    for column in registry.columns:
        descriptor = registry.filter_descriptor(column.key)
        operators = sorted(op.value for op in descriptor.operators) if descriptor else []
        schemas.append(_to_column_schema(column, operators))
    return schemas


@router.get("/{table_id}/rows", response_model=PageResponse)
async def get_rows(
    query: StateQuery = Depends(_state_query),
    context: TableContext = Depends(get_table_context),
) -> PageResponse:
    """One page of rows for the given interaction state."""
    context.service.apply_state(_to_state(query), query.visible or None)
    try:
        result = await context.service.get_page(context.executor)
    except DataSourceError as e:
        logger.error("Row query for table %s failed: %s", context.entry.table_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The data source is currently unavailable",
        )
    return _to_page_response(result)


@router.get("/{table_id}/distinct/{column_key}", response_model=DistinctValuesResponse)
async def get_distinct_values(
    column_key: str,
    context: TableContext = Depends(get_table_context),
) -> DistinctValuesResponse:
    """Sorted distinct values for a filter control."""
    values = await context.service.get_distinct_values(column_key, context.executor)
    return DistinctValuesResponse(column_key=column_key, values=values)


@router.get("/{table_id}/relations", response_model=RelationPlanResponse)
async def get_relation_plan(
    visible: list[str] = Query([]),
    context: TableContext = Depends(get_table_context),
) -> RelationPlanResponse:
    """Relations the current view, or the given ``visible`` columns, load in batches."""
    plan = context.service.plan_relations(visible or None)
    return RelationPlanResponse(relations=sorted(plan))


@router.post("/{table_id}/invalidate", response_model=InvalidationResponse)
async def invalidate(context: TableContext = Depends(get_table_context)) -> InvalidationResponse:
    """Drop cached pages of the caller's scope after an out-of-band data change."""
    return InvalidationResponse(invalidated=context.service.invalidate())


@router.post("/{table_id}/refresh", response_model=InvalidationResponse)
async def refresh(context: TableContext = Depends(get_table_context)) -> InvalidationResponse:
    """Drop cached pages and cached filter values of the caller's scope."""
    return InvalidationResponse(invalidated=context.service.refresh())
