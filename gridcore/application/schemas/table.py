"""Pydantic DTOs for table configuration and the table API."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field


# ── Configuration Schemas ────────────────────────────────────────────


class ColumnConfig(BaseModel):
    """One declared column, as supplied by the host at mount time.

    Exactly one of ``field`` (direct) or ``relation`` ("relation:attribute")
    must be given. Extra display keys (templates, raw markup, ...) belong to
    rendering collaborators and are ignored here.
    """

    key: str | None = Field(None, description="Lookup key; defaults to field or relation path")
    label: str | None = None
    field: str | None = Field(None, examples=["name"])
    relation: str | None = Field(None, examples=["department:name"])
    sortable: bool = True
    searchable: bool = True
    filterable: bool = False
    value_type: str | None = Field(None, examples=["text", "number", "date", "select"])

    model_config = {"extra": "ignore"}


class TableConfig(BaseModel):
    """A table definition loaded from the YAML catalog."""

    table_id: str = Field(..., min_length=1)
    model: str = Field(..., description="Import path of the ORM model, 'package.module:Class'")
    columns: list[ColumnConfig] = Field(..., min_length=1)
    date_column: str | None = None
    default_sort: str | None = None
    default_sort_direction: str = "asc"
    count_aggregations: list[str] = []


# ── Response Schemas ─────────────────────────────────────────────────


class ColumnSchema(BaseModel):
    key: str
    label: str
    kind: str
    path: str
    sortable: bool
    searchable: bool
    filterable: bool
    value_type: str | None = None
    operators: list[str] = []


class PaginationSchema(BaseModel):
    """Plain pagination metadata: the only persisted shape of a page."""

    page: int
    page_size: int
    total_count: int
    last_page: int


class PageResponse(BaseModel):
    rows: list[dict[str, Any]]
    pagination: PaginationSchema
    relations_loaded: list[str] = []
    fingerprint: str
    from_cache: bool = False
    created_at: datetime


class DistinctValuesResponse(BaseModel):
    column_key: str
    values: list[Any] = []


class RelationPlanResponse(BaseModel):
    relations: list[str] = []


class InvalidationResponse(BaseModel):
    invalidated: int = 0


class StateQuery(BaseModel):
    """Interaction state as carried by query parameters."""

    search: str = ""
    filter_column: str | None = None
    filter_operator: str | None = None
    filter_value: list[str] = []
    date_start: date | None = None
    date_end: date | None = None
    sort_column: str | None = None
    sort_direction: str = Field("asc", pattern="^(asc|desc)$")
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1)
    visible: list[str] = []
