from .table import (
    ColumnConfig,
    TableConfig,
    ColumnSchema,
    PaginationSchema,
    PageResponse,
    DistinctValuesResponse,
    RelationPlanResponse,
    InvalidationResponse,
    StateQuery,
)

__all__ = [
    "ColumnConfig",
    "TableConfig",
    "ColumnSchema",
    "PaginationSchema",
    "PageResponse",
    "DistinctValuesResponse",
    "RelationPlanResponse",
    "InvalidationResponse",
    "StateQuery",
]
