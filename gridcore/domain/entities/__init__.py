from .column import (
    ColumnDescriptor,
    ColumnKind,
    ColumnSource,
    DirectField,
    RelationPath,
    ValueType,
)
from .filter import (
    DEFAULT_OPERATOR,
    OPERATORS_BY_TYPE,
    FilterDescriptor,
    FilterOperator,
    FilterValue,
    is_empty_value,
)
from .state import InteractionState, SortDirection
from .query import Condition, QuerySpec, SearchClause, SortClause
from .cache import (
    CachedResult,
    CacheKey,
    CacheScope,
    CacheStats,
    DistinctValueSet,
    PageResult,
    QueryFingerprint,
)

__all__ = [
    "ColumnDescriptor",
    "ColumnKind",
    "ColumnSource",
    "DirectField",
    "RelationPath",
    "ValueType",
    "DEFAULT_OPERATOR",
    "OPERATORS_BY_TYPE",
    "FilterDescriptor",
    "FilterOperator",
    "FilterValue",
    "is_empty_value",
    "InteractionState",
    "SortDirection",
    "Condition",
    "QuerySpec",
    "SearchClause",
    "SortClause",
    "CachedResult",
    "CacheKey",
    "CacheScope",
    "CacheStats",
    "DistinctValueSet",
    "PageResult",
    "QueryFingerprint",
]
