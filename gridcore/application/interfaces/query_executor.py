"""Abstract query executor interface (port) for the underlying relational store."""

from abc import ABC, abstractmethod
from typing import Any

from gridcore.domain.entities import ColumnSource, PageResult, QuerySpec


class QueryExecutor(ABC):
    """Port for running assembled queries: implemented in the infrastructure layer."""

    @abstractmethod
    async def run(self, spec: QuerySpec) -> PageResult:
        """Fetch one page of rows plus the total row count.

        The count shares the row query's search/filter/date conditions but
        has no ordering or limit. Relations in ``spec.eager_loads`` are
        fetched in at most one batch each. Raises DataSourceError on failure.
        """
        ...

    @abstractmethod
    async def distinct_values(self, source: ColumnSource, limit: int) -> list[Any]:
        """Distinct non-null values of a column, at most ``limit`` of them.

        Relation-backed sources read the related entity, not the base entity.
        """
        ...
