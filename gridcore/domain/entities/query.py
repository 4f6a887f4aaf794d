"""Domain entities describing an executable table query.

A QuerySpec only says *what* to fetch. Executors translate it into their own
query language; nothing here performs I/O.
"""

from dataclasses import dataclass, field
from typing import Any

from gridcore.domain.entities.column import ColumnSource, RelationPath
from gridcore.domain.entities.filter import FilterOperator
from gridcore.domain.entities.state import SortDirection


@dataclass(frozen=True)
class Condition:
    """A single filter condition on a column source.

    Relation-backed conditions must be executed as existence subqueries.
    """

    source: ColumnSource
    operator: FilterOperator
    value: Any

    @property
    def is_relation(self) -> bool:
        return isinstance(self.source, RelationPath)


@dataclass(frozen=True)
class SearchClause:
    """Case-insensitive substring match OR-combined over several sources."""

    term: str
    sources: tuple[ColumnSource, ...]

    def grouped_by_relation(self) -> tuple[tuple[str | None, tuple[ColumnSource, ...]], ...]:
        """Sources grouped so one existence subquery covers each relation."""
        groups: dict[str | None, list[ColumnSource]] = {}
        for source in self.sources:
            relation = source.relation if isinstance(source, RelationPath) else None
            groups.setdefault(relation, []).append(source)
        return tuple((relation, tuple(items)) for relation, items in groups.items())


@dataclass(frozen=True)
class SortClause:
    """Single-column ordering. Relation sorts use a correlated subquery."""

    source: ColumnSource
    direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class QuerySpec:
    """Everything an executor needs to fetch one page and its total count."""

    model: str
    offset: int
    limit: int
    search: SearchClause | None = None
    conditions: tuple[Condition, ...] = ()
    sort: SortClause | None = None
    eager_loads: tuple[str, ...] = ()
    count_aggregations: tuple[str, ...] = ()
    output_columns: tuple[tuple[str, ColumnSource], ...] = field(default=())

    @property
    def page_number(self) -> int:
        return self.offset // self.limit + 1 if self.limit else 1
