"""Concrete QueryExecutor backed by SQLAlchemy async sessions.

Translates a QuerySpec into one row statement and one count statement that
share the same WHERE clause. Relation-backed conditions and searches become
EXISTS subqueries (``relationship.any()`` / ``has()``), relation sorts become
correlated scalar subqueries and visible relations are loaded with
``selectinload``, one extra statement per relation regardless of page size.
No condition, search or sort ever joins the base query, so a base row is returned
at most once.
"""

from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import String, and_, cast, func, inspect as sa_inspect, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import RelationshipProperty, aliased, raiseload, selectinload
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.types import Date, DateTime

from gridcore.application.interfaces import QueryExecutor
from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.domain.entities import (
    ColumnSource,
    Condition,
    DirectField,
    FilterOperator,
    PageResult,
    QuerySpec,
    RelationPath,
    SearchClause,
    SortClause,
    SortDirection,
)
from gridcore.domain.exceptions import ConfigurationError, DataSourceError
from gridcore.infrastructure.logging.colored_logger import QueryStage, QueryTraceLogger


def model_identity(model: type) -> str:
    """Import path of an ORM class, ``package.module:Class``."""
    return f"{model.__module__}:{model.__qualname__}"


class SQLAlchemyQueryExecutor(QueryExecutor):
    """Implements the QueryExecutor port for one mapped ORM class."""

    def __init__(self, session: AsyncSession, model: type):
        self._session = session
        self._model = model
        self._mapper = sa_inspect(model)
        self._trace = QueryTraceLogger()

        pk_columns = self._mapper.primary_key
        self._pk_attrs = [
            getattr(model, self._mapper.get_property_by_column(col).key) for col in pk_columns
        ]
        self._id_key = self._mapper.get_property_by_column(pk_columns[0]).key

    # ── Port implementation ──────────────────────────────────────────

    async def run(self, spec: QuerySpec) -> PageResult:
        where = self._where(spec)
        count_labels = [
            self._count_subquery(relation).label(f"{relation}_count")
            for relation in spec.count_aggregations
        ]

        stmt = select(self._model).add_columns(*count_labels).where(*where)
        stmt = stmt.order_by(*self._order_by(spec.sort))
        stmt = stmt.offset(spec.offset).limit(spec.limit)
        stmt = stmt.options(
            *(selectinload(self._relationship_attr(rel)) for rel in spec.eager_loads),
            raiseload("*"),
        )
        count_stmt = select(func.count()).select_from(self._model).where(*where)

        name = self._model.__name__
        try:
            with self._trace.timed_step(
                QueryStage.ROWS,
                f"{name} page {spec.page_number}",
                offset=spec.offset,
                limit=spec.limit,
                conditions=len(where),
            ):
                if spec.eager_loads:
                    self._trace.step(QueryStage.EAGER, f"batch-loading {list(spec.eager_loads)}")
                result = await self._session.execute(stmt)
                records = result.all()

            with self._trace.timed_step(QueryStage.COUNT, f"{name} total"):
                total = (await self._session.execute(count_stmt)).scalar_one()
        except SQLAlchemyError as exc:
            raise DataSourceError("row query", exc) from exc

        loaded = set(spec.eager_loads)
        rows = []
        for record in records:
            entity = record[0]
            row = self._to_row(entity, spec.output_columns, loaded)
            for relation, count in zip(spec.count_aggregations, record[1:]):
                row[f"{relation}_count"] = count
            rows.append(row)
        self._trace.detail(f"{name}: {len(rows)} rows of {total}")
        return PageResult(rows=rows, total_count=int(total))

    async def distinct_values(self, source: ColumnSource, limit: int) -> list[Any]:
        attr = self._target_attr(source)
        stmt = (
            select(attr)
            .where(attr.is_not(None))
            .distinct()
            .order_by(attr)
            .limit(limit)
        )
        try:
            with self._trace.timed_step(QueryStage.DISTINCT, source.path, limit=limit):
                result = await self._session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise DataSourceError(f"distinct values of {source.path}", exc) from exc

    # ── WHERE ────────────────────────────────────────────────────────

    def _where(self, spec: QuerySpec) -> list[ColumnElement]:
        clauses: list[ColumnElement] = []
        if spec.search is not None:
            clauses.append(self._search(spec.search))
        for condition in spec.conditions:
            clauses.append(self._condition(condition))
        return clauses

    def _search(self, search: SearchClause) -> ColumnElement:
        branches = []
        for relation, sources in search.grouped_by_relation():
            if relation is None:
                branches.extend(_icontains(self._target_attr(s), search.term) for s in sources)
                continue
            related = self._related_entity(relation)
            matches = [_icontains(getattr(related, s.attribute), search.term) for s in sources]
            branches.append(self._exists(relation, related, or_(*matches)))
        return or_(*branches)

    def _condition(self, condition: Condition) -> ColumnElement:
        source = condition.source
        if isinstance(source, DirectField):
            return _compare(getattr(self._model, source.field), condition.operator, condition.value)
        related = self._related_entity(source.relation)
        clause = _compare(getattr(related, source.attribute), condition.operator, condition.value)
        return self._exists(source.relation, related, clause)

    def _exists(self, relation: str, related, criterion: ColumnElement) -> ColumnElement:
        attr = self._relationship_attr(relation).of_type(related)
        if attr.property.uselist:
            return attr.any(criterion)
        return attr.has(criterion)

    # ── ORDER BY ─────────────────────────────────────────────────────

    def _order_by(self, sort: SortClause | None) -> list[ColumnElement]:
        # Primary key last so equal sort values keep a stable page order.
        tiebreak = [attr.asc() for attr in self._pk_attrs]
        if sort is None:
            return tiebreak
        if isinstance(sort.source, RelationPath):
            expr = self._relation_sort_subquery(sort.source, sort.direction)
        else:
            expr = self._target_attr(sort.source)
        ordered = expr.desc() if sort.direction is SortDirection.DESC else expr.asc()
        return [ordered, *tiebreak]

    def _relation_sort_subquery(self, source: RelationPath, direction: SortDirection):
        """One value per base row: min() ascending, max() descending."""
        related = self._related_entity(source.relation)
        aggregate = func.max if direction is SortDirection.DESC else func.min
        stmt = select(aggregate(getattr(related, source.attribute)))
        return self._correlated(stmt, source.relation, related)

    def _count_subquery(self, relation: str):
        return self._correlated(select(func.count()), relation, self._related_entity(relation))

    def _correlated(self, stmt, relation: str, related):
        """Scalar subquery over ``relation`` matched to the outer row by primary key.

        Both ends are aliased, so a relationship back to the same model keeps
        its own FROM inside the subquery.
        """
        base = aliased(self._model)
        stmt = stmt.select_from(base).join(getattr(base, relation).of_type(related))
        stmt = stmt.where(*(getattr(base, attr.key) == attr for attr in self._pk_attrs))
        return stmt.correlate(self._model).scalar_subquery()

    # ── Resolution ───────────────────────────────────────────────────

    def _relationship(self, name: str) -> RelationshipProperty:
        prop = self._mapper.relationships.get(name)
        if prop is None:
            raise ConfigurationError(f"{self._model.__name__} has no relationship '{name}'")
        return prop

    def _relationship_attr(self, name: str):
        self._relationship(name)
        return getattr(self._model, name)

    def _related_entity(self, relation: str):
        return aliased(self._relationship(relation).mapper.class_)

    def _target_attr(self, source: ColumnSource):
        if isinstance(source, DirectField):
            return getattr(self._model, source.field)
        prop = self._relationship(source.relation)
        return getattr(prop.mapper.class_, source.attribute)

    # ── Row mapping ──────────────────────────────────────────────────

    def _to_row(
        self,
        entity: Any,
        output_columns: tuple[tuple[str, ColumnSource], ...],
        loaded: set[str],
    ) -> dict[str, Any]:
        row: dict[str, Any] = {"id": getattr(entity, self._id_key)}
        for key, source in output_columns:
            if isinstance(source, DirectField):
                row[key] = getattr(entity, source.field)
            elif source.relation in loaded:
                row[key] = _related_value(getattr(entity, source.relation), source.attribute)
            else:
                row[key] = None
        return row


def _related_value(related: Any, attribute: str) -> Any:
    if related is None:
        return None
    if isinstance(related, (list, tuple, set)):
        return [getattr(item, attribute) for item in related]
    return getattr(related, attribute)


def _icontains(attr, term: str) -> ColumnElement:
    expr = attr if isinstance(attr.type, String) else cast(attr, String)
    return expr.icontains(term, autoescape=True)


def _compare(attr, operator: FilterOperator, value: Any) -> ColumnElement:
    if operator is FilterOperator.CONTAINS:
        return _icontains(attr, str(value))
    if operator is FilterOperator.IN:
        return attr.in_(list(value))
    if operator is FilterOperator.BETWEEN:
        start, end = value
        return _day_range(attr, start, end)
    if operator is FilterOperator.EQ and isinstance(value, date) and not isinstance(value, datetime):
        return _day_range(attr, value, value)
    if operator is FilterOperator.EQ:
        return attr == value
    if operator is FilterOperator.NE:
        return attr != value
    if operator is FilterOperator.GT:
        return attr > value
    if operator is FilterOperator.LT:
        return attr < value
    if operator is FilterOperator.GTE:
        return attr >= value
    if operator is FilterOperator.LTE:
        return attr <= value
    raise ValueError(f"Unsupported operator {operator!r}")


def _day_range(attr, start: date, end: date) -> ColumnElement:
    """Inclusive on whole days: start <= value < end + 1 day."""
    upper = end + timedelta(days=1)
    if isinstance(attr.type, DateTime):
        return and_(attr >= _as_datetime(start), attr < _as_datetime(upper))
    return and_(attr >= start, attr < upper)


def _as_datetime(day: date) -> datetime:
    if isinstance(day, datetime):
        return day
    return datetime.combine(day, time.min)


# ── Startup validation ───────────────────────────────────────────────


def validate_registry_against_model(registry: ColumnRegistry, model: type) -> None:
    """Check every registered field/relation/attribute against the ORM mapper.

    Raises ConfigurationError at startup, so requests never reach a column
    the model does not have.
    """
    mapper = sa_inspect(model)
    column_attrs = {prop.key for prop in mapper.column_attrs}
    relationships = mapper.relationships

    def _check_source(key: str, source: ColumnSource) -> Any:
        if isinstance(source, DirectField):
            if source.field not in column_attrs:
                raise ConfigurationError(
                    f"{model.__name__} has no column attribute '{source.field}'",
                    column_key=key,
                )
            return mapper.column_attrs[source.field].columns[0].type
        prop = relationships.get(source.relation)
        if prop is None:
            raise ConfigurationError(
                f"{model.__name__} has no relationship '{source.relation}'",
                column_key=key,
            )
        target_attrs = {p.key for p in prop.mapper.column_attrs}
        if source.attribute not in target_attrs:
            raise ConfigurationError(
                f"{prop.mapper.class_.__name__} has no column attribute '{source.attribute}'",
                column_key=key,
            )
        return prop.mapper.column_attrs[source.attribute].columns[0].type

    for descriptor in registry.columns:
        _check_source(descriptor.key, descriptor.source)

    if registry.date_column is not None:
        descriptor = registry.get(registry.date_column)
        column_type = _check_source(descriptor.key, descriptor.source)
        if not isinstance(column_type, (Date, DateTime)):
            raise ConfigurationError(
                f"date column must be a Date or DateTime, not {type(column_type).__name__}",
                column_key=descriptor.key,
            )

    for relation in registry.count_aggregations:
        prop = relationships.get(relation)
        if prop is None or not prop.uselist:
            raise ConfigurationError(
                f"count aggregation '{relation}' is not a to-many relationship of {model.__name__}"
            )
