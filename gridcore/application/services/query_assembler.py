"""Query assembler: turns interaction state into an executable QuerySpec.

Pure: no I/O. Conditions on related records are emitted as relation-backed
Conditions, which executors must run as existence subqueries, and relation
sorts are emitted as SortClauses on a RelationPath, which executors must run
as one correlated subquery per base row. Neither may become a join.

Unknown or ineligible filter/sort keys are dropped with an
``UnknownKeyWarning`` (they are usually stale client state).
"""

import logging
import warnings
from collections.abc import Iterable
from datetime import date, datetime

from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.domain.entities import (
    Condition,
    FilterDescriptor,
    FilterOperator,
    InteractionState,
    QuerySpec,
    SearchClause,
    SortClause,
    ValueType,
    is_empty_value,
)
from gridcore.domain.exceptions import UnknownKeyWarning

logger = logging.getLogger(__name__)


class QueryAssembler:
    """Builds QuerySpecs from InteractionState + ColumnRegistry."""

    def build(
        self,
        state: InteractionState,
        registry: ColumnRegistry,
        *,
        visible_columns: Iterable[str] | None = None,
        eager_loads: Iterable[str] = (),
    ) -> QuerySpec:
        visible = self._visible(visible_columns, registry)

        conditions: list[Condition] = []
        column_condition = self._column_filter(state, registry)
        if column_condition is not None:
            conditions.append(column_condition)
        date_condition = self._date_range(state, registry)
        if date_condition is not None:
            conditions.append(date_condition)

        spec = QuerySpec(
            model=registry.model_identity,
            offset=state.offset,
            limit=state.page_size,
            search=self._search(state, registry, visible),
            conditions=tuple(conditions),
            sort=self._sort(state, registry),
            eager_loads=tuple(sorted(eager_loads)),
            count_aggregations=registry.count_aggregations,
            output_columns=tuple((key, registry.resolve(key)) for key in visible),
        )
        logger.debug(
            "Assembled query for %s: search=%r conditions=%d sort=%s eager=%s page=%d/%d",
            registry.model_identity,
            spec.search.term if spec.search else None,
            len(spec.conditions),
            spec.sort.source.path if spec.sort else None,
            spec.eager_loads,
            state.page_number,
            state.page_size,
        )
        return spec

    # ── Clauses ──────────────────────────────────────────────────────

    @staticmethod
    def _visible(visible_columns: Iterable[str] | None, registry: ColumnRegistry) -> tuple[str, ...]:
        if visible_columns is None:
            return registry.keys()
        return tuple(key for key in visible_columns if key in registry)

    @staticmethod
    def _search(
        state: InteractionState, registry: ColumnRegistry, visible: tuple[str, ...]
    ) -> SearchClause | None:
        term = (state.search_term or "").strip()
        if not term:
            return None
        sources = tuple(
            registry.resolve(key) for key in visible if registry.is_searchable(key)
        )
        if not sources:
            return None
        return SearchClause(term=term, sources=sources)

    def _column_filter(self, state: InteractionState, registry: ColumnRegistry) -> Condition | None:
        if state.filter_column is None or is_empty_value(state.filter_value):
            return None

        descriptor = registry.filter_descriptor(state.filter_column)
        if descriptor is None:
            _drop_key("filter", state.filter_column)
            return None

        operator = self._operator_for(descriptor, state.filter_operator)
        value = _coerce_value(descriptor.value_type, operator, state.filter_value)
        if value is None:
            logger.debug(
                "Dropping filter on %s: value %r is not a valid %s",
                descriptor.column_key,
                state.filter_value,
                descriptor.value_type.value,
            )
            return None

        return Condition(
            source=registry.resolve(descriptor.column_key),
            operator=operator,
            value=value,
        )

    @staticmethod
    def _operator_for(descriptor: FilterDescriptor, raw: str | None) -> FilterOperator:
        if raw is not None and descriptor.allows(raw):
            return FilterOperator(raw)
        if raw is not None:
            logger.debug(
                "Operator %r not allowed for %s (%s); using %s",
                raw,
                descriptor.column_key,
                descriptor.value_type.value,
                descriptor.default_operator.value,
            )
        return descriptor.default_operator

    @staticmethod
    def _date_range(state: InteractionState, registry: ColumnRegistry) -> Condition | None:
        if state.date_range_start is None or state.date_range_end is None:
            return None
        source = registry.resolve(registry.date_column)
        if source is None:
            return None
        return Condition(
            source=source,
            operator=FilterOperator.BETWEEN,
            value=(state.date_range_start, state.date_range_end),
        )

    @staticmethod
    def _sort(state: InteractionState, registry: ColumnRegistry) -> SortClause | None:
        if state.sort_column is not None:
            if registry.is_sortable(state.sort_column):
                return SortClause(
                    source=registry.resolve(state.sort_column),
                    direction=state.sort_direction,
                )
            _drop_key("sort", state.sort_column)

        if registry.default_sort is not None:
            return SortClause(
                source=registry.resolve(registry.default_sort),
                direction=registry.default_sort_direction,
            )
        return None


def _drop_key(purpose: str, key: str) -> None:
    message = f"Dropping {purpose} on unregistered or ineligible column key '{key}'"
    logger.debug(message)
    warnings.warn(message, UnknownKeyWarning, stacklevel=3)


def _coerce_value(value_type: ValueType, operator: FilterOperator, raw):
    """Normalize a raw filter value for its type; None means "drop"."""
    if value_type is ValueType.SELECT:
        values = raw if isinstance(raw, (tuple, list)) else (raw,)
        kept = tuple(v for v in values if not is_empty_value(v))
        return kept or None

    if isinstance(raw, (tuple, list)) and operator is not FilterOperator.BETWEEN:
        scalar = next((v for v in raw if not is_empty_value(v)), None)
        if scalar is None:
            return None
    else:
        scalar = raw

    if value_type is ValueType.NUMBER:
        if isinstance(scalar, bool):
            return None
        if isinstance(scalar, (int, float)):
            return scalar
        try:
            text = str(scalar).strip()
            return int(text) if text.lstrip("-").isdigit() else float(text)
        except (TypeError, ValueError):
            return None

    if value_type is ValueType.DATE:
        if operator is FilterOperator.BETWEEN:
            if not isinstance(raw, (tuple, list)) or len(raw) != 2:
                return None
            bounds = tuple(_parse_date(v) for v in raw)
            return bounds if None not in bounds else None
        return _parse_date(scalar)

    text = str(scalar).strip()
    return text or None


def _parse_date(raw) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip()[:10])
    except ValueError:
        return None
