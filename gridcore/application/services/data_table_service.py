"""Application service (use case) for one user's view of one table."""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from typing import Any

from gridcore.application.interfaces import QueryExecutor
from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.application.services.distinct_value_cache import DistinctValueCache
from gridcore.application.services.eager_load_planner import EagerLoadPlanner
from gridcore.application.services.result_cache import ResultCache
from gridcore.domain.entities import (
    CachedResult,
    FilterDescriptor,
    FilterOperator,
    FilterValue,
    InteractionState,
    SortDirection,
)

logger = logging.getLogger(__name__)


class DataTableService:
    """Holds the interaction state of one table session and serves its pages.

    State is only changed through the operations below; every change except a
    page change sends the user back to page 1. Executors are passed per call
    because they are bound to a request-scoped database session.
    """

    def __init__(
        self,
        registry: ColumnRegistry,
        result_cache: ResultCache,
        distinct_cache: DistinctValueCache,
        *,
        planner: EagerLoadPlanner | None = None,
        default_page_size: int = 10,
        max_page_size: int = 500,
        visible_columns: Iterable[str] | None = None,
    ):
        self._registry = registry
        self._result_cache = result_cache
        self._distinct_cache = distinct_cache
        self._planner = planner or EagerLoadPlanner()
        self._max_page_size = max_page_size
        self._state = InteractionState(
            sort_column=registry.default_sort,
            sort_direction=registry.default_sort_direction,
            page_size=min(default_page_size, max_page_size),
        )
        self._visible: tuple[str, ...] = self._known(visible_columns)

    @property
    def registry(self) -> ColumnRegistry:
        return self._registry

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def visible_columns(self) -> tuple[str, ...]:
        return self._visible

    @property
    def result_cache(self) -> ResultCache:
        return self._result_cache

    # ── Reads ────────────────────────────────────────────────────────

    async def get_page(self, executor: QueryExecutor) -> CachedResult:
        return await self._result_cache.get_or_compute(
            self._state, self._registry, executor, visible_columns=self._visible
        )

    async def get_distinct_values(self, column_key: str, executor: QueryExecutor) -> list[Any]:
        return await self._distinct_cache.get_distinct_values(column_key, self._registry, executor)

    def plan_relations(self, visible_columns: Iterable[str] | None = None) -> frozenset[str]:
        """Relations to batch-load for the session view, or for ``visible_columns``.

        Passing ``visible_columns`` previews a view without changing the session.
        """
        visible = self._visible if visible_columns is None else tuple(visible_columns)
        return self._planner.plan_relations(visible, self._registry, self._state)

    def active_filter(self) -> FilterDescriptor | None:
        """Descriptor for the filter control of the selected filter column."""
        descriptor = self._registry.filter_descriptor(self._state.filter_column)
        if descriptor is None:
            return None
        operator = (
            FilterOperator(self._state.filter_operator)
            if descriptor.allows(self._state.filter_operator)
            else descriptor.default_operator
        )
        return replace(descriptor, value=self._state.filter_value, operator=operator)

    # ── Invalidation ─────────────────────────────────────────────────

    def invalidate(self) -> int:
        return self._result_cache.invalidate()

    def clear_distinct_values_cache(self) -> int:
        return self._distinct_cache.clear_distinct_values_cache()

    def refresh(self) -> int:
        removed = self.invalidate()
        self.clear_distinct_values_cache()
        return removed

    # ── Interaction operations ───────────────────────────────────────

    def set_search(self, term: str | None) -> InteractionState:
        return self._update(search_term=(term or "").strip())

    def clear_search(self) -> InteractionState:
        return self._update(search_term="")

    def set_filter_column(self, column_key: str | None) -> InteractionState:
        if column_key != self._state.filter_column:
            self.clear_distinct_values_cache()
        return self._update(filter_column=column_key, filter_operator=None, filter_value=None)

    def set_filter(self, value: FilterValue, operator: str | None = None) -> InteractionState:
        return self._update(filter_value=value, filter_operator=operator)

    def clear_filters(self) -> InteractionState:
        return self._update(
            filter_column=None,
            filter_operator=None,
            filter_value=None,
            date_range_start=None,
            date_range_end=None,
        )

    def set_date_range(self, start: date | None, end: date | None) -> InteractionState:
        if start is not None and end is not None and start > end:
            start, end = end, start
        return self._update(date_range_start=start, date_range_end=end)

    def sort_by(self, column_key: str) -> InteractionState:
        """Header click: same column toggles the direction, a new one sorts ascending."""
        if not self._registry.is_sortable(column_key):
            logger.debug("Ignoring sort on unsortable column %r", column_key)
            return self._state
        if column_key == self._state.sort_column:
            direction = self._state.sort_direction.toggled()
        else:
            direction = SortDirection.ASC
        return self._update(sort_column=column_key, sort_direction=direction)

    def set_sort(self, column_key: str | None, direction: SortDirection | str = SortDirection.ASC) -> InteractionState:
        return self._update(sort_column=column_key, sort_direction=SortDirection(direction))

    def set_page(self, page_number: int) -> InteractionState:
        self._state = replace(self._state, page_number=max(1, int(page_number)))
        return self._state

    def set_page_size(self, page_size: int) -> InteractionState:
        size = min(max(1, int(page_size)), self._max_page_size)
        return self._update(page_size=size)

    def set_visible_columns(self, column_keys: Iterable[str] | None) -> tuple[str, ...]:
        self._visible = self._known(column_keys)
        self._state = replace(self._state, page_number=1)
        return self._visible

    def apply_state(
        self, state: InteractionState, visible_columns: Iterable[str] | None = None
    ) -> InteractionState:
        """Replace the whole state, e.g. from a stateless HTTP request."""
        if state.filter_column != self._state.filter_column:
            self.clear_distinct_values_cache()
        if state.page_size > self._max_page_size:
            state = replace(state, page_size=self._max_page_size)
        self._state = state
        self._visible = self._known(visible_columns)
        return self._state

    # ── Private helpers ──────────────────────────────────────────────

    def _update(self, **changes: Any) -> InteractionState:
        self._state = replace(self._state, page_number=1, **changes)
        return self._state

    def _known(self, column_keys: Iterable[str] | None) -> tuple[str, ...]:
        if column_keys is None:
            return self._registry.keys()
        keys = tuple(k for k in dict.fromkeys(column_keys) if k in self._registry)
        return keys or self._registry.keys()
