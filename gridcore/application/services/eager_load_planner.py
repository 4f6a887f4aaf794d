"""Eager-load planner: which relations the current view needs batched."""

import logging
from collections.abc import Iterable

from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.domain.entities import InteractionState, is_empty_value

logger = logging.getLogger(__name__)


class EagerLoadPlanner:
    """Computes the minimal relation set for visible columns + active targets.

    The last plan is memoized against its inputs and recomputed as soon as
    the visible columns or the active search/filter target change.
    """

    def __init__(self) -> None:
        self._last_inputs: tuple | None = None
        self._last_plan: frozenset[str] = frozenset()

    @property
    def last_plan(self) -> frozenset[str]:
        return self._last_plan

    def plan_relations(
        self,
        visible_columns: Iterable[str] | None,
        registry: ColumnRegistry,
        state: InteractionState | None = None,
    ) -> frozenset[str]:
        visible = _visible_keys(visible_columns, registry)
        targets = _active_targets(state, registry)
        inputs = (registry.model_identity, visible, targets)
        if inputs == self._last_inputs:
            return self._last_plan

        relations = set()
        for key in (*visible, *targets):
            descriptor = registry.get(key)
            if descriptor is not None and descriptor.relation:
                relations.add(descriptor.relation)

        plan = frozenset(relations)
        if plan != self._last_plan:
            logger.debug("Eager-load plan for %s: %s", registry.model_identity, sorted(plan))
        self._last_inputs = inputs
        self._last_plan = plan
        return plan


def _visible_keys(visible_columns: Iterable[str] | None, registry: ColumnRegistry) -> tuple[str, ...]:
    if visible_columns is None:
        return registry.keys()
    return tuple(key for key in visible_columns if key in registry)


def _active_targets(state: InteractionState | None, registry: ColumnRegistry) -> tuple[str, ...]:
    if state is None:
        return ()
    targets: list[str] = []
    if registry.is_filterable(state.filter_column) and not is_empty_value(state.filter_value):
        targets.append(state.filter_column)
    if (
        registry.date_column
        and state.date_range_start is not None
        and state.date_range_end is not None
    ):
        targets.append(registry.date_column)
    return tuple(targets)
