"""Domain entities for column filters."""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from gridcore.domain.entities.column import ValueType


class FilterOperator(str, Enum):
    CONTAINS = "contains"
    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    BETWEEN = "between"
    IN = "in"


OPERATORS_BY_TYPE: dict[ValueType, frozenset[FilterOperator]] = {
    ValueType.TEXT: frozenset({FilterOperator.CONTAINS}),
    ValueType.NUMBER: frozenset({
        FilterOperator.EQ,
        FilterOperator.NE,
        FilterOperator.GT,
        FilterOperator.LT,
        FilterOperator.GTE,
        FilterOperator.LTE,
    }),
    ValueType.DATE: frozenset({FilterOperator.EQ, FilterOperator.BETWEEN}),
    ValueType.SELECT: frozenset({FilterOperator.IN}),
}

DEFAULT_OPERATOR: dict[ValueType, FilterOperator] = {
    ValueType.TEXT: FilterOperator.CONTAINS,
    ValueType.NUMBER: FilterOperator.EQ,
    ValueType.DATE: FilterOperator.EQ,
    ValueType.SELECT: FilterOperator.IN,
}

FilterScalar = str | int | float | date
FilterValue = FilterScalar | tuple[FilterScalar, ...] | None


@dataclass(frozen=True)
class FilterDescriptor:
    """What a filter control may offer for one column, plus its current value."""

    column_key: str
    value_type: ValueType
    operators: frozenset[FilterOperator]
    value: FilterValue = None
    operator: FilterOperator | None = None

    @property
    def default_operator(self) -> FilterOperator:
        return DEFAULT_OPERATOR[self.value_type]

    def allows(self, operator: FilterOperator | str | None) -> bool:
        try:
            return FilterOperator(operator) in self.operators
        except ValueError:
            return False


def is_empty_value(value: object) -> bool:
    """Empty filter values mean "no condition", never "match empty string"."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (tuple, list, set, frozenset)):
        return all(is_empty_value(v) for v in value)
    return False
