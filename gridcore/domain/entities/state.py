"""Domain entity for the interaction state of one table session."""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from gridcore.domain.entities.filter import FilterValue


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def toggled(self) -> "SortDirection":
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


@dataclass(frozen=True)
class InteractionState:
    """Everything the user has chosen that affects which rows are fetched.

    Sole input to query construction. Frozen: sessions replace it through
    explicit operations so every change shows up in the fingerprint.
    """

    search_term: str = ""
    filter_column: str | None = None
    filter_operator: str | None = None
    filter_value: FilterValue = None
    date_range_start: date | None = None
    date_range_end: date | None = None
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.ASC
    page_number: int = 1
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.page_number < 1:
            raise ValueError(f"page_number must be >= 1, got {self.page_number}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")
        if isinstance(self.filter_value, list):
            object.__setattr__(self, "filter_value", tuple(self.filter_value))
        if not isinstance(self.sort_direction, SortDirection):
            object.__setattr__(self, "sort_direction", SortDirection(self.sort_direction))

    @property
    def offset(self) -> int:
        return (self.page_number - 1) * self.page_size

    def query_affecting_fields(self) -> dict[str, Any]:
        """Serializable view of every field that changes the executed query."""
        value = self.filter_value
        if isinstance(value, tuple):
            value = [_serialize_scalar(v) for v in value]
        else:
            value = _serialize_scalar(value)
        return {
            "search_term": self.search_term,
            "filter_column": self.filter_column,
            "filter_operator": self.filter_operator,
            "filter_value": value,
            "date_range_start": _serialize_scalar(self.date_range_start),
            "date_range_end": _serialize_scalar(self.date_range_end),
            "sort_column": self.sort_column,
            "sort_direction": self.sort_direction.value,
            "page_number": self.page_number,
            "page_size": self.page_size,
        }


def _serialize_scalar(value: Any) -> Any:
    # Type tag keeps 1 and "1" apart once serialized.
    if value is None:
        return None
    if isinstance(value, date):
        return ["date", value.isoformat()]
    return [type(value).__name__, value]
