"""Domain entities for registered table columns."""

from dataclasses import dataclass
from enum import Enum


class ValueType(str, Enum):
    """Value-type of a filterable column; selects the allowed operators."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"


class ColumnKind(str, Enum):
    DIRECT = "direct"
    RELATION = "relation"


@dataclass(frozen=True)
class DirectField:
    """Column backed by a field of the base entity."""

    field: str

    @property
    def kind(self) -> ColumnKind:
        return ColumnKind.DIRECT

    @property
    def path(self) -> str:
        return self.field


@dataclass(frozen=True)
class RelationPath:
    """Column backed by an attribute of a directly related entity (one hop)."""

    relation: str
    attribute: str

    @property
    def kind(self) -> ColumnKind:
        return ColumnKind.RELATION

    @property
    def path(self) -> str:
        return f"{self.relation}:{self.attribute}"


ColumnSource = DirectField | RelationPath


@dataclass(frozen=True)
class ColumnDescriptor:
    """A validated column declaration. Immutable after registration."""

    key: str
    label: str
    source: ColumnSource
    sortable: bool = True
    searchable: bool = True
    filterable: bool = False
    value_type: ValueType | None = None

    @property
    def kind(self) -> ColumnKind:
        return self.source.kind

    @property
    def relation(self) -> str | None:
        if isinstance(self.source, RelationPath):
            return self.source.relation
        return None
