"""Column/relation registry: the single source of truth for query identifiers.

Raw column declarations are validated once, at registration, into immutable
ColumnDescriptors. Every other component resolves keys through the registry
and only ever sees parsed ``DirectField`` / ``RelationPath`` values, so no
unvalidated string can reach a query.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from gridcore.application.schemas.table import ColumnConfig
from gridcore.domain.entities import (
    OPERATORS_BY_TYPE,
    ColumnDescriptor,
    ColumnSource,
    DirectField,
    FilterDescriptor,
    RelationPath,
    SortDirection,
    ValueType,
)
from gridcore.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ColumnRegistry:
    """Validated, immutable lookup table of a table's columns.

    Build it with :meth:`register`; the constructor assumes validated input.
    """

    def __init__(
        self,
        model_identity: str,
        columns: tuple[ColumnDescriptor, ...],
        *,
        date_column: str | None = None,
        default_sort: str | None = None,
        default_sort_direction: SortDirection = SortDirection.ASC,
        count_aggregations: tuple[str, ...] = (),
    ):
        self._model_identity = model_identity
        self._columns = columns
        self._by_key = {c.key: c for c in columns}
        self._date_column = date_column
        self._default_sort = default_sort
        self._default_sort_direction = default_sort_direction
        self._count_aggregations = count_aggregations

    # ── Registration ─────────────────────────────────────────────────

    @classmethod
    def register(
        cls,
        columns: Iterable[ColumnConfig | Mapping[str, Any]],
        *,
        model_identity: str,
        date_column: str | None = None,
        default_sort: str | None = None,
        default_sort_direction: str = "asc",
        count_aggregations: Iterable[str] = (),
    ) -> "ColumnRegistry":
        """Validate column declarations and return the registry handle.

        Raises ConfigurationError for malformed declarations, relation paths
        with more than one hop, duplicate keys and unrecognized value-types.
        """
        descriptors: list[ColumnDescriptor] = []
        seen: set[str] = set()

        for raw in columns:
            config = cls._coerce_config(raw)
            descriptor = cls._build_descriptor(config)
            if descriptor.key in seen:
                raise ConfigurationError("duplicate column key", column_key=descriptor.key)
            seen.add(descriptor.key)
            descriptors.append(descriptor)

        if not descriptors:
            raise ConfigurationError(f"table '{model_identity}' declares no columns")

        by_key = {d.key: d for d in descriptors}

        if date_column is not None and date_column not in by_key:
            raise ConfigurationError("date column is not a registered column", column_key=date_column)

        if default_sort is not None:
            sort_descriptor = by_key.get(default_sort)
            if sort_descriptor is None or not sort_descriptor.sortable:
                raise ConfigurationError(
                    "default sort must name a registered sortable column",
                    column_key=default_sort,
                )

        try:
            direction = SortDirection(str(default_sort_direction).lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"unrecognized default sort direction '{default_sort_direction}'"
            ) from exc

        aggregations = tuple(count_aggregations)
        for relation in aggregations:
            if not _IDENTIFIER.match(relation):
                raise ConfigurationError(f"invalid count aggregation relation '{relation}'")

        registry = cls(
            model_identity,
            tuple(descriptors),
            date_column=date_column,
            default_sort=default_sort,
            default_sort_direction=direction,
            count_aggregations=aggregations,
        )
        logger.info(
            "Registered table %s: columns=%d relations=%s",
            model_identity,
            len(descriptors),
            sorted(registry.relations()),
        )
        return registry

    @staticmethod
    def _coerce_config(raw: ColumnConfig | Mapping[str, Any]) -> ColumnConfig:
        if isinstance(raw, ColumnConfig):
            return raw
        try:
            return ColumnConfig.model_validate(raw)
        except ValidationError as exc:
            key = raw.get("key") if isinstance(raw, Mapping) else None
            raise ConfigurationError(f"invalid column declaration: {exc}", column_key=key) from exc

    @classmethod
    def _build_descriptor(cls, config: ColumnConfig) -> ColumnDescriptor:
        if config.field and config.relation:
            raise ConfigurationError(
                "declare either 'field' or 'relation', not both",
                column_key=config.key or config.field,
            )
        if not config.field and not config.relation:
            raise ConfigurationError(
                "column needs a 'field' or a 'relation'", column_key=config.key
            )

        source: ColumnSource
        if config.field:
            if not _IDENTIFIER.match(config.field):
                raise ConfigurationError(f"invalid field name '{config.field}'", column_key=config.key)
            source = DirectField(config.field)
        else:
            source = cls._parse_relation(config.relation or "", config.key)

        key = config.key or source.path
        if not key.strip():
            raise ConfigurationError("column key must not be blank")

        value_type = cls._parse_value_type(config.value_type, key)
        if config.filterable and value_type is None:
            value_type = ValueType.TEXT

        return ColumnDescriptor(
            key=key,
            label=config.label or key.replace("_", " ").replace(":", " ").title(),
            source=source,
            sortable=config.sortable,
            searchable=config.searchable,
            filterable=config.filterable,
            value_type=value_type,
        )

    @staticmethod
    def _parse_relation(relation: str, key: str | None) -> RelationPath:
        path, sep, attribute = relation.partition(":")
        if not sep or not path or not attribute:
            raise ConfigurationError(
                f"relation '{relation}' must look like 'relation:attribute'",
                column_key=key or relation,
            )
        if "." in path:
            raise ConfigurationError(
                f"relation '{relation}' has more than one hop; only direct relations are supported",
                column_key=key or relation,
            )
        if not _IDENTIFIER.match(path) or not _IDENTIFIER.match(attribute):
            raise ConfigurationError(
                f"relation '{relation}' contains an invalid identifier",
                column_key=key or relation,
            )
        return RelationPath(relation=path, attribute=attribute)

    @staticmethod
    def _parse_value_type(raw: str | None, key: str) -> ValueType | None:
        if raw is None:
            return None
        try:
            return ValueType(raw.lower())
        except ValueError as exc:
            allowed = ", ".join(v.value for v in ValueType)
            raise ConfigurationError(
                f"unrecognized value type '{raw}' (expected one of: {allowed})",
                column_key=key,
            ) from exc

    # ── Lookup ───────────────────────────────────────────────────────

    @property
    def model_identity(self) -> str:
        return self._model_identity

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return self._columns

    @property
    def date_column(self) -> str | None:
        return self._date_column

    @property
    def default_sort(self) -> str | None:
        return self._default_sort

    @property
    def default_sort_direction(self) -> SortDirection:
        return self._default_sort_direction

    @property
    def count_aggregations(self) -> tuple[str, ...]:
        return self._count_aggregations

    def keys(self) -> tuple[str, ...]:
        return tuple(c.key for c in self._columns)

    def get(self, key: str | None) -> ColumnDescriptor | None:
        if key is None:
            return None
        return self._by_key.get(key)

    def resolve(self, key: str | None) -> ColumnSource | None:
        """Parsed source of a registered key, or None when unknown."""
        descriptor = self.get(key)
        return descriptor.source if descriptor else None

    def is_sortable(self, key: str | None) -> bool:
        descriptor = self.get(key)
        return bool(descriptor and descriptor.sortable)

    def is_searchable(self, key: str | None) -> bool:
        descriptor = self.get(key)
        return bool(descriptor and descriptor.searchable)

    def is_filterable(self, key: str | None) -> bool:
        descriptor = self.get(key)
        return bool(descriptor and descriptor.filterable)

    def filter_descriptor(self, key: str | None) -> FilterDescriptor | None:
        descriptor = self.get(key)
        if descriptor is None or not descriptor.filterable or descriptor.value_type is None:
            return None
        return FilterDescriptor(
            column_key=descriptor.key,
            value_type=descriptor.value_type,
            operators=OPERATORS_BY_TYPE[descriptor.value_type],
        )

    def relations(self) -> frozenset[str]:
        return frozenset(c.relation for c in self._columns if c.relation)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._columns)
