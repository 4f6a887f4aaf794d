"""Table catalog: YAML table declarations compiled into registries.

Loaded once at application startup via the FastAPI lifespan. Every error is
a ConfigurationError, so a bad catalog stops the app before it serves.
"""

import importlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gridcore.application.schemas.table import TableConfig
from gridcore.application.services.column_registry import ColumnRegistry
from gridcore.domain.exceptions import ConfigurationError, UnknownTableError
from gridcore.infrastructure.database.query_executor import validate_registry_against_model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableEntry:
    table_id: str
    model: type
    registry: ColumnRegistry


class TableCatalog:
    """Registered tables by id."""

    def __init__(self, entries: list[TableEntry] | None = None):
        self._entries: dict[str, TableEntry] = {}
        for entry in entries or ():
            self.add(entry)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "TableCatalog":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"table catalog not found: {path}")
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        catalog = cls.from_dict(data)
        logger.info("Loaded %d tables from %s", len(catalog), path)
        return catalog

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableCatalog":
        tables = data.get("tables", [])
        if not isinstance(tables, list):
            raise ConfigurationError("'tables' must be a list of table definitions")
        catalog = cls()
        for raw in tables:
            try:
                config = TableConfig.model_validate(raw)
            except ValidationError as exc:
                raise ConfigurationError(f"invalid table definition: {exc}") from exc
            catalog.add(build_entry(config))
        return catalog

    def add(self, entry: TableEntry) -> None:
        if entry.table_id in self._entries:
            raise ConfigurationError(f"duplicate table id '{entry.table_id}'")
        self._entries[entry.table_id] = entry

    def get(self, table_id: str) -> TableEntry:
        entry = self._entries.get(table_id)
        if entry is None:
            raise UnknownTableError(table_id)
        return entry

    def table_ids(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, table_id: object) -> bool:
        return table_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def build_entry(config: TableConfig, model: type | None = None) -> TableEntry:
    """Register a table's columns and check them against its ORM model."""
    model = model or import_model(config.model)
    registry = ColumnRegistry.register(
        config.columns,
        model_identity=config.model,
        date_column=config.date_column,
        default_sort=config.default_sort,
        default_sort_direction=config.default_sort_direction,
        count_aggregations=config.count_aggregations,
    )
    validate_registry_against_model(registry, model)
    return TableEntry(table_id=config.table_id, model=model, registry=registry)


def import_model(path: str) -> type:
    """Resolve ``package.module:Class`` to the class object."""
    module_name, sep, class_name = path.partition(":")
    if not sep or not module_name or not class_name:
        raise ConfigurationError(f"model '{path}' must look like 'package.module:Class'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"cannot import model module '{module_name}': {exc}") from exc
    model = getattr(module, class_name, None)
    if not isinstance(model, type):
        raise ConfigurationError(f"module '{module_name}' has no class '{class_name}'")
    return model
