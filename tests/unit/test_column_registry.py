"""Unit tests for the ColumnRegistry."""

import pytest

from gridcore.application.schemas import ColumnConfig
from gridcore.application.services import ColumnRegistry
from gridcore.domain.entities import (
    ColumnKind,
    DirectField,
    FilterOperator,
    RelationPath,
    SortDirection,
    ValueType,
)
from gridcore.domain.exceptions import ConfigurationError


COLUMNS = [
    {"field": "name", "label": "Full name"},
    {"field": "status", "filterable": True, "value_type": "select"},
    {"field": "age", "filterable": True, "value_type": "NUMBER", "searchable": False},
    {"key": "department", "relation": "department:name", "sortable": False},
    {"relation": "tags:label", "filterable": True},
]


@pytest.fixture
def registry() -> ColumnRegistry:
    return ColumnRegistry.register(COLUMNS, model_identity="models:User", default_sort="name")


def test_resolve_returns_parsed_sources(registry: ColumnRegistry):
    assert registry.resolve("name") == DirectField("name")
    assert registry.resolve("department") == RelationPath("department", "name")
    assert registry.get("department").kind is ColumnKind.RELATION


def test_unknown_key_resolves_to_none(registry: ColumnRegistry):
    assert registry.resolve("nope") is None
    assert registry.resolve(None) is None
    assert "nope" not in registry


def test_relation_key_defaults_to_path(registry: ColumnRegistry):
    assert "tags:label" in registry
    assert registry.get("tags:label").label == "Tags Label"


def test_flags(registry: ColumnRegistry):
    assert registry.is_sortable("name")
    assert not registry.is_sortable("department")
    assert not registry.is_searchable("age")
    assert registry.is_filterable("status")
    assert not registry.is_filterable("name")
    assert not registry.is_filterable("missing")


def test_value_types_are_case_insensitive_and_default_to_text(registry: ColumnRegistry):
    assert registry.get("age").value_type is ValueType.NUMBER
    assert registry.get("tags:label").value_type is ValueType.TEXT
    assert registry.get("name").value_type is None


def test_filter_descriptor_lists_operators_for_type(registry: ColumnRegistry):
    descriptor = registry.filter_descriptor("age")
    assert descriptor.operators == frozenset(
        {
            FilterOperator.EQ,
            FilterOperator.NE,
            FilterOperator.GT,
            FilterOperator.LT,
            FilterOperator.GTE,
            FilterOperator.LTE,
        }
    )
    assert descriptor.default_operator is FilterOperator.EQ
    assert registry.filter_descriptor("name") is None


def test_relations(registry: ColumnRegistry):
    assert registry.relations() == frozenset({"department", "tags"})


def test_accepts_column_config_objects():
    registry = ColumnRegistry.register(
        [ColumnConfig(field="title")], model_identity="models:Project"
    )
    assert registry.keys() == ("title",)
    assert registry.default_sort_direction is SortDirection.ASC


def test_extra_display_keys_are_ignored():
    registry = ColumnRegistry.register(
        [{"field": "title", "template": "<b>{{ value }}</b>"}], model_identity="m:P"
    )
    assert len(registry) == 1


@pytest.mark.parametrize(
    "columns",
    [
        [{"relation": "department.manager:name"}],
        [{"relation": "department"}],
        [{"relation": "department:"}],
        [{"field": "name", "relation": "department:name"}],
        [{"label": "No source"}],
        [{"field": "name; drop table users"}],
        [{"field": "name"}, {"field": "name"}],
        [{"field": "name", "value_type": "money"}],
        [],
    ],
)
def test_invalid_declarations_raise(columns):
    with pytest.raises(ConfigurationError):
        ColumnRegistry.register(columns, model_identity="models:User")


def test_duplicate_key_error_names_the_column():
    with pytest.raises(ConfigurationError) as exc_info:
        ColumnRegistry.register(
            [{"field": "name"}, {"key": "name", "relation": "department:name"}],
            model_identity="models:User",
        )
    assert exc_info.value.column_key == "name"


def test_table_options_are_validated():
    with pytest.raises(ConfigurationError):
        ColumnRegistry.register(COLUMNS, model_identity="m:U", date_column="joined_on")
    with pytest.raises(ConfigurationError):
        ColumnRegistry.register(COLUMNS, model_identity="m:U", default_sort="department")
    with pytest.raises(ConfigurationError):
        ColumnRegistry.register(COLUMNS, model_identity="m:U", default_sort_direction="up")
    with pytest.raises(ConfigurationError):
        ColumnRegistry.register(COLUMNS, model_identity="m:U", count_aggregations=["tasks.x"])
