"""Tests for scenarios and the scenario registry."""

from __future__ import annotations

import pytest

from pg_benchmark.exceptions import ConfigurationError, DuplicateScenarioError
from pg_benchmark.registry import GROUP_ORDER, Scenario, ScenarioGroup, ScenarioRegistry, scenario_id


async def noop() -> None:
    pass


def make(name: str, library: str = "asyncpg", group: str = "select", parameter=None, **fields) -> Scenario:
    return Scenario(
        id=scenario_id(name, library, parameter),
        label=name.replace("_", " "),
        group=group,
        workload=noop,
        library=library,
        parameter=parameter,
        **fields,
    )


class TestScenario:
    """Scenario construction and validation."""

    def test_id_format(self):
        assert scenario_id("select_users_limit", "psycopg") == "select_users_limit/psycopg"
        assert scenario_id("select_users_limit", "psycopg", 100) == "select_users_limit/psycopg/100"

    def test_defaults(self):
        scenario = make("select_user_by_id")
        assert scenario.group is ScenarioGroup.SELECT
        assert scenario.name == "select_user_by_id"
        assert scenario.concurrency == 1
        assert not scenario.is_concurrent

    def test_group_is_parsed_case_insensitively(self):
        assert make("x", group="HEAVY").group is ScenarioGroup.HEAVY

    def test_unknown_group(self):
        with pytest.raises(ConfigurationError):
            make("x", group="delete")

    @pytest.mark.parametrize(
        "fields",
        [
            {"concurrency": 0},
            {"iterations": 0},
            {"warmup": -1},
            {"ops_per_unit": 0},
            {"elements": 0},
        ],
    )
    def test_invalid_fields(self, fields):
        with pytest.raises(ConfigurationError):
            make("x", **fields)

    def test_scenarios_are_immutable(self):
        scenario = make("x")
        with pytest.raises(AttributeError):
            scenario.iterations = 5  # type: ignore[misc]

    def test_group_order(self):
        assert [g.value for g in GROUP_ORDER] == [
            "insert", "select", "update", "join", "aggregate", "transaction", "concurrent", "heavy",
        ]
        assert ScenarioGroup.INSERT.order < ScenarioGroup.HEAVY.order


class TestRegistry:
    """Registration and selection."""

    def test_register_and_get(self):
        registry = ScenarioRegistry()
        scenario = registry.register(make("select_user_by_id"))
        assert registry.get(scenario.id) is scenario
        assert scenario.id in registry
        assert len(registry) == 1

    def test_duplicate_id_rejected_and_registry_unchanged(self):
        registry = ScenarioRegistry()
        first = registry.register(make("select_user_by_id"))
        registry.register(make("update_user", group="update"))

        with pytest.raises(DuplicateScenarioError) as exc_info:
            registry.register(make("select_user_by_id", iterations=5))

        assert exc_info.value.scenario_id == first.id
        assert len(registry) == 2
        assert registry.get(first.id) is first
        assert [s.id for s in registry] == ["select_user_by_id/asyncpg", "update_user/asyncpg"]

    def test_add_builds_scenario(self):
        registry = ScenarioRegistry()
        scenario = registry.add(id="agg/asyncpg", label="Aggregate", group="aggregate", workload=noop)
        assert scenario.group is ScenarioGroup.AGGREGATE
        assert registry.position("agg/asyncpg") == 0

    def test_iteration_keeps_registration_order(self):
        registry = ScenarioRegistry([make("b"), make("a"), make("c")])
        assert [s.name for s in registry] == ["b", "a", "c"]
        assert registry.position("c/asyncpg") == 2

    def test_select_without_filters_returns_everything(self):
        registry = ScenarioRegistry([make("a"), make("b", group="insert")])
        assert len(registry.select()) == 2

    def test_select_by_group(self):
        registry = ScenarioRegistry([make("a", group="insert"), make("b"), make("c", group="insert")])
        assert [s.name for s in registry.select(group="insert")] == ["a", "c"]
        assert [s.name for s in registry.select(group=ScenarioGroup.SELECT)] == ["b"]

    def test_select_by_pattern(self):
        registry = ScenarioRegistry(
            [make("select_users_limit", parameter=10), make("select_users_limit", parameter=100), make("update_user")]
        )
        assert len(registry.select(pattern="USERS_LIMIT")) == 2
        assert [s.id for s in registry.select(pattern="limit/asyncpg/100")] == ["select_users_limit/asyncpg/100"]

    def test_select_by_library(self):
        registry = ScenarioRegistry([make("a", "asyncpg"), make("a", "psycopg"), make("a", "sqlalchemy")])
        selected = registry.select(libraries=["psycopg", "sqlalchemy"])
        assert [s.library for s in selected] == ["psycopg", "sqlalchemy"]

    def test_select_combines_filters(self):
        registry = ScenarioRegistry(
            [make("a", "asyncpg", "insert"), make("a", "psycopg", "insert"), make("b", "psycopg", "select")]
        )
        assert [s.id for s in registry.select(group="insert", libraries=["psycopg"])] == ["a/psycopg"]

    def test_select_unknown_group(self):
        with pytest.raises(ConfigurationError):
            ScenarioRegistry().select(group="nope")

    def test_groups_in_report_order(self):
        registry = ScenarioRegistry([make("h", group="heavy"), make("i", group="insert"), make("j", group="join")])
        assert registry.groups() == [ScenarioGroup.INSERT, ScenarioGroup.JOIN, ScenarioGroup.HEAVY]

    def test_max_concurrency(self):
        assert ScenarioRegistry().max_concurrency() == 1
        registry = ScenarioRegistry([make("a"), make("c", group="concurrent", concurrency=50)])
        assert registry.max_concurrency() == 50
        assert registry.max_concurrency(registry.select(group="select")) == 1

    def test_registries_are_independent(self):
        one = ScenarioRegistry([make("a")])
        two = ScenarioRegistry()
        two.register(make("a"))
        assert len(one) == 1 and len(two) == 1
