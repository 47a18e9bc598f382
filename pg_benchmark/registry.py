"""Scenario definitions and the registry that owns them."""

from __future__ import annotations

from collections.abc import Awaitable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .concurrency import Workload
from .exceptions import ConfigurationError, DuplicateScenarioError

Hook = Callable[[], Awaitable[Any]]


class ScenarioGroup(str, Enum):
    """Benchmark categories, in report order."""

    INSERT = "insert"
    SELECT = "select"
    UPDATE = "update"
    JOIN = "join"
    AGGREGATE = "aggregate"
    TRANSACTION = "transaction"
    CONCURRENT = "concurrent"
    HEAVY = "heavy"

    @property
    def order(self) -> int:
        return GROUP_ORDER.index(self)

    @classmethod
    def parse(cls, value: str | ScenarioGroup) -> ScenarioGroup:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            names = ", ".join(g.value for g in cls)
            raise ConfigurationError(f"Unknown scenario group {value!r} (expected one of: {names})") from None


GROUP_ORDER: tuple[ScenarioGroup, ...] = tuple(ScenarioGroup)


def scenario_id(name: str, library: str, parameter: int | str | None = None) -> str:
    """Build the canonical id ``name/library[/parameter]``."""
    if parameter is None:
        return f"{name}/{library}"
    return f"{name}/{library}/{parameter}"


@dataclass(frozen=True)
class Scenario:
    """
    A named benchmark unit: one workload of one client library plus the
    parameters it is executed with.

    Scenarios with concurrency > 1 are sampled per batch by the concurrency
    driver; all others are sampled per workload call.
    """

    id: str
    label: str
    group: ScenarioGroup
    workload: Workload
    concurrency: int = 1
    iterations: int = 100
    warmup: int = 3
    name: str = ""
    library: str = ""
    parameter: int | str | None = None
    ops_per_unit: int = 1
    elements: int = 1
    threaded: bool = False
    mutates: bool = False
    setup: Hook | None = None
    teardown: Hook | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Scenario id must not be empty")
        if self.concurrency < 1:
            raise ConfigurationError(f"{self.id}: concurrency must be >= 1")
        if self.iterations < 1:
            raise ConfigurationError(f"{self.id}: iterations must be >= 1")
        if self.warmup < 0:
            raise ConfigurationError(f"{self.id}: warmup must be >= 0")
        if self.ops_per_unit < 1:
            raise ConfigurationError(f"{self.id}: ops_per_unit must be >= 1")
        if self.elements < 1:
            raise ConfigurationError(f"{self.id}: elements must be >= 1")
        object.__setattr__(self, "group", ScenarioGroup.parse(self.group))
        if not self.name:
            object.__setattr__(self, "name", self.id.split("/", 1)[0])

    @property
    def is_concurrent(self) -> bool:
        return self.concurrency > 1


class ScenarioRegistry:
    """
    Ordered mapping of scenario id to Scenario.

    Built explicitly by the entry point and passed to the harness; several
    independent registries can live in one process.
    """

    def __init__(self, scenarios: Iterable[Scenario] = ()) -> None:
        self._scenarios: dict[str, Scenario] = {}
        self._positions: dict[str, int] = {}
        for scenario in scenarios:
            self.register(scenario)

    def register(self, scenario: Scenario) -> Scenario:
        """
        Add a scenario.

        Raises:
            DuplicateScenarioError: If the id is taken. The registry is left
                unchanged.
        """
        if scenario.id in self._scenarios:
            raise DuplicateScenarioError(scenario.id)
        self._positions[scenario.id] = len(self._scenarios)
        self._scenarios[scenario.id] = scenario
        return scenario

    def add(self, **fields: Any) -> Scenario:
        """Create and register a Scenario from keyword arguments."""
        return self.register(Scenario(**fields))

    def get(self, scenario_id: str) -> Scenario:
        return self._scenarios[scenario_id]

    def position(self, scenario_id: str) -> int:
        """Registration index of a scenario (used for stable report order)."""
        return self._positions[scenario_id]

    def select(
        self,
        group: ScenarioGroup | str | None = None,
        pattern: str | None = None,
        libraries: Iterable[str] | None = None,
    ) -> list[Scenario]:
        """
        Return registered scenarios matching every given filter, in
        registration order. No filters selects everything.

        Args:
            group: Only scenarios of this group.
            pattern: Case-insensitive substring of the scenario id.
            libraries: Only scenarios of these client libraries.
        """
        wanted_group = ScenarioGroup.parse(group) if group is not None else None
        needle = pattern.lower() if pattern else None
        wanted_libraries = set(libraries) if libraries else None

        selected = []
        for scenario in self._scenarios.values():
            if wanted_group is not None and scenario.group is not wanted_group:
                continue
            if needle is not None and needle not in scenario.id.lower():
                continue
            if wanted_libraries is not None and scenario.library not in wanted_libraries:
                continue
            selected.append(scenario)
        return selected

    def groups(self) -> list[ScenarioGroup]:
        """Groups that have at least one scenario, in report order."""
        present = {s.group for s in self._scenarios.values()}
        return [g for g in GROUP_ORDER if g in present]

    def max_concurrency(self, scenarios: Iterable[Scenario] | None = None) -> int:
        """Highest concurrency level among ``scenarios`` (default: all registered)."""
        pool = self._scenarios.values() if scenarios is None else scenarios
        return max((s.concurrency for s in pool), default=1)

    def __contains__(self, scenario_id: object) -> bool:
        return scenario_id in self._scenarios

    def __iter__(self) -> Iterator[Scenario]:
        return iter(list(self._scenarios.values()))

    def __len__(self) -> int:
        return len(self._scenarios)
