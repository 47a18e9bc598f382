"""Summary statistics over benchmark sample sets."""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence
from dataclasses import dataclass

from .exceptions import EmptySampleError


@dataclass(frozen=True)
class Summary:
    """
    Point estimates and dispersion of one scenario's sample set.

    All durations are in milliseconds.
    """

    scenario_id: str
    sample_count: int
    mean: float
    median: float
    stddev: float
    min: float
    max: float

    def confidence_interval(self, level: float = 0.95) -> tuple[float, float]:
        """Return the (low, high) interval around the mean (normal approximation)."""
        if not 0.0 < level < 1.0:
            raise ValueError(f"Confidence level must be in (0, 1), got {level}")
        z = statistics.NormalDist().inv_cdf(0.5 + level / 2)
        half_width = z * self.stddev / math.sqrt(self.sample_count)
        return self.mean - half_width, self.mean + half_width

    def throughput(self, elements: int = 1) -> float:
        """Elements processed per second, based on the mean duration."""
        if self.mean <= 0:
            return 0.0
        return elements / (self.mean / 1000)


def summarize(scenario_id: str, samples_ms: Sequence[float]) -> Summary:
    """
    Build a Summary from a sample set.

    The median of an even-length set is the average of the two middle values.
    Standard deviation is the sample standard deviation (0.0 for one sample).

    Raises:
        EmptySampleError: If the sample set is empty.
    """
    if not samples_ms:
        raise EmptySampleError(f"No samples recorded for scenario {scenario_id!r}")

    ordered = sorted(samples_ms)
    lowest, highest = ordered[0], ordered[-1]
    # Rounding in the division can push the mean past an extreme for
    # near-identical samples.
    mean = min(max(statistics.fmean(ordered), lowest), highest)
    return Summary(
        scenario_id=scenario_id,
        sample_count=len(ordered),
        mean=mean,
        median=statistics.median(ordered),
        stddev=statistics.stdev(ordered) if len(ordered) > 1 else 0.0,
        min=lowest,
        max=highest,
    )
