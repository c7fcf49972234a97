"""Measure and view definitions.

A Measure is a named quantity that can be recorded. A View binds a measure
to an aggregation and gives the result the name that is exported to the
monitoring backend.
"""

from dataclasses import dataclass
from enum import Enum

from sli_metrics.exceptions import ConfigurationError


class MeasureKind(str, Enum):
    """Kinds of recordable quantities."""

    COUNTER = "counter"
    DISTRIBUTION = "distribution"


@dataclass(frozen=True)
class Measure:
    """A named, typed quantity.

    Measures are created through MetricsRegistry.define_counter() and
    define_distribution(), which enforce name uniqueness.
    """

    name: str
    description: str
    unit: str
    kind: MeasureKind


@dataclass(frozen=True)
class CountAggregation:
    """Counts recorded samples, ignoring their values."""


@dataclass(frozen=True)
class DistributionAggregation:
    """Histogram with explicit, fixed bucket boundaries.

    N ascending boundaries define N+1 buckets. Bucket i holds values in
    [boundaries[i-1], boundaries[i]), with -inf and +inf as the outer bounds.
    """

    boundaries: tuple[float, ...]

    def __post_init__(self) -> None:
        bounds = tuple(self.boundaries)
        if not bounds:
            raise ConfigurationError("Distribution requires at least one bucket boundary")
        for lower, upper in zip(bounds, bounds[1:]):
            if upper <= lower:
                raise ConfigurationError(
                    f"Bucket boundaries must be strictly ascending, got {list(bounds)}"
                )
        object.__setattr__(self, "boundaries", bounds)

    @property
    def bucket_count(self) -> int:
        return len(self.boundaries) + 1


Aggregation = CountAggregation | DistributionAggregation


@dataclass(frozen=True)
class View:
    """Binds a measure to an aggregation under an exported name.

    Rows are kept per distinct combination of values for ``tag_keys``; with
    no tag keys every sample lands in a single row.
    """

    name: str
    description: str
    measure: Measure
    aggregation: Aggregation
    tag_keys: tuple[str, ...] = ()
