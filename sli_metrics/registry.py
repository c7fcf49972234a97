"""Metrics registry: measure definitions, view registration and recording.

The registry is an explicitly constructed object. The application keeps a
single instance (see the DI container) and hands it to everything that
records into it and to the exporter that reads from it.

    registry = MetricsRegistry()
    requests = registry.define_counter("requests", "total requests", "requests")
    registry.register_views(
        View("requests", "total requests", requests, CountAggregation())
    )
    registry.record(requests, 1)

Each view keeps its own lock, so recording from many request threads only
contends per view and never waits for an export cycle.
"""

import logging
import threading
from bisect import bisect_right
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from sli_metrics.exceptions import (
    ConfigurationError,
    DuplicateMeasureError,
    ViewRegistrationError,
)
from sli_metrics.measures import (
    CountAggregation,
    DistributionAggregation,
    Measure,
    MeasureKind,
    View,
)

logger = logging.getLogger(__name__)

RowKey = tuple[str, ...]


@dataclass
class CountRow:
    count: int = 0


@dataclass
class DistributionRow:
    """Per-bucket counts plus the running count and sum of a distribution."""

    bucket_counts: list[int]
    count: int = 0
    sum: float = 0.0

    @property
    def mean(self) -> float:
        if self.count == 0:
            return 0.0
        return self.sum / self.count


Row = CountRow | DistributionRow


@dataclass(frozen=True)
class ViewData:
    """Point-in-time copy of one view's aggregated rows."""

    view: View
    rows: dict[RowKey, Row] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.view.name

    @property
    def total_count(self) -> int:
        """Number of samples folded into the view across all rows."""
        return sum(row.count for row in self.rows.values())


class _ViewState:
    """Mutable aggregation state for a registered view."""

    def __init__(self, view: View):
        self.view = view
        self._lock = threading.Lock()
        self._rows: dict[RowKey, Row] = {}

    def _row_key(self, tags: Mapping[str, str] | None) -> RowKey:
        if not self.view.tag_keys:
            return ()
        tags = tags or {}
        return tuple(str(tags.get(key, "")) for key in self.view.tag_keys)

    def add(self, value: float, tags: Mapping[str, str] | None) -> None:
        key = self._row_key(tags)
        aggregation = self.view.aggregation

        with self._lock:
            row = self._rows.get(key)

            if isinstance(aggregation, DistributionAggregation):
                if row is None:
                    row = DistributionRow(bucket_counts=[0] * aggregation.bucket_count)
                    self._rows[key] = row
                assert isinstance(row, DistributionRow)
                row.bucket_counts[bisect_right(aggregation.boundaries, value)] += 1
                row.count += 1
                row.sum += value
            else:
                if row is None:
                    row = CountRow()
                    self._rows[key] = row
                row.count += 1

    def read(self) -> ViewData:
        with self._lock:
            rows: dict[RowKey, Row] = {}
            for key, row in self._rows.items():
                if isinstance(row, DistributionRow):
                    rows[key] = DistributionRow(
                        bucket_counts=list(row.bucket_counts),
                        count=row.count,
                        sum=row.sum,
                    )
                else:
                    rows[key] = CountRow(count=row.count)
        return ViewData(view=self.view, rows=rows)


class MetricsRegistry:
    """Holds measures and views, and folds recorded samples into views."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._measures: dict[str, Measure] = {}
        self._views: dict[str, _ViewState] = {}
        # Replaced wholesale on registration so record() can read it unlocked
        self._views_by_measure: dict[str, tuple[_ViewState, ...]] = {}
        self._has_recorded = False

    @property
    def measures(self) -> list[Measure]:
        with self._lock:
            return list(self._measures.values())

    @property
    def views(self) -> list[View]:
        with self._lock:
            return [state.view for state in self._views.values()]

    def define_counter(self, name: str, description: str, unit: str) -> Measure:
        """Define an integer counter measure."""
        return self._define(name, description, unit, MeasureKind.COUNTER)

    def define_distribution(self, name: str, description: str, unit: str) -> Measure:
        """Define a real-valued measure for histogram aggregation."""
        return self._define(name, description, unit, MeasureKind.DISTRIBUTION)

    def _define(self, name: str, description: str, unit: str, kind: MeasureKind) -> Measure:
        if not name or not name.strip():
            raise ConfigurationError("Measure name must not be empty")

        with self._lock:
            if name in self._measures:
                raise DuplicateMeasureError(name)

            measure = Measure(name=name, description=description, unit=unit, kind=kind)
            self._measures[name] = measure

        logger.debug(f"Defined {kind.value} measure {name}")
        return measure

    def register_views(self, *views: View) -> None:
        """Register views atomically.

        Either every view is registered or, on ViewRegistrationError, none is.

        Raises:
            ViewRegistrationError: On a name collision (with a registered view
                or within the call), a view over a measure this registry did
                not define, an empty call, or registration after samples have
                already been recorded.
        """
        names = [view.name for view in views]

        if not views:
            raise ViewRegistrationError("No views given to register")

        with self._lock:
            if self._has_recorded:
                raise ViewRegistrationError(
                    "Views must be registered before the first measurement is recorded",
                    names,
                )

            errors: list[str] = []
            seen: set[str] = set()

            for view in views:
                if view.name in self._views:
                    errors.append(f"view {view.name} is already registered")
                elif view.name in seen:
                    errors.append(f"view {view.name} is given more than once")
                seen.add(view.name)

                defined = self._measures.get(view.measure.name)
                if defined is None or defined != view.measure:
                    errors.append(
                        f"view {view.name} references undefined measure {view.measure.name}"
                    )

                if not isinstance(view.aggregation, CountAggregation | DistributionAggregation):
                    errors.append(f"view {view.name} has an unsupported aggregation")

            if errors:
                raise ViewRegistrationError(
                    "Failed to register views: " + "; ".join(errors), names
                )

            by_measure = {name: list(states) for name, states in self._views_by_measure.items()}
            for view in views:
                state = _ViewState(view)
                self._views[view.name] = state
                by_measure.setdefault(view.measure.name, []).append(state)

            self._views_by_measure = {
                name: tuple(states) for name, states in by_measure.items()
            }

        logger.info(f"Registered views: {', '.join(names)}")

    def record(
        self,
        measure: Measure,
        value: float,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Fold one sample into every view bound to ``measure``.

        A measure without views is silently ignored.
        """
        states = self._views_by_measure.get(measure.name)
        if not states:
            return

        if not self._has_recorded:
            with self._lock:
                self._has_recorded = True

        for state in states:
            if state.view.measure == measure:
                state.add(value, tags)

    def record_many(
        self,
        measurements: Iterable[tuple[Measure, float]],
        tags: Mapping[str, str] | None = None,
    ) -> None:
        """Record several measurements with the same tags."""
        for measure, value in measurements:
            self.record(measure, value, tags)

    def get_view_data(self, name: str) -> ViewData | None:
        with self._lock:
            state = self._views.get(name)
        if state is None:
            return None
        return state.read()

    def snapshot(self) -> list[ViewData]:
        """Read the cumulative state of every registered view.

        Views are read one at a time; the result is not consistent across
        views but no sample is double counted or lost.
        """
        with self._lock:
            states = list(self._views.values())
        return [state.read() for state in states]
