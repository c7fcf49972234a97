"""Monitoring backends the exporter sends view snapshots to.

Snapshots are serialized through a prometheus_client custom collector, so
any backend that speaks the Prometheus exposition format can receive them.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence

from prometheus_client import CollectorRegistry, generate_latest, push_to_gateway
from prometheus_client.core import HistogramMetricFamily, UnknownMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector
from prometheus_client.utils import floatToGoString

from sli_metrics.exceptions import ExportError
from sli_metrics.measures import DistributionAggregation
from sli_metrics.registry import CountRow, DistributionRow, ViewData

logger = logging.getLogger(__name__)


class MetricsBackendProtocol(ABC):
    """Protocol for monitoring backend implementations."""

    @abstractmethod
    def export(self, snapshot: Sequence[ViewData]) -> None:
        """Send one snapshot of all views.

        Raises:
            ExportError: If the backend could not be reached or rejected it.
        """
        pass


class ViewDataCollector(Collector):
    """Exposes a fixed snapshot of view data as Prometheus metric families.

    Count views are exposed untyped so the sample name is exactly the view
    name (a counter family would gain a ``_total`` suffix). Distribution
    views become histograms.

    The registry keeps per-bucket counts; histograms carry cumulative ``le``
    buckets, so counts are summed while walking the boundaries.
    """

    def __init__(self, snapshot: Sequence[ViewData]):
        self._snapshot = list(snapshot)

    def collect(self) -> Iterator[Metric]:
        for data in self._snapshot:
            view = data.view
            labels = list(view.tag_keys)
            aggregation = view.aggregation

            if isinstance(aggregation, DistributionAggregation):
                histogram = HistogramMetricFamily(view.name, view.description, labels=labels)
                rows = data.rows or self._empty_rows(data)
                for key, row in rows.items():
                    assert isinstance(row, DistributionRow)
                    histogram.add_metric(
                        list(key),
                        self._cumulative_buckets(aggregation.boundaries, row),
                        row.sum,
                    )
                yield histogram
            else:
                family = UnknownMetricFamily(view.name, view.description, labels=labels)
                rows = data.rows or self._empty_rows(data)
                for key, row in rows.items():
                    family.add_metric(list(key), row.count)
                yield family

    @staticmethod
    def _empty_rows(data: ViewData) -> dict:
        # Untagged views report zero before their first sample
        if data.view.tag_keys:
            return {}
        aggregation = data.view.aggregation
        if isinstance(aggregation, DistributionAggregation):
            return {(): DistributionRow(bucket_counts=[0] * aggregation.bucket_count)}
        return {(): CountRow()}

    @staticmethod
    def _cumulative_buckets(
        boundaries: Sequence[float], row: DistributionRow
    ) -> list[tuple[str, float]]:
        # Bucket i holds [b(i-1), b(i)), so a sample exactly on a boundary is
        # counted in the next le bucket rather than the inclusive one.
        buckets: list[tuple[str, float]] = []
        running = 0
        for boundary, count in zip(boundaries, row.bucket_counts):
            running += count
            buckets.append((floatToGoString(boundary), running))
        buckets.append(("+Inf", row.count))
        return buckets


def render_snapshot(snapshot: Sequence[ViewData]) -> CollectorRegistry:
    """Build a standalone CollectorRegistry holding the snapshot."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(ViewDataCollector(snapshot))
    return registry


class PushGatewayBackend(MetricsBackendProtocol):
    """Pushes snapshots to a Prometheus Pushgateway.

    The push is grouped by project id, which selects the tenant the
    measurements belong to. Each push replaces the previous group, which
    suits the cumulative snapshots the exporter sends.
    """

    def __init__(self, gateway_url: str, project_id: str, job: str, timeout: float = 10.0):
        """Initialize the backend.

        Args:
            gateway_url: Pushgateway address, e.g. http://pushgateway:9091
            project_id: Project identifier used as the grouping key
            job: Job name the metrics are pushed under (the metric prefix)
            timeout: Seconds to wait for the gateway
        """
        self.gateway_url = gateway_url
        self.project_id = project_id
        self.job = job
        self.timeout = timeout

    def export(self, snapshot: Sequence[ViewData]) -> None:
        try:
            push_to_gateway(
                self.gateway_url,
                job=self.job,
                registry=render_snapshot(snapshot),
                grouping_key={"project_id": self.project_id},
                timeout=self.timeout,
            )
        except OSError as e:
            raise ExportError(self.gateway_url, str(e)) from e

        logger.debug(
            "Pushed metrics snapshot",
            extra={"gateway": self.gateway_url, "views": len(snapshot)},
        )


class LoggingBackend(MetricsBackendProtocol):
    """Writes snapshots to the log in Prometheus text format.

    Used when no Pushgateway is configured, e.g. during local development.
    """

    def __init__(self, project_id: str, job: str):
        self.project_id = project_id
        self.job = job

    def export(self, snapshot: Sequence[ViewData]) -> None:
        text = generate_latest(render_snapshot(snapshot)).decode("utf-8")
        logger.info(f"Metrics snapshot for {self.job} (project {self.project_id}):\n{text}")
