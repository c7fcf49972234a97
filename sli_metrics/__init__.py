"""Request metrics collection: registry, views and periodic export."""

from sli_metrics.backends import (
    LoggingBackend,
    MetricsBackendProtocol,
    PushGatewayBackend,
)
from sli_metrics.exceptions import (
    ConfigurationError,
    DuplicateMeasureError,
    ExportError,
    ViewRegistrationError,
)
from sli_metrics.exporter import MetricsExporter
from sli_metrics.measures import (
    CountAggregation,
    DistributionAggregation,
    Measure,
    MeasureKind,
    View,
)
from sli_metrics.registry import MetricsRegistry, ViewData

__all__ = [
    "ConfigurationError",
    "CountAggregation",
    "DistributionAggregation",
    "DuplicateMeasureError",
    "ExportError",
    "LoggingBackend",
    "Measure",
    "MeasureKind",
    "MetricsBackendProtocol",
    "MetricsExporter",
    "MetricsRegistry",
    "PushGatewayBackend",
    "View",
    "ViewData",
    "ViewRegistrationError",
]
