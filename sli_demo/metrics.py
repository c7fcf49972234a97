"""SLI metric definitions for the demo service.

The measure and view names are the identifiers dashboards and alerting
policies already use, so they must not change.
"""

from dataclasses import dataclass

from sli_metrics import (
    CountAggregation,
    DistributionAggregation,
    Measure,
    MetricsRegistry,
    View,
)

REQUEST_COUNT = "oc_request_count"
FAILED_REQUEST_COUNT = "oc_failed_request_count"
LATENCY_DISTRIBUTION = "oc_latency_distribution"
RESPONSE_LATENCY_VIEW = "oc_response_latency"

# Latency is recorded in seconds but these boundaries are on a 0-10000
# scale, so every sample from this handler lands in the [0, 1000) bucket.
# Kept as-is for compatibility with existing dashboards.
LATENCY_BOUNDARIES = (0, 1000, 2000, 3000, 4000, 5000, 6000, 7000, 8000, 9000, 10000)


@dataclass(frozen=True)
class SliMetrics:
    """Handles to the measures the request handler records into."""

    request_count: Measure
    failed_request_count: Measure
    response_latency: Measure


def define_sli_metrics(registry: MetricsRegistry) -> SliMetrics:
    """Define the SLI measures and register their views.

    Must run once at startup, before the first request is served.

    Raises:
        ConfigurationError: If a measure or view is already registered.
    """
    request_count = registry.define_counter(
        REQUEST_COUNT, "total request count", "requests"
    )
    failed_request_count = registry.define_counter(
        FAILED_REQUEST_COUNT, "count of failed requests", "requests"
    )
    response_latency = registry.define_distribution(
        LATENCY_DISTRIBUTION, "distribution of response latencies", "s"
    )

    registry.register_views(
        View(
            name=REQUEST_COUNT,
            description="total request count",
            measure=request_count,
            aggregation=CountAggregation(),
        ),
        View(
            name=FAILED_REQUEST_COUNT,
            description="count of failed requests",
            measure=failed_request_count,
            aggregation=CountAggregation(),
        ),
        View(
            name=RESPONSE_LATENCY_VIEW,
            description="The distribution of the latencies",
            measure=response_latency,
            aggregation=DistributionAggregation(LATENCY_BOUNDARIES),
        ),
    )

    return SliMetrics(
        request_count=request_count,
        failed_request_count=failed_request_count,
        response_latency=response_latency,
    )
