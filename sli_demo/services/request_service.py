"""Demo request handling that fails at random and sleeps at random."""

import random
import time
from collections.abc import Callable

from sli_demo.metrics import SliMetrics
from sli_metrics import MetricsRegistry

FAILURE_PROBABILITY = 0.1
MAX_DELAY_MS = 1000

FAILURE_BODY = "intentional error!"


class RequestService:
    """Simulates request handling and records the SLI measures.

    Every request is counted, 10% of them are counted as failed, and the
    elapsed time is recorded as latency whichever branch runs. Failures are
    business-level only; the HTTP layer still answers 200.
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        metrics: SliMetrics,
        rng: random.Random,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.registry = registry
        self.metrics = metrics
        self.rng = rng
        self.sleep = sleep
        self.clock = clock

    def handle(self) -> str:
        """Handle one request and return the response body."""
        started = self.clock()
        self.registry.record(self.metrics.request_count, 1)

        if self.rng.random() < FAILURE_PROBABILITY:
            self.registry.record(self.metrics.failed_request_count, 1)
            body = FAILURE_BODY
        else:
            delay_ms = self.rng.randrange(MAX_DELAY_MS)
            self.sleep(delay_ms / 1000)
            body = f"Succeeded after {delay_ms} ms"

        self.registry.record(self.metrics.response_latency, self.clock() - started)
        return body
