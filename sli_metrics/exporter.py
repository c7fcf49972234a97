"""Periodic exporter that drains registry snapshots to a monitoring backend.

Aggregation is cumulative: every cycle sends the full current state of all
views and nothing is reset afterwards. A failed cycle is logged and the next
one simply sends the then-current state.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sli_metrics.backends import MetricsBackendProtocol
from sli_metrics.exceptions import ExportError
from sli_metrics.lifecycle import LifecycleEvent
from sli_metrics.registry import MetricsRegistry

if TYPE_CHECKING:
    from sli_metrics.lifecycle import LifecycleCoordinatorProtocol

logger = logging.getLogger(__name__)


class MetricsExporter:
    """Runs export cycles on a background thread, on demand, and at shutdown.

    Example usage:
        exporter = MetricsExporter(registry, backend, lifecycle_coordinator)
        exporter.start(interval_seconds=60)
        ...
        exporter.flush()
        exporter.stop()

    When a lifecycle coordinator is given, PREPARE_SHUTDOWN stops the timer,
    a shutdown waiter holds shutdown until any in-flight export has finished,
    and SHUTDOWN performs the final flush.
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        backend: MetricsBackendProtocol,
        lifecycle_coordinator: "LifecycleCoordinatorProtocol | None" = None,
    ):
        """Initialize the exporter.

        Args:
            registry: Registry whose views are exported.
            backend: Destination of each export cycle.
            lifecycle_coordinator: Optional coordinator for shutdown integration.
        """
        self.registry = registry
        self.backend = backend

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # Serializes export cycles between the timer thread and flush()
        self._export_lock = threading.Lock()

        self.export_count = 0
        self.failure_count = 0
        self.last_export_time: float | None = None

        if lifecycle_coordinator is not None:
            lifecycle_coordinator.register_lifecycle_notification(self._on_lifecycle_event)
            lifecycle_coordinator.register_shutdown_waiter(
                "MetricsExporter", self._wait_until_idle
            )

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval_seconds: float = 60) -> None:
        """Start the background export loop.

        Args:
            interval_seconds: Time between export cycles (default: 60).
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        if self.is_running():
            logger.warning("Metrics exporter already running")
            return

        # Each loop owns its event so a loop that outlived stop() cannot be revived
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._export_loop,
            args=(interval_seconds, self._stop_event),
            daemon=True,
            name="MetricsExporter",
        )
        self._thread.start()
        logger.info(
            "Started metrics exporter",
            extra={"interval_seconds": interval_seconds},
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background export loop.

        Args:
            timeout: Seconds to wait for an in-flight export to finish.
        """
        self._stop_event.set()
        if self._thread is None:
            return

        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning(
                "Metrics exporter still exporting, it will exit after the current cycle",
                extra={"timeout": timeout},
            )
        else:
            logger.info("Stopped metrics exporter")
        self._thread = None

    def flush(self) -> bool:
        """Run one export cycle now.

        Returns:
            True if the backend accepted the snapshot.
        """
        return self._export_cycle()

    @contextmanager
    def running(self, interval_seconds: float = 60) -> Iterator["MetricsExporter"]:
        """Run the exporter for the duration of the block.

        Leaving the block performs a final flush before stopping, so the
        last partial interval is not lost.
        """
        self.start(interval_seconds)
        try:
            yield self
        finally:
            self.flush()
            self.stop()

    def _export_loop(self, interval_seconds: float, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            # Wait first, then export (allows immediate shutdown on startup)
            if stop_event.wait(interval_seconds):
                break

            self._export_cycle()

    def _export_cycle(self) -> bool:
        with self._export_lock:
            snapshot = self.registry.snapshot()
            try:
                self.backend.export(snapshot)
            except ExportError as e:
                self.failure_count += 1
                logger.error(
                    "Metrics export failed, will retry on next cycle",
                    exc_info=True,
                    extra={"backend": e.backend, "error": e.cause},
                )
                return False
            except Exception as e:
                self.failure_count += 1
                logger.error(
                    "Unexpected error during metrics export",
                    exc_info=True,
                    extra={"error": str(e)},
                )
                return False

            self.export_count += 1
            self.last_export_time = time.time()
            logger.debug("Exported metrics snapshot", extra={"views": len(snapshot)})
            return True

    def _wait_until_idle(self, timeout: float) -> bool:
        """Wait for the timer thread to exit and any export to finish."""
        deadline = time.monotonic() + timeout
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                return False

        remaining = max(deadline - time.monotonic(), 0)
        if not self._export_lock.acquire(timeout=remaining):
            return False
        self._export_lock.release()
        return True

    def _on_lifecycle_event(self, event: LifecycleEvent) -> None:
        if event == LifecycleEvent.PREPARE_SHUTDOWN:
            self._stop_event.set()
        elif event == LifecycleEvent.SHUTDOWN:
            self.flush()
            self.stop()
