"""Signal handling and ordered shutdown.

A SIGTERM or SIGINT walks the registered services through three events:

- PREPARE_SHUTDOWN: stop taking on new work (the exporter stops its timer).
- SHUTDOWN: do the last piece of work (the exporter's final flush).
- AFTER_SHUTDOWN: release whatever keeps the process alive (the server).

Between PREPARE_SHUTDOWN and SHUTDOWN every shutdown waiter is given what is
left of the graceful shutdown timeout to finish in-flight work.
"""

import logging
import signal
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    PREPARE_SHUTDOWN = "prepare-shutdown"
    SHUTDOWN = "shutdown"
    AFTER_SHUTDOWN = "after-shutdown"


LifecycleCallback = Callable[[LifecycleEvent], None]
# Receives the seconds left and returns whether the service is idle
ShutdownWaiter = Callable[[float], bool]


class LifecycleCoordinatorProtocol(ABC):
    """Protocol for lifecycle coordinator implementations."""

    @abstractmethod
    def initialize(self) -> None:
        """Install the signal handlers."""
        pass

    @abstractmethod
    def register_lifecycle_notification(self, callback: LifecycleCallback) -> None:
        pass

    @abstractmethod
    def register_shutdown_waiter(self, name: str, waiter: ShutdownWaiter) -> None:
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Run the shutdown sequence once."""
        pass


class LifecycleCoordinator(LifecycleCoordinatorProtocol):
    def __init__(self, graceful_shutdown_timeout: float):
        """Initialize the coordinator.

        Args:
            graceful_shutdown_timeout: Total seconds shared by all shutdown waiters
        """
        self._graceful_shutdown_timeout = graceful_shutdown_timeout
        self._lock = threading.Lock()
        self._shutdown_started = False
        self._callbacks: list[LifecycleCallback] = []
        self._waiters: list[tuple[str, ShutdownWaiter]] = []

    def initialize(self) -> None:
        for signum in (signal.SIGTERM, signal.SIGINT):
            signal.signal(signum, self._handle_signal)

    def register_lifecycle_notification(self, callback: LifecycleCallback) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def register_shutdown_waiter(self, name: str, waiter: ShutdownWaiter) -> None:
        with self._lock:
            self._waiters.append((name, waiter))
        logger.debug(f"Registered shutdown waiter {name}")

    def _handle_signal(self, signum: int, frame: object) -> None:
        logger.info(f"terminated signal caught (signal {signum}), initiating graceful shutdown")
        self.shutdown()

    def shutdown(self) -> None:
        with self._lock:
            if self._shutdown_started:
                logger.warning("Shutdown already in progress, ignoring")
                return
            self._shutdown_started = True
            callbacks = list(self._callbacks)
            waiters = list(self._waiters)

        started = time.monotonic()

        self._notify(callbacks, LifecycleEvent.PREPARE_SHUTDOWN)

        if not self._wait_for_idle(waiters):
            logger.error(
                f"Services not idle after {time.monotonic() - started:.1f}s, "
                "continuing shutdown"
            )

        self._notify(callbacks, LifecycleEvent.SHUTDOWN)
        self._notify(callbacks, LifecycleEvent.AFTER_SHUTDOWN)

    def _wait_for_idle(self, waiters: list[tuple[str, ShutdownWaiter]]) -> bool:
        deadline = time.monotonic() + self._graceful_shutdown_timeout
        all_idle = True

        for name, waiter in waiters:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.error(f"Graceful shutdown timeout spent before waiting on {name}")
                return False

            try:
                idle = waiter(remaining)
            except Exception:
                logger.error(f"Shutdown waiter {name} failed", exc_info=True)
                idle = False

            if not idle:
                logger.warning(f"{name} still busy at shutdown")
                all_idle = False

        return all_idle

    @staticmethod
    def _notify(callbacks: list[LifecycleCallback], event: LifecycleEvent) -> None:
        logger.info(f"Raising lifecycle event {event.value}")
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.error(
                    f"Lifecycle callback {getattr(callback, '__name__', repr(callback))} "
                    f"failed on {event.value}",
                    exc_info=True,
                )
