"""Dependency injection container for the demo service."""

import logging
import random
import time

from dependency_injector import containers, providers

from sli_demo.config import Settings
from sli_demo.metrics import define_sli_metrics
from sli_demo.services.request_service import RequestService
from sli_metrics import (
    LoggingBackend,
    MetricsBackendProtocol,
    MetricsExporter,
    MetricsRegistry,
    PushGatewayBackend,
)
from sli_metrics.lifecycle import LifecycleCoordinator

logger = logging.getLogger(__name__)


def create_metrics_backend(settings: Settings) -> MetricsBackendProtocol:
    """Select the monitoring backend from settings."""
    if settings.use_pushgateway:
        logger.info(f"Exporting metrics to Pushgateway at {settings.pushgateway_url}")
        return PushGatewayBackend(
            gateway_url=settings.pushgateway_url,
            project_id=settings.project_id,
            job=settings.metric_prefix,
            timeout=settings.export_timeout_seconds,
        )

    logger.info("PUSHGATEWAY_URL not set, metrics snapshots will be logged")
    return LoggingBackend(project_id=settings.project_id, job=settings.metric_prefix)


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection."""

    # Configuration provider
    config = providers.Dependency(instance_of=Settings)

    # Lifecycle coordinator - signal handling and ordered shutdown
    lifecycle_coordinator = providers.Singleton(
        LifecycleCoordinator,
        graceful_shutdown_timeout=config.provided.graceful_shutdown_timeout,
    )

    # One registry per process; everything records into and exports from it
    metrics_registry = providers.Singleton(MetricsRegistry)
    sli_metrics = providers.Singleton(define_sli_metrics, registry=metrics_registry)

    metrics_backend = providers.Singleton(create_metrics_backend, settings=config)
    metrics_exporter = providers.Singleton(
        MetricsExporter,
        registry=metrics_registry,
        backend=metrics_backend,
        lifecycle_coordinator=lifecycle_coordinator,
    )

    # Seedable so tests can pin the failure and delay sequence
    random_source = providers.Singleton(random.Random, config.provided.random_seed)
    sleep = providers.Object(time.sleep)

    request_service = providers.Singleton(
        RequestService,
        registry=metrics_registry,
        metrics=sli_metrics,
        rng=random_source,
        sleep=sleep,
    )


def start_background_services(container: ServiceContainer) -> None:
    """Start the periodic metrics export."""
    settings = container.config()
    exporter = container.metrics_exporter()
    exporter.start(settings.export_interval_seconds)
