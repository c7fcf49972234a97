"""Pytest configuration and fixtures."""

from collections.abc import Generator

import pytest
from dependency_injector import providers
from flask import Flask

from sli_demo import create_app
from sli_demo.config import Settings
from sli_demo.services.container import ServiceContainer
from sli_metrics import MetricsRegistry
from tests.testing_utils import RecordingBackend


def _build_test_settings() -> Settings:
    """Construct base Settings object for tests."""
    return Settings(
        flask_env="testing",
        host="127.0.0.1",
        port=8080,
        waitress_threads=4,
        graceful_shutdown_timeout=5,
        random_seed=1234,
        project_id="test-project",
        metric_prefix="opencensus-demo",
        export_interval_seconds=60,
        export_timeout_seconds=2.0,
        pushgateway_url="",
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return _build_test_settings()


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def app(test_settings: Settings, recording_backend: RecordingBackend) -> Generator[Flask, None, None]:
    """Create Flask app for testing.

    Sleeping is disabled so the success branch returns immediately, and
    exports go to an in-memory backend.
    """
    app = create_app(test_settings, skip_background_services=True)
    app.container.sleep.override(providers.Object(lambda seconds: None))
    app.container.metrics_backend.override(providers.Object(recording_backend))

    try:
        yield app
    finally:
        app.container.metrics_exporter().stop()
        app.container.unwire()


@pytest.fixture
def client(app: Flask):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def container(app: Flask) -> ServiceContainer:
    """Access to the DI container for testing."""
    return app.container


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()
