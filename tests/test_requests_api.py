"""Tests for the demo endpoint."""

import re

import pytest

from sli_demo.metrics import FAILED_REQUEST_COUNT, REQUEST_COUNT, RESPONSE_LATENCY_VIEW

BODY_PATTERN = re.compile(r"^(intentional error!|Succeeded after \d+ ms)$")


class TestRequestsApi:
    def test_single_request_is_200_with_known_body(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "text/plain" in response.content_type
        assert BODY_PATTERN.match(response.get_data(as_text=True))

    @pytest.mark.parametrize("method", ["get", "post", "put", "patch", "delete"])
    def test_route_accepts_any_method(self, client, method):
        response = getattr(client, method)("/")

        assert response.status_code == 200
        assert BODY_PATTERN.match(response.get_data(as_text=True))

    def test_other_paths_not_found(self, client):
        response = client.get("/other")

        assert response.status_code == 404

    def test_hundred_requests_update_metrics(self, client, container):
        bodies = []
        for _ in range(100):
            response = client.get("/")
            assert response.status_code == 200
            bodies.append(response.get_data(as_text=True))

        registry = container.metrics_registry()
        requests = registry.get_view_data(REQUEST_COUNT)
        failed = registry.get_view_data(FAILED_REQUEST_COUNT)
        latency = registry.get_view_data(RESPONSE_LATENCY_VIEW)

        assert requests.total_count == 100
        assert 1 <= failed.total_count <= 30
        assert bodies.count("intentional error!") == failed.total_count
        assert latency.total_count == 100

    def test_flush_exports_request_totals(self, client, container, recording_backend):
        for _ in range(5):
            client.get("/")

        assert container.metrics_exporter().flush() is True

        exported = recording_backend.last
        assert exported[REQUEST_COUNT].total_count == 5
        assert exported[RESPONSE_LATENCY_VIEW].total_count == 5
        assert set(exported) == {REQUEST_COUNT, FAILED_REQUEST_COUNT, RESPONSE_LATENCY_VIEW}
