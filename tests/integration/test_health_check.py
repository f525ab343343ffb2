from unittest.mock import patch

import pytest

pytestmark = pytest.mark.integration


def _health(client):
    response = client.get("/health")
    return response, response.json()


class TestHealthCheck:
    def test_healthy_when_all_checks_pass(self, client):
        response, data = _health(client)
        assert response.status_code == 200
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert set(data["services"]) == {"database", "cache"}

    @pytest.mark.parametrize("service", ["database", "cache"])
    def test_check_reports_timing(self, client, service):
        _, data = _health(client)
        entry = data["services"][service]
        assert entry["status"] == "up"
        assert entry["response_time_ms"] >= 0

    def test_cache_failure_returns_503(self, client):
        with patch("modules.core.views.cache.get", return_value=None):
            response, data = _health(client)
        assert response.status_code == 503
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"] == {"status": "down"}
        assert data["services"]["database"]["status"] == "up"

    def test_health_does_not_require_token(self, api_client):
        assert api_client.get("/health").status_code == 200
