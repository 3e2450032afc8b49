# ─────────────────────────────────────────────────────────────────────────────
# Health + Metrics Endpoint Tests
# ─────────────────────────────────────────────────────────────────────────────

from fastapi.testclient import TestClient

from gateway.config import Settings
from gateway.main import create_app


class TestHealth:
    """GET / — no auth, no backend, always 200."""

    def test_returns_online(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "online"}

    def test_no_backend_needed(self, client, fake_pool):
        fake_pool.fail_on_acquire = OSError("db down")
        assert client.get("/").status_code == 200
        assert fake_pool.acquired == 0

    def test_works_without_any_store(self):
        """No pool at all (lifespan not run) still answers."""
        client = TestClient(create_app(Settings(log_json=False)))
        assert client.get("/").json() == {"status": "online"}


class TestPrometheus:
    def test_exposition_format(self, client):
        response = client.get("/metrics/prometheus")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "gateway_requests_total" in response.text

    def test_counts_requests_by_route_template(self, client, auth_headers):
        client.get("/v1/player-data/player-1", headers=auth_headers)
        client.get("/v1/player-data/nobody", headers=auth_headers)
        body = client.get("/metrics/prometheus").text
        assert 'route="/v1/player-data/{id}",status="200"' in body
        assert 'route="/v1/player-data/{id}",status="404"' in body
        assert "player-1" not in body

    def test_auth_rejections_counted(self, client):
        client.get("/v1/player-data/player-1")
        body = client.get("/metrics/prometheus").text
        assert "gateway_auth_rejected_total 1.0" in body
