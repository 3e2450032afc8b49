# ─────────────────────────────────────────────────────────────────────────────
# Tests — Rate Limiter (fixed window per client IP, key holders exempt)
# ─────────────────────────────────────────────────────────────────────────────


import pytest
from fastapi.testclient import TestClient

from gateway.config import Settings
from gateway.main import create_app
from gateway.rate_limit import RateLimiter

_TOO_MANY = {"error": "Too many requests, please try again later."}


class TestRateLimiter:
    """The counter itself, no HTTP involved."""

    def test_defaults_match_window(self):
        limiter = RateLimiter()
        assert limiter.max_requests == 10
        assert limiter.window_seconds == 60

    def test_eleventh_hit_rejected(self):
        limiter = RateLimiter("10/minute")
        results = [limiter.hit("1.2.3.4") for _ in range(11)]
        assert results == [True] * 10 + [False]

    def test_keys_are_independent(self):
        limiter = RateLimiter("2/minute")
        assert limiter.hit("a") and limiter.hit("a")
        assert not limiter.hit("a")
        assert limiter.hit("b")

    def test_retry_after_within_window(self):
        limiter = RateLimiter("1/minute")
        limiter.hit("a")
        assert 1 <= limiter.retry_after("a") <= 60

    def test_reset_clears_counters(self):
        limiter = RateLimiter("1/minute")
        limiter.hit("a")
        assert not limiter.hit("a")
        limiter.reset()
        assert limiter.hit("a")

    @pytest.mark.parametrize("uri", ["redis://localhost:6379", "memcached://localhost:11211"])
    def test_network_storage_refused(self, uri):
        """Counters are hit synchronously inside async dispatch; only memory is safe."""
        with pytest.raises(ValueError, match="only memory:// is supported"):
            RateLimiter(storage_uri=uri)


class TestRateLimitMiddleware:
    def test_app_refuses_network_storage(self, fake_pool):
        settings = Settings(rate_limit_storage_uri="redis://cache:6379", log_json=False)
        with pytest.raises(ValueError):
            create_app(settings, pool=fake_pool)

    def test_limiter_only_reachable_through_middleware(self, app):
        assert not hasattr(app.state, "rate_limiter")

    def test_eleventh_request_gets_429(self, client):
        statuses = [client.get("/").status_code for _ in range(11)]
        assert statuses == [200] * 10 + [429]

    def test_429_body_and_retry_after(self, client):
        for _ in range(10):
            client.get("/")
        response = client.get("/")
        assert response.status_code == 429
        assert response.json() == _TOO_MANY
        assert 1 <= int(response.headers["Retry-After"]) <= 60

    def test_limit_is_shared_across_routes(self, client):
        for _ in range(5):
            client.get("/")
        for _ in range(5):
            client.get("/metrics/prometheus")
        assert client.get("/v1/player-data/player-1").status_code == 429

    def test_rate_limit_checked_before_auth(self, client):
        """A keyless client hammering a data route sees 401s, then 429."""
        statuses = [client.get("/v1/player-data/player-1").status_code for _ in range(11)]
        assert statuses == [401] * 10 + [429]

    def test_key_holder_never_blocked(self, client, auth_headers):
        statuses = {
            client.get("/v1/player-data/player-1", headers=auth_headers).status_code
            for _ in range(50)
        }
        assert statuses == {200}

    def test_key_holder_not_counted(self, client, auth_headers):
        """Bypassed requests leave the shared client bucket untouched."""
        for _ in range(25):
            client.get("/", headers=auth_headers)
        statuses = [client.get("/").status_code for _ in range(10)]
        assert statuses == [200] * 10

    def test_forwarded_client_ip_is_the_key(self, client):
        for _ in range(10):
            client.get("/", headers={"CF-Connecting-IP": "203.0.113.7"})
        assert client.get("/", headers={"CF-Connecting-IP": "203.0.113.7"}).status_code == 429
        assert client.get("/", headers={"CF-Connecting-IP": "203.0.113.8"}).status_code == 200
        # Peer address bucket is separate from both forwarded ones
        assert client.get("/").status_code == 200

    def test_rejection_recorded_in_metrics(self, client):
        for _ in range(11):
            client.get("/")
        body = client.get("/metrics/prometheus", headers={"CF-Connecting-IP": "198.51.100.1"}).text
        assert "gateway_rate_limited_total 1.0" in body

    @pytest.mark.parametrize("limit, allowed", [("3/minute", 3), ("1/hour", 1)])
    def test_limit_is_configurable(self, fake_pool, limit, allowed):
        settings = Settings(rate_limit=limit, log_json=False)
        client = TestClient(create_app(settings, pool=fake_pool))
        statuses = [client.get("/").status_code for _ in range(allowed + 1)]
        assert statuses == [200] * allowed + [429]
