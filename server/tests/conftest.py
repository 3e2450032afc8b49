# ─────────────────────────────────────────────────────────────────────────────
# Test Fixtures — shared across all tests
# ─────────────────────────────────────────────────────────────────────────────

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest
from fastapi.testclient import TestClient

from gateway.config import Settings
from gateway.main import create_app

TEST_API_KEY = "test-secret-key-2026"


class FakeConnection:
    """Stands in for an asyncpg connection against an in-memory playerdata table."""

    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    async def fetchrow(self, query: str, *args: Any) -> dict[str, Any] | None:
        self._pool.statements.append((query, args))
        await asyncio.sleep(0)
        if self._pool.fail_with is not None:
            raise self._pool.fail_with
        row = self._pool.rows.get(args[0])
        return dict(row) if row is not None else None

    async def execute(self, query: str, *args: Any) -> str:
        self._pool.statements.append((query, args))
        await asyncio.sleep(0)
        if self._pool.fail_with is not None:
            raise self._pool.fail_with
        points, inventory, challenges, user_id = args
        if user_id not in self._pool.rows:
            return "UPDATE 0"
        self._pool.rows[user_id] = {
            "points": points,
            "inventory": inventory,
            "challenges": challenges,
        }
        return "UPDATE 1"


class FakePool:
    """acquire()-compatible pool that counts checkouts and returns."""

    def __init__(self) -> None:
        self.rows: dict[str, dict[str, Any]] = {}
        self.statements: list[tuple[str, tuple[Any, ...]]] = []
        self.acquired = 0
        self.released = 0
        self.fail_with: Exception | None = None
        self.fail_on_acquire: Exception | None = None

    @asynccontextmanager
    async def acquire(self):
        if self.fail_on_acquire is not None:
            raise self.fail_on_acquire
        self.acquired += 1
        try:
            yield FakeConnection(self)
        finally:
            self.released += 1

    def seed(self, user_id: str, points: int | None, inventory: str | None, challenges: str | None) -> None:
        self.rows[user_id] = {"points": points, "inventory": inventory, "challenges": challenges}


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing — fake pool, console logs."""
    return Settings(
        api_key=TEST_API_KEY,
        allowed_origins="*",
        log_json=False,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_pool() -> FakePool:
    pool = FakePool()
    pool.seed("player-1", 120, '{"sword":1}', '{"daily":[1,2]}')
    return pool


@pytest.fixture
def app(test_settings: Settings, fake_pool: FakePool):
    return create_app(test_settings, pool=fake_pool)


@pytest.fixture
def client(app) -> TestClient:
    """TestClient over the fake pool. The lifespan never opens a real pool."""
    return TestClient(app)


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"X-API-Key": TEST_API_KEY}
