from __future__ import annotations

from typing import Any

import pytest

from field_rate_limit.core.config import get_settings


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch) -> None:
    """
    Run every test against default settings, whatever the host environment has.
    """
    for name in (
            "RATE_LIMIT_DEFAULT_MAX",
            "RATE_LIMIT_DEFAULT_WINDOW",
            "RATE_LIMIT_STORE",
            "RATE_LIMIT_REDIS_URL",
            "RATE_LIMIT_KEY_PREFIX",
            "RATE_LIMIT_BATCH_CACHE",
            "RATE_LIMIT_TRUST_FORWARDED",
    ):
        monkeypatch.delenv(name, raising=False)

    # Clear cached Settings so env changes take effect
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class RequestContext:
    """Per-request context object, like the one a framework hands to resolvers."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = start_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


class FakeRedis:
    """Minimal async stand-in for redis.asyncio.Redis get/set."""

    def __init__(self) -> None:
        self.values: dict[str, bytes] = {}
        self.expiries: dict[str, int | None] = {}
        self.closed = False

    async def get(self, key: str) -> bytes | None:
        return self.values.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.values[key] = value.encode() if isinstance(value, str) else value
        self.expiries[key] = ex
        return True

    async def aclose(self) -> None:
        self.closed = True


class FailingStore:
    def __init__(self, fail_on: str = "get") -> None:
        self.fail_on = fail_on
        self.set_calls = 0

    async def get_for_identity(self, identity):
        if self.fail_on == "get":
            raise ConnectionError("Failed to get store.")
        return []

    async def set_for_identity(self, identity, timestamps, window_ms=None):
        self.set_calls += 1
        if self.fail_on == "set":
            raise ConnectionError("Failed to set store.")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
