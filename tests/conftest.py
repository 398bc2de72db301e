"""
Shared fixtures.

Redis is replaced by :class:`FakeRedis`, an in-memory stand-in for the
handful of ``redis.asyncio.Redis`` commands the backend issues. It stores
bytes and answers ``KEYS`` with Redis glob semantics, backslash escapes
included, so the remote backend is exercised without a server.
"""

from typing import Any, Optional

import pytest
from redis.exceptions import ConnectionError

from tiercache import CacheFacade, CacheSettings, DefaultKeyBuilder
from tiercache.glob import compile_glob


class FakeRedis:
    """In-memory ``redis.asyncio.Redis`` double."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.expiry: dict[str, Optional[int]] = {}
        self.available = True
        self.pings = 0
        self.closed = False
        self.patterns: list[str] = []

    def _check(self) -> None:
        if not self.available:
            raise ConnectionError("Connection refused")

    async def ping(self) -> bool:
        self.pings += 1
        self._check()
        return True

    async def get(self, key: str) -> Optional[bytes]:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        self._check()
        self.data[key] = value if isinstance(value, bytes) else str(value).encode()
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                self.expiry.pop(key, None)
                removed += 1
        return removed

    async def keys(self, pattern: str = "*") -> list[bytes]:
        self._check()
        self.patterns.append(pattern)
        matches = compile_glob(pattern)
        return [key.encode() for key in self.data if matches(key)]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def down_redis() -> FakeRedis:
    client = FakeRedis()
    client.available = False
    return client


@pytest.fixture
def settings() -> CacheSettings:
    return CacheSettings(default_ttl=300)


@pytest.fixture
def facade(settings: CacheSettings) -> CacheFacade:
    """Facade with only the default (local) namespace."""
    return CacheFacade(settings, key_builder=DefaultKeyBuilder(root="/srv/app"))


@pytest.fixture
def tiered(settings: CacheSettings, fake_redis: FakeRedis) -> CacheFacade:
    """Facade with a local namespace ``A`` and a remote namespace ``B``."""
    cache = CacheFacade(settings, redis_client=fake_redis)
    cache.register_namespace("A", "local")
    cache.register_namespace("B", "remote")
    return cache
