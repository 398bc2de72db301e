# tiercache/backend/redis.py

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError, TimeoutError

from .base import BackendStatus, BaseCacheBackend
from tiercache.config import BackendConfig
from tiercache.exceptions import BackendConnectionFault
from tiercache.serializer import SerializationFormat, deserialize, serialize

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (ConnectionError, TimeoutError, OSError)


def build_client(config: BackendConfig) -> redis.Redis:
    """
    Create a Redis client from a resolved backend config.

    ``config.address`` may be a full ``redis://`` URL or a host name.
    No connection is opened until the first command.
    """
    address = config.address or "127.0.0.1"
    if "://" in address:
        return redis.Redis.from_url(
            address,
            username=config.user,
            password=config.password,
        )
    return redis.Redis(
        host=address,
        port=config.port or 6379,
        username=config.user,
        password=config.password,
    )


class RedisCacheBackend(BaseCacheBackend):
    """
    Redis cache backend implementation.
    Uses redis-py for asynchronous Redis operations.

    The connection is established lazily: the first operation pings the
    server and moves the backend to ``READY``. Transport failures move it to
    ``ERROR`` and surface as :class:`BackendConnectionFault`; the next
    operation tries to connect again.
    """

    def __init__(
        self,
        config: BackendConfig,
        client: Optional[redis.Redis] = None,
        serialization_format: Optional[SerializationFormat] = None,
    ) -> None:
        super().__init__(config.default_ttl or 0)
        self.config = config
        self.client = client
        self.serialization_format = serialization_format

    @property
    def target(self) -> str:
        address = self.config.address or "127.0.0.1"
        return address if "://" in address else f"{address}:{self.config.port}"

    async def connect(self) -> redis.Redis:
        """Open the connection if it is not already usable."""
        self._ensure_open()
        if self._status is BackendStatus.READY and self.client is not None:
            return self.client

        if self.client is None:
            self.client = build_client(self.config)

        self._status = BackendStatus.CONNECTING
        try:
            await self.client.ping()
        except _TRANSPORT_ERRORS as e:
            self._on_error(e)
            raise BackendConnectionFault(
                f"Failed to connect to Redis at {self.target}: {e}"
            ) from e

        self._status = BackendStatus.READY
        logger.info("redis client connected on %s", self.target)
        return self.client

    def _on_error(self, error: BaseException) -> None:
        if self._status is not BackendStatus.CLOSED:
            self._status = BackendStatus.ERROR
        logger.error("redis client error on %s: %s", self.target, error)

    async def _call(self, command: str, *args: Any, **kwargs: Any) -> Any:
        client = await self.connect()
        try:
            return await getattr(client, command)(*args, **kwargs)
        except _TRANSPORT_ERRORS as e:
            self._on_error(e)
            raise BackendConnectionFault(f"Redis {command.upper()} failed: {e}") from e

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._call("get", key)

        if raw is None:
            return None

        return deserialize(raw, self.serialization_format)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> None:
        data = serialize(value, self.serialization_format)
        expiry = self._expiry(ttl)

        await self._call("set", key, data, ex=expiry or None)

    async def delete(self, key: str) -> int:
        return int(await self._call("delete", key))

    async def keys(self, pattern: str = "*") -> list[str]:
        """
        List keys with the server-side ``KEYS`` command.
        WARNING: KEYS walks the whole keyspace (acceptable for explicit eviction).
        """
        keys = await self._call("keys", pattern)
        return [k.decode("utf-8") if isinstance(k, bytes) else k for k in keys]

    async def close(self) -> None:
        if self._status is BackendStatus.CLOSED:
            return
        client, self.client = self.client, None
        self._status = BackendStatus.CLOSED
        if client is None:
            return
        try:
            await client.aclose()
        except _TRANSPORT_ERRORS as e:
            logger.warning("redis client on %s did not close cleanly: %s", self.target, e)
        logger.info("redis client on %s closed", self.target)
