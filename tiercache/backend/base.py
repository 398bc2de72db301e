# tiercache/backend/base.py

"""
Abstract base class for cache backends.
Defines the interface that all cache backends must implement.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from tiercache.exceptions import NotReady

logger = logging.getLogger(__name__)


class BackendStatus(str, Enum):
    """Lifecycle of a backend instance. ``CLOSED`` is terminal."""
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    ERROR = "error"
    CLOSED = "closed"


def check_ttl(ttl: Optional[int]) -> None:
    """Reject TTLs that are not a positive number of seconds."""
    if ttl is not None and ttl <= 0:
        raise ValueError(f"ttl must be a positive number of seconds; got {ttl!r}.")


class BaseCacheBackend(ABC):
    """
    Abstract base class for cache backends.
    All cache backends must implement this interface.

    Keys passed to a backend are already namespace-qualified.
    """

    def __init__(self, default_ttl: int) -> None:
        self.default_ttl = default_ttl
        self._status = BackendStatus.UNINITIALIZED

    @property
    def status(self) -> BackendStatus:
        return self._status

    @property
    def ready(self) -> bool:
        return self._status is BackendStatus.READY

    def _ensure_open(self) -> None:
        if self._status is BackendStatus.CLOSED:
            raise NotReady(f"{type(self).__name__} is closed.")

    def _expiry(self, ttl: Optional[int]) -> int:
        check_ttl(ttl)
        return self.default_ttl if ttl is None else ttl

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a value from the cache by its key.

        :param key: The key to look up in the cache.
        :return: The cached value, or None if not found.
        :raises BackendConnectionFault: If the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> None:
        """
        Set a value in the cache with an optional time-to-live (TTL).
        :param key: The key under which to store the value.
        :param value: The value to store in the cache.
        :param ttl: Time-to-live in seconds; the backend default if omitted.
        :raises ValueError: If ``ttl`` is zero or negative.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> int:
        """
        Delete a value from the cache by its key.
        :param key: The key to delete from the cache.
        :return: Number of keys removed (0 or 1).
        """
        raise NotImplementedError

    @abstractmethod
    async def keys(self, pattern: str = "*") -> list[str]:
        """
        List the keys matching a glob pattern.
        :param pattern: Glob pattern, matched against the whole key.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release the backend. The instance cannot be used afterwards."""
        raise NotImplementedError

    async def delete_keys(self, pattern: str = "*") -> int:
        """
        Delete every key matching ``pattern``.

        Deletions run concurrently; one failing deletion does not stop the
        others and is left out of the returned count.
        """
        keys = await self.keys(pattern)
        if not keys:
            return 0

        results = await asyncio.gather(
            *(self.delete(key) for key in keys), return_exceptions=True
        )

        removed = 0
        for key, result in zip(keys, results):
            if isinstance(result, BaseException):
                logger.warning("delete of %s failed: %r", key, result)
                continue
            removed += result
        return removed
