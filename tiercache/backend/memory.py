# tiercache/backend/memory.py

from __future__ import annotations

import copy
import logging
import time
from typing import Any, NamedTuple, Optional

from cachetools import TLRUCache

from .base import BackendStatus, BaseCacheBackend
from tiercache.glob import filter_keys

logger = logging.getLogger(__name__)


class _Entry(NamedTuple):
    value: Any
    ttl: int


def _expires_at(_key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryCacheBackend(BaseCacheBackend):
    """
    In-process cache backend.
    Stores deep copies of values in a ``cachetools.TLRUCache`` and hands out
    copies on reads, so cached entries never alias caller objects. Every
    entry carries its own time-to-live, defaulting to the one given at
    construction.

    The underlying store has no pattern queries, so :meth:`keys` filters
    the full key set with the glob matcher.
    """

    def __init__(
        self,
        default_ttl: int,
        max_entries: int = 10_000,
        timer=time.monotonic,
    ) -> None:
        super().__init__(default_ttl)
        self._store: Optional[TLRUCache] = TLRUCache(
            maxsize=max_entries, ttu=_expires_at, timer=timer
        )
        self._status = BackendStatus.READY
        logger.info("memory cache ready (ttl=%ss, max_entries=%s)", default_ttl, max_entries)

    def _require_store(self) -> TLRUCache:
        self._ensure_open()
        assert self._store is not None
        return self._store

    async def get(self, key: str) -> Optional[Any]:
        entry = self._require_store().get(key)
        if entry is None:
            return None
        return copy.deepcopy(entry.value)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
    ) -> None:
        expiry = self._expiry(ttl)
        store = self._require_store()
        store[key] = _Entry(copy.deepcopy(value), expiry)

    async def delete(self, key: str) -> int:
        store = self._require_store()
        if store.pop(key, None) is None:
            return 0
        return 1

    async def keys(self, pattern: str = "*") -> list[str]:
        store = self._require_store()
        # expire() drops stale entries so they are not listed
        store.expire()
        return filter_keys(list(store.keys()), pattern)

    async def close(self) -> None:
        if self._status is BackendStatus.CLOSED:
            return
        self._store = None
        self._status = BackendStatus.CLOSED
        logger.info("memory cache closed")
