# tiercache/registry.py

"""
Namespace registry.

Maps namespace names to a backend kind and hands out the one shared backend
instance per kind. Namespaces of the same kind share a connection and are
told apart only by their key prefix.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from tiercache.backend.base import BaseCacheBackend
from tiercache.backend.memory import MemoryCacheBackend
from tiercache.backend.redis import RedisCacheBackend
from tiercache.config import BackendConfig, CacheSettings
from tiercache.exceptions import InvalidNamespaceConfig, NotReady, UnknownNamespace

logger = logging.getLogger(__name__)

ANY = "*"


class BackendKind(str, Enum):
    """Which storage engine serves a namespace."""
    LOCAL = "local"
    REMOTE = "remote"

    @classmethod
    def parse(cls, value: Union[str, "BackendKind"]) -> "BackendKind":
        try:
            return cls(value)
        except ValueError:
            raise InvalidNamespaceConfig(
                f"Invalid cache type {value!r}; expected one of "
                f"{', '.join(k.value for k in cls)}."
            ) from None


def kind_matches(kind: "BackendKind", kind_filter: Union[str, BackendKind]) -> bool:
    return kind_filter == ANY or kind is BackendKind(kind_filter)


@dataclass(frozen=True)
class Namespace:
    name: str
    kind: BackendKind
    config: Optional[BackendConfig] = None


class NamespaceRegistry:
    """
    Owns every namespace and the backends serving them.

    Backends are provisioned on the first registration of their kind, from
    that registration's config merged over the settings. Later configs for
    the same kind do not reconfigure the existing backend.
    """

    def __init__(
        self,
        settings: CacheSettings,
        *,
        redis_client=None,
    ) -> None:
        self.settings = settings
        self._redis_client = redis_client
        self._namespaces: dict[str, Namespace] = {}
        self._backends: dict[BackendKind, BaseCacheBackend] = {}
        self._enabled: dict[BackendKind, bool] = {kind: True for kind in BackendKind}
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise NotReady("The cache has been shut down.")

    def register(
        self,
        name: str,
        kind: Union[str, BackendKind],
        config: Optional[BackendConfig] = None,
    ) -> bool:
        """
        Register a namespace.

        Invalid registrations are logged and ignored. Returns True when
        ``name`` is (or already was) registered with ``kind``.
        """
        self._ensure_open()
        try:
            if not name:
                raise InvalidNamespaceConfig("A namespace must have a name and a type.")
            kind = BackendKind.parse(kind)
        except InvalidNamespaceConfig as e:
            logger.warning("%s", e)
            return False

        existing = self._namespaces.get(name)
        if existing is not None:
            if existing.kind is not kind:
                logger.warning(
                    "namespace %r is already registered as %s; refusing to remap it to %s",
                    name,
                    existing.kind.value,
                    kind.value,
                )
                return False
            return True

        if kind not in self._backends:
            self._backends[kind] = self._provision(kind, config)
        elif config is not None:
            logger.info(
                "%s backend already provisioned; config for namespace %r is ignored",
                kind.value,
                name,
            )

        self._namespaces[name] = Namespace(name=name, kind=kind, config=config)
        logger.info("added namespace %r (%s)", name, kind.value)
        return True

    def _provision(
        self, kind: BackendKind, config: Optional[BackendConfig]
    ) -> BaseCacheBackend:
        resolved = self.settings.resolve(config)
        if kind is BackendKind.LOCAL:
            return MemoryCacheBackend(
                default_ttl=resolved.default_ttl,
                max_entries=self.settings.max_entries,
            )
        if kind is BackendKind.REMOTE:
            return RedisCacheBackend(
                resolved,
                client=self._redis_client,
                serialization_format=self.settings.serialization_format,
            )
        raise InvalidNamespaceConfig(f"No backend for cache type {kind!r}.")

    def resolve(self, name: str) -> tuple[Namespace, BaseCacheBackend]:
        """
        Look up a namespace and its backend.

        Raises:
            UnknownNamespace: If ``name`` was never registered
            NotReady: If the registry has been closed
        """
        self._ensure_open()
        namespace = self._namespaces.get(name)
        if namespace is None:
            raise UnknownNamespace(name)
        return namespace, self._backends[namespace.kind]

    def namespaces(self) -> list[Namespace]:
        """Registered namespaces, in registration order."""
        self._ensure_open()
        return list(self._namespaces.values())

    def kind_of(self, name: str) -> BackendKind:
        return self.resolve(name)[0].kind

    def backend_for(self, kind: Union[str, BackendKind]) -> Optional[BaseCacheBackend]:
        self._ensure_open()
        return self._backends.get(BackendKind(kind))

    def is_enabled(self, kind: Union[str, BackendKind]) -> bool:
        return self._enabled[BackendKind(kind)]

    def set_enabled(self, kind: Union[str, BackendKind], enabled: bool) -> None:
        self._ensure_open()
        self._enabled[BackendKind(kind)] = enabled

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ready(self) -> bool:
        if self._closed or BackendKind.LOCAL not in self._backends:
            return False
        return all(backend.ready for backend in self._backends.values())

    async def close(self) -> None:
        """Close every backend. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        backends = list(self._backends.values())
        results = await asyncio.gather(
            *(backend.close() for backend in backends), return_exceptions=True
        )
        for backend, result in zip(backends, results):
            if isinstance(result, BaseException):
                logger.error("closing %s failed: %r", type(backend).__name__, result)
        self._backends.clear()


__all__ = [
    "ANY",
    "BackendKind",
    "Namespace",
    "NamespaceRegistry",
    "kind_matches",
]
