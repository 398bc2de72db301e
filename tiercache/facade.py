# tiercache/facade.py

"""
Read-through cache facade.

A :class:`CacheFacade` routes every key to the backend serving its
namespace. Caching is an optimization only: backend faults on the read and
write paths are logged and the caller's compute callback is used instead.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextvars import ContextVar, Token
from itertools import count
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union, cast

from tiercache.backend.base import BaseCacheBackend, check_ttl
from tiercache.config import BackendConfig, CacheSettings
from tiercache.exceptions import NotReady
from tiercache.glob import escape_glob
from tiercache.key_builder import DefaultKeyBuilder, KeyBuilder, PathLike
from tiercache.registry import ANY, BackendKind, Namespace, NamespaceRegistry, kind_matches

logger = logging.getLogger(__name__)

T = TypeVar("T")

Compute = Union[Callable[[], T], Callable[[], Awaitable[T]]]
KindFilter = Union[str, BackendKind]

_facade_ids = count()


async def _call_compute(compute: Compute[T]) -> T:
	result = compute()
	if inspect.isawaitable(result):
		return cast(T, await cast(Awaitable[T], result))
	return cast(T, result)


def _scoped(ns: Namespace, pattern: str) -> str:
	# the name is matched literally, only the pattern is a glob
	return f"{escape_glob(ns.name)}:{pattern}"


class _NamespaceScope:
	"""Switch the current namespace for the duration of a ``with`` block."""

	def __init__(self, facade: "CacheFacade", name: str) -> None:
		self._facade = facade
		self._name = name
		self._token: Optional[Token[str]] = None

	def __enter__(self) -> str:
		self._token = self._facade.use_namespace(self._name)
		return self._name

	def __exit__(self, *exc_info: Any) -> None:
		if self._token is not None:
			self._facade._current.reset(self._token)
			self._token = None

	async def __aenter__(self) -> str:
		return self.__enter__()

	async def __aexit__(self, *exc_info: Any) -> None:
		self.__exit__(*exc_info)


class CacheFacade:
	"""
	Tiered cache facade.

	Construct one per application and pass it to whatever needs caching.
	The default namespace is registered as a local namespace on
	construction and is the current namespace until another one is
	selected with :meth:`use_namespace` or :meth:`namespace_scope`.

	Every keyed operation takes an optional ``namespace``; without it the
	current namespace of the calling context is used.
	"""

	def __init__(
		self,
		settings: Optional[CacheSettings] = None,
		*,
		key_builder: Optional[KeyBuilder] = None,
		redis_client=None,
		**options: Any,
	) -> None:
		if settings is None:
			settings = CacheSettings.build(**options)
		elif options:
			settings = CacheSettings.build(**{**settings.model_dump(), **options})

		self.settings = settings
		self.key_builder: KeyBuilder = key_builder or DefaultKeyBuilder()
		self._registry = NamespaceRegistry(settings, redis_client=redis_client)
		self._inflight: dict[str, asyncio.Future[Any]] = {}

		self._registry.register(settings.default_namespace, BackendKind.LOCAL)
		self._current: ContextVar[str] = ContextVar(
			f"tiercache_namespace_{next(_facade_ids)}",
			default=settings.default_namespace,
		)
		logger.info("cache initialized with namespace: %s", settings.default_namespace)

	# ------------------------------------------------------------------
	# state

	def _ensure_open(self) -> None:
		if self._registry.closed:
			raise NotReady("The cache has been shut down.")

	@property
	def registry(self) -> NamespaceRegistry:
		return self._registry

	@property
	def ready(self) -> bool:
		"""True when every provisioned backend is connected and usable."""
		return self._registry.ready

	@property
	def default_ttl(self) -> int:
		return self.settings.default_ttl

	@property
	def current_namespace(self) -> str:
		self._ensure_open()
		return self._current.get()

	def register_namespace(
		self,
		name: str,
		kind: KindFilter = BackendKind.LOCAL,
		config: Optional[BackendConfig] = None,
	) -> bool:
		"""Register ``name``; see :meth:`NamespaceRegistry.register`."""
		return self._registry.register(name, kind, config)

	def use_namespace(self, name: str) -> Token[str]:
		"""
		Make ``name`` the current namespace of the calling context.

		Raises:
			UnknownNamespace: If ``name`` is not registered
		"""
		self._registry.resolve(name)
		token = self._current.set(name)
		logger.debug("switched to namespace: %s", name)
		return token

	def namespace_scope(self, name: str) -> _NamespaceScope:
		"""Context manager (sync or async) selecting ``name`` temporarily."""
		return _NamespaceScope(self, name)

	def is_enabled(self, kind: KindFilter) -> bool:
		self._ensure_open()
		return self._registry.is_enabled(kind)

	def _resolve(self, namespace: Optional[str]) -> tuple[Namespace, BaseCacheBackend]:
		self._ensure_open()
		return self._registry.resolve(namespace or self._current.get())

	def make_key(self, key: str, namespace: Optional[str] = None) -> str:
		"""Backend key for an application key."""
		ns, _ = self._resolve(namespace)
		return self.key_builder.build(key, ns.name)

	def make_file_key(self, file_path: PathLike, namespace: Optional[str] = None) -> str:
		"""Backend key for a file path."""
		return self.make_key(self.key_builder.relative_path(file_path), namespace)

	# ------------------------------------------------------------------
	# read / write

	async def get_or_compute(
		self,
		key: str,
		compute: Compute[T],
		*,
		namespace: Optional[str] = None,
		ttl: Optional[int] = None,
	) -> T:
		"""
		Return the cached value for ``key``, computing and storing it on a miss.

		``compute`` may be a plain or an async callable. Backend faults fall
		back to ``compute``; exceptions raised by ``compute`` propagate.
		A ``ttl`` of zero or less is rejected with ``ValueError``.
		"""
		check_ttl(ttl)
		ns, backend = self._resolve(namespace)

		if not self._registry.is_enabled(ns.kind):
			return await _call_compute(compute)

		cache_key = self.key_builder.build(key, ns.name)

		try:
			cached = await backend.get(cache_key)
		except NotReady:
			raise
		except Exception:
			logger.exception("get of %s failed; computing directly", cache_key)
			return await _call_compute(compute)

		if cached is not None:
			logger.debug("cache hit: %s", cache_key)
			return cast(T, cached)

		logger.debug("cache miss: %s", cache_key)
		if self.settings.coalesce_misses:
			return await self._compute_once(backend, cache_key, compute, ttl)

		value = await _call_compute(compute)
		await self._store(backend, cache_key, value, ttl)
		return value

	async def _compute_once(
		self,
		backend: BaseCacheBackend,
		cache_key: str,
		compute: Compute[T],
		ttl: Optional[int],
	) -> T:
		pending = self._inflight.get(cache_key)
		if pending is not None:
			try:
				return cast(T, await asyncio.shield(pending))
			except asyncio.CancelledError:
				if not pending.cancelled():
					raise
				# the computing task was cancelled, not this one: take over
				logger.debug("compute of %s was cancelled; retrying", cache_key)
				return await self._compute_once(backend, cache_key, compute, ttl)

		future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
		self._inflight[cache_key] = future
		try:
			value = await _call_compute(compute)
		except asyncio.CancelledError:
			future.cancel()
			raise
		except Exception as e:
			future.set_exception(e)
			# waiters re-raise it; mark it retrieved for when there are none
			future.exception()
			raise
		finally:
			self._inflight.pop(cache_key, None)

		future.set_result(value)
		await self._store(backend, cache_key, value, ttl)
		return value

	async def _store(
		self,
		backend: BaseCacheBackend,
		cache_key: str,
		value: Any,
		ttl: Optional[int],
	) -> bool:
		if value is None:
			# None reads back as a miss, so there is nothing to gain
			return False
		try:
			await backend.set(cache_key, value, ttl)
		except NotReady:
			raise
		except Exception:
			logger.exception("set of %s failed", cache_key)
			return False
		return True

	async def put(
		self,
		key: str,
		value: Any,
		*,
		namespace: Optional[str] = None,
		ttl: Optional[int] = None,
	) -> bool:
		"""
		Store ``value`` under ``key``.

		Returns False when caching is disabled for the namespace's backend
		or the backend could not store it.
		"""
		check_ttl(ttl)
		ns, backend = self._resolve(namespace)
		if not self._registry.is_enabled(ns.kind):
			return False
		return await self._store(backend, self.key_builder.build(key, ns.name), value, ttl)

	async def invalidate(self, key: str, *, namespace: Optional[str] = None) -> int:
		"""Drop ``key``; returns the number of entries removed."""
		ns, backend = self._resolve(namespace)
		cache_key = self.key_builder.build(key, ns.name)
		try:
			return await backend.delete(cache_key)
		except NotReady:
			raise
		except Exception:
			logger.exception("delete of %s failed", cache_key)
			return 0

	# ------------------------------------------------------------------
	# bulk

	def _select(self, backend: KindFilter, namespace: str) -> list[Namespace]:
		self._ensure_open()
		if backend != ANY:
			try:
				BackendKind(backend)
			except ValueError:
				raise ValueError(f"Unknown backend filter: {backend!r}") from None

		return [
			ns
			for ns in self._registry.namespaces()
			if kind_matches(ns.kind, backend) and (namespace == ANY or ns.name == namespace)
		]

	async def invalidate_all(
		self,
		backend: KindFilter = ANY,
		namespace: str = ANY,
		pattern: str = "*",
	) -> int:
		"""
		Drop every key matching ``pattern`` in the selected namespaces.

		Namespaces are processed concurrently and independently; a namespace
		whose backend fails is logged and contributes nothing to the count.

		:param backend: Backend kind to restrict to, or ``"*"``.
		:param namespace: Namespace name to restrict to, or ``"*"``.
		:param pattern: Glob pattern applied after the namespace prefix.
		:return: Total number of keys removed.
		"""
		targets = self._select(backend, namespace)
		results = await asyncio.gather(
			*(
				self._registry.backend_for(ns.kind).delete_keys(_scoped(ns, pattern))
				for ns in targets
			),
			return_exceptions=True,
		)

		removed = 0
		for ns, result in zip(targets, results):
			if isinstance(result, BaseException):
				logger.error("dropping keys in namespace %s failed: %r", ns.name, result)
				continue
			removed += result
		return removed

	async def list_all(
		self,
		backend: KindFilter = ANY,
		namespace: str = ANY,
		pattern: str = "*",
	) -> list[str]:
		"""List keys matching ``pattern`` across the selected namespaces."""
		targets = self._select(backend, namespace)
		results = await asyncio.gather(
			*(
				self._registry.backend_for(ns.kind).keys(_scoped(ns, pattern))
				for ns in targets
			),
			return_exceptions=True,
		)

		keys: list[str] = []
		for ns, result in zip(targets, results):
			if isinstance(result, BaseException):
				logger.error("listing keys in namespace %s failed: %r", ns.name, result)
				continue
			keys.extend(result)
		return keys

	# ------------------------------------------------------------------
	# lifecycle

	async def set_enabled(self, kind: KindFilter, enabled: bool) -> None:
		"""
		Turn caching on or off for every namespace of ``kind``.

		Turning it off also drops everything those namespaces hold, so
		nothing stale is served once it is turned back on.
		"""
		kind = BackendKind(kind)
		self._registry.set_enabled(kind, enabled)
		logger.info("%s caching %s", kind.value, "enabled" if enabled else "disabled")
		if not enabled:
			await self.invalidate_all(backend=kind)

	async def shutdown(self) -> None:
		"""Close every backend. Any later call raises :class:`NotReady`."""
		if self._registry.closed:
			return
		await self._registry.close()
		self._inflight.clear()
		logger.info("cache shut down")

	async def __aenter__(self) -> "CacheFacade":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.shutdown()


__all__ = ["CacheFacade"]
