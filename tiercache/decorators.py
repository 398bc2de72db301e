from __future__ import annotations

import functools
import hashlib
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Optional, ParamSpec, TypeVar, cast

from tiercache.facade import CacheFacade
from tiercache.serializer import JSONEncoder

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

_EXCLUDED_PARAMS = frozenset({"request", "response", "db", "session", "self"})


class _KeyEncoder(JSONEncoder):
	"""Encodes call arguments for hashing; unknown objects fall back to repr."""

	def default(self, obj: Any) -> Any:
		try:
			return super().default(obj)
		except TypeError:
			return repr(obj)


class _SkipStore(Exception):
	"""Carries a result that ``unless`` rejected out of the compute callback."""

	def __init__(self, result: Any) -> None:
		super().__init__("result rejected by unless")
		self.result = result


def _ensure_async(func: Callable[..., Any]) -> None:
	if not inspect.iscoroutinefunction(func):
		raise TypeError(
			f"Cache decorators require an async function; got {func.__qualname__}."
		)


async def _maybe_await_bool(value: bool | Awaitable[bool]) -> bool:
	if inspect.isawaitable(value):
		return cast(bool, await cast(Awaitable[bool], value))
	return cast(bool, value)


def _build_key(
	func: Callable[..., Any],
	args: tuple[Any, ...],
	kwargs: dict[str, Any],
	key: Optional[str],
	excluded_params: Optional[set[str]],
) -> str:
	"""
	Application key for one call: ``<key or qualified name>:<args hash>``.

	The facade adds the namespace prefix.
	"""
	excluded = _EXCLUDED_PARAMS if excluded_params is None else excluded_params
	bound = inspect.signature(func).bind_partial(*args, **kwargs)
	bound.apply_defaults()
	arguments = {
		name: value for name, value in bound.arguments.items() if name not in excluded
	}

	raw = json.dumps(arguments, cls=_KeyEncoder, sort_keys=True, separators=(",", ":"))
	args_hash = hashlib.sha256(raw.encode("utf-8")).hexdigest()
	return f"{key or f'{func.__module__}.{func.__qualname__}'}:{args_hash}"


def cacheable(
	cache: CacheFacade,
	*,
	namespace: Optional[str] = None,
	key: Optional[str] = None,
	ttl: Optional[int] = None,
	condition: Optional[Callable[..., bool] | Callable[..., Awaitable[bool]]] = None,
	unless: Optional[Callable[[Any], bool] | Callable[[Any], Awaitable[bool]]] = None,
	excluded_params: Optional[set[str]] = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
	"""Cache decorator similar to Spring's @Cacheable.

	Reads through ``cache``: a hit skips the call, a miss runs it and stores
	the result (unless ``unless`` rejects it).
	"""

	def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
		_ensure_async(func)

		@functools.wraps(func)
		async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
			if condition is not None:
				if not await _maybe_await_bool(condition(*args, **kwargs)):
					logger.debug("cacheable: condition false; bypass cache for %s", func.__qualname__)
					return await func(*args, **kwargs)

			async def compute() -> R:
				result = await func(*args, **kwargs)
				if unless is not None and await _maybe_await_bool(unless(result)):
					raise _SkipStore(result)
				return result

			raw_key = _build_key(func, cast(tuple[Any, ...], args), cast(dict[str, Any], kwargs), key, excluded_params)
			try:
				return await cache.get_or_compute(raw_key, compute, namespace=namespace, ttl=ttl)
			except _SkipStore as skipped:
				return cast(R, skipped.result)

		return wrapper

	return decorator


def cache_put(
	cache: CacheFacade,
	*,
	namespace: Optional[str] = None,
	key: Optional[str] = None,
	ttl: Optional[int] = None,
	condition: Optional[Callable[..., bool] | Callable[..., Awaitable[bool]]] = None,
	unless: Optional[Callable[[Any], bool] | Callable[[Any], Awaitable[bool]]] = None,
	excluded_params: Optional[set[str]] = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
	"""Cache decorator similar to Spring's @CachePut.

	Always executes the function; then stores the result (unless skipped).
	"""

	def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
		_ensure_async(func)

		@functools.wraps(func)
		async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
			result = await func(*args, **kwargs)

			if condition is not None and not await _maybe_await_bool(condition(*args, **kwargs)):
				return result

			if unless is not None and await _maybe_await_bool(unless(result)):
				return result

			raw_key = _build_key(func, cast(tuple[Any, ...], args), cast(dict[str, Any], kwargs), key, excluded_params)
			await cache.put(raw_key, result, namespace=namespace, ttl=ttl)
			return result

		return wrapper

	return decorator


def cache_evict(
	cache: CacheFacade,
	*,
	namespace: Optional[str] = None,
	key: Optional[str] = None,
	all_entries: bool = False,
	before_invocation: bool = False,
	condition: Optional[Callable[..., bool] | Callable[..., Awaitable[bool]]] = None,
	excluded_params: Optional[set[str]] = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
	"""Cache eviction decorator similar to Spring's @CacheEvict.

	With ``all_entries`` every key of ``namespace`` (or of every namespace
	when it is None) is dropped; otherwise only the entry for this call.
	"""

	def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
		_ensure_async(func)

		async def _evict(*args: P.args, **kwargs: P.kwargs) -> None:
			if all_entries:
				await cache.invalidate_all(namespace=namespace or "*")
				return

			raw_key = _build_key(func, cast(tuple[Any, ...], args), cast(dict[str, Any], kwargs), key, excluded_params)
			await cache.invalidate(raw_key, namespace=namespace)

		@functools.wraps(func)
		async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
			if condition is not None:
				if not await _maybe_await_bool(condition(*args, **kwargs)):
					return await func(*args, **kwargs)

			if before_invocation:
				await _evict(*args, **kwargs)

			result = await func(*args, **kwargs)

			if not before_invocation:
				await _evict(*args, **kwargs)

			return result

		return wrapper

	return decorator


__all__ = ["cacheable", "cache_put", "cache_evict"]
