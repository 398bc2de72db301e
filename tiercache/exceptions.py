class CacheError(RuntimeError):
	"""Base exception for cache-related errors."""


class CacheConfigError(CacheError):
	"""Raised when cache settings or a backend config fail validation."""


class InvalidNamespaceConfig(CacheError):
	"""Raised when a namespace is registered without a usable name or kind."""


class UnknownNamespace(CacheError, KeyError):
	"""Raised when a namespace is looked up before it was registered."""

	def __init__(self, name: str) -> None:
		super().__init__(f"Namespace {name!r} is not registered.")
		self.name = name

	def __str__(self) -> str:
		return self.args[0]


class BackendConnectionFault(CacheError):
	"""Raised by a backend when its transport is unavailable."""


class NotReady(CacheError):
	"""Raised when the cache is used after it was shut down."""


__all__ = [
	"CacheError",
	"CacheConfigError",
	"InvalidNamespaceConfig",
	"UnknownNamespace",
	"BackendConnectionFault",
	"NotReady",
]
