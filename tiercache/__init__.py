from tiercache.config import BackendConfig, CacheSettings
from tiercache.decorators import cacheable, cache_evict, cache_put
from tiercache.exceptions import (
	BackendConnectionFault,
	CacheConfigError,
	CacheError,
	InvalidNamespaceConfig,
	NotReady,
	UnknownNamespace,
)
from tiercache.facade import CacheFacade
from tiercache.files import drop_file, read_file, write_file
from tiercache.glob import compile_glob
from tiercache.key_builder import DefaultKeyBuilder, KeyBuilder, derive_file_key, normalize_key
from tiercache.registry import BackendKind, Namespace, NamespaceRegistry
from tiercache.serializer import SerializationFormat

__all__ = [
	"BackendConfig",
	"BackendConnectionFault",
	"BackendKind",
	"CacheConfigError",
	"CacheError",
	"CacheFacade",
	"CacheSettings",
	"DefaultKeyBuilder",
	"InvalidNamespaceConfig",
	"KeyBuilder",
	"Namespace",
	"NamespaceRegistry",
	"NotReady",
	"SerializationFormat",
	"UnknownNamespace",
	"cacheable",
	"cache_evict",
	"cache_put",
	"compile_glob",
	"derive_file_key",
	"drop_file",
	"normalize_key",
	"read_file",
	"write_file",
]
