# tiercache/config.py

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tiercache.exceptions import CacheConfigError
from tiercache.serializer import SerializationFormat

DEFAULT_TTL = 60 * 60 * 24
DEFAULT_REDIS_URL = "redis://127.0.0.1:6379"
DEFAULT_REDIS_PORT = 6379
DEFAULT_NAMESPACE = "default"


class BackendConfig(BaseModel):
    """
    Connection parameters for one backend kind.

    Every field is optional; anything left unset is filled from
    :class:`CacheSettings` when the backend is provisioned. A config is
    only read once: the first namespace registered for a kind decides how
    that kind's shared backend connects.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    address: Optional[str] = None
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    user: Optional[str] = None
    password: Optional[str] = None
    default_ttl: Optional[int] = Field(default=None, gt=0)


class CacheSettings(BaseModel):
    """
    Facade-wide settings.

    ``backend_address`` may be a ``redis://`` URL or a bare host name; a
    bare host is combined with ``port``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backend_address: str = DEFAULT_REDIS_URL
    port: int = Field(default=DEFAULT_REDIS_PORT, gt=0, lt=65536)
    user: Optional[str] = None
    password: Optional[str] = None
    default_ttl: int = Field(default=DEFAULT_TTL, gt=0)
    default_namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)
    serialization_format: SerializationFormat = SerializationFormat.JSON
    coalesce_misses: bool = False
    max_entries: int = Field(default=10_000, gt=0)

    @classmethod
    def build(cls, **options: Any) -> "CacheSettings":
        """
        Validate ``options`` into settings.

        Raises:
            CacheConfigError: If any option is unknown or out of range
        """
        try:
            return cls(**options)
        except ValidationError as e:
            raise CacheConfigError(f"Invalid cache settings: {e}") from e

    def resolve(self, config: Optional[BackendConfig]) -> BackendConfig:
        """Fill the unset fields of ``config`` from these settings."""
        defaults = BackendConfig(
            address=self.backend_address,
            port=self.port,
            user=self.user,
            password=self.password,
            default_ttl=self.default_ttl,
        )
        if config is None:
            return defaults
        return defaults.model_copy(update=config.model_dump(exclude_none=True))


__all__ = [
    "BackendConfig",
    "CacheSettings",
    "CacheConfigError",
    "DEFAULT_TTL",
    "DEFAULT_NAMESPACE",
]
