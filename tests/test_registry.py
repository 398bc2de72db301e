"""Tests for the namespace registry."""

import logging

import pytest

from tiercache.backend.base import BackendStatus
from tiercache.backend.memory import MemoryCacheBackend
from tiercache.backend.redis import RedisCacheBackend
from tiercache.config import BackendConfig, CacheSettings
from tiercache.exceptions import NotReady, UnknownNamespace
from tiercache.registry import BackendKind, NamespaceRegistry, kind_matches


@pytest.fixture
def registry(settings: CacheSettings, fake_redis) -> NamespaceRegistry:
    return NamespaceRegistry(settings, redis_client=fake_redis)


class TestRegister:
    def test_register_and_resolve(self, registry: NamespaceRegistry) -> None:
        assert registry.register("A", "local")

        namespace, backend = registry.resolve("A")
        assert namespace.name == "A"
        assert namespace.kind is BackendKind.LOCAL
        assert isinstance(backend, MemoryCacheBackend)

    def test_namespaces_of_a_kind_share_a_backend(self, registry: NamespaceRegistry) -> None:
        registry.register("A", BackendKind.LOCAL)
        registry.register("B", BackendKind.LOCAL)

        assert registry.resolve("A")[1] is registry.resolve("B")[1]

    def test_kinds_get_separate_backends(self, registry: NamespaceRegistry) -> None:
        registry.register("A", "local")
        registry.register("R", "remote")

        assert isinstance(registry.resolve("R")[1], RedisCacheBackend)
        assert registry.resolve("A")[1] is not registry.resolve("R")[1]

    def test_same_kind_twice_is_idempotent(self, registry: NamespaceRegistry) -> None:
        assert registry.register("A", "local")
        before = registry.namespaces()
        backend = registry.resolve("A")[1]

        assert registry.register("A", "local")
        assert registry.namespaces() == before
        assert registry.resolve("A")[1] is backend

    def test_different_kind_is_rejected(self, registry: NamespaceRegistry, caplog) -> None:
        registry.register("A", "local")

        with caplog.at_level(logging.WARNING, logger="tiercache.registry"):
            assert not registry.register("A", "remote")

        assert registry.kind_of("A") is BackendKind.LOCAL
        assert registry.backend_for("remote") is None
        assert "already registered" in caplog.text

    @pytest.mark.parametrize("name, kind", [
        ("A", "node"),
        ("A", "bogus"),
        ("", "local"),
        (None, "local"),
    ])
    def test_invalid_registration_is_ignored(self, registry: NamespaceRegistry, caplog, name, kind) -> None:
        with caplog.at_level(logging.WARNING, logger="tiercache.registry"):
            assert not registry.register(name, kind)

        assert registry.namespaces() == []
        assert caplog.records

    def test_unknown_namespace(self, registry: NamespaceRegistry) -> None:
        with pytest.raises(UnknownNamespace):
            registry.resolve("nope")
        with pytest.raises(KeyError):
            registry.resolve("nope")


class TestProvisioning:
    def test_remote_config_merges_over_settings(self, registry: NamespaceRegistry) -> None:
        registry.register("R", "remote", BackendConfig(address="redis://h:1/0"))

        backend = registry.backend_for(BackendKind.REMOTE)
        assert backend.config.address == "redis://h:1/0"
        assert backend.default_ttl == 300
        assert backend.config.port == 6379

    def test_later_config_does_not_reconfigure(self, registry: NamespaceRegistry) -> None:
        registry.register("R1", "remote", BackendConfig(address="redis://first:1/0"))
        registry.register("R2", "remote", BackendConfig(address="redis://second:1/0"))

        assert registry.backend_for("remote").config.address == "redis://first:1/0"
        assert registry.resolve("R2")[1] is registry.resolve("R1")[1]

    def test_local_ttl_from_config(self, registry: NamespaceRegistry) -> None:
        registry.register("L", "local", BackendConfig(default_ttl=5))
        assert registry.backend_for("local").default_ttl == 5

    def test_remote_backend_is_not_connected_on_register(self, registry: NamespaceRegistry, fake_redis) -> None:
        registry.register("R", "remote")
        assert fake_redis.pings == 0
        assert registry.backend_for("remote").status is BackendStatus.UNINITIALIZED


class TestState:
    def test_enabled_flags_are_per_kind(self, registry: NamespaceRegistry) -> None:
        registry.set_enabled("local", False)

        assert not registry.is_enabled(BackendKind.LOCAL)
        assert registry.is_enabled(BackendKind.REMOTE)

    def test_ready(self, registry: NamespaceRegistry) -> None:
        assert not registry.ready
        registry.register("A", "local")
        assert registry.ready
        registry.register("R", "remote")
        assert not registry.ready

    @pytest.mark.asyncio
    async def test_close(self, registry: NamespaceRegistry, fake_redis) -> None:
        registry.register("A", "local")
        registry.register("R", "remote")
        local = registry.backend_for("local")
        await registry.resolve("R")[1].get("R:x")

        await registry.close()
        await registry.close()

        assert registry.closed
        assert local.status is BackendStatus.CLOSED
        assert fake_redis.closed
        with pytest.raises(NotReady):
            registry.resolve("A")
        with pytest.raises(NotReady):
            registry.register("C", "local")


def test_kind_matches() -> None:
    assert kind_matches(BackendKind.LOCAL, "*")
    assert kind_matches(BackendKind.LOCAL, "local")
    assert not kind_matches(BackendKind.LOCAL, BackendKind.REMOTE)
