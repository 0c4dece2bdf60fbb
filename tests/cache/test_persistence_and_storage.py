from __future__ import annotations

import json
from dataclasses import dataclass

import pytest

from kairos.cache import (
    AdvancedCache,
    CacheConfig,
    FileStorage,
    InMemoryStorage,
    RedisStorage,
    TypeAdapterCodec,
    create_storage,
)
from kairos.errors import CachePersistenceError
from kairos.observability import InMemoryCacheMetrics


class _FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _FailingStorage(InMemoryStorage):
    backend_id = "failing"

    def set_item(self, key: str, value: str) -> None:
        raise CachePersistenceError("disk full")


class _FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}

    def get(self, key: str):
        return self.data.get(key)

    def set(self, key: str, value: str):
        self.data[key] = value.encode("utf-8")
        return True

    def delete(self, key: str):
        return 1 if self.data.pop(key, None) is not None else 0

    def scan_iter(self, match: str):
        prefix = match.rstrip("*")
        for key in list(self.data):
            if key.startswith(prefix):
                yield key.encode("utf-8")


@dataclass
class _Profile:
    user_id: int
    name: str


def _persistent(storage_key: str = "kairos_items_cache", **overrides) -> CacheConfig:
    return CacheConfig(persist_to_storage=True, storage_key=storage_key, **overrides)


def test_entries_and_counters_survive_restart():
    storage = InMemoryStorage()
    first: AdvancedCache[dict] = AdvancedCache(_persistent(), storage=storage)
    first.set("a", {"value": 1})
    assert first.get("a") == {"value": 1}
    first.set("b", {"value": 2}, priority=3)

    second: AdvancedCache[dict] = AdvancedCache(_persistent(), storage=storage)

    assert second.keys() == ["a", "b"]
    assert second.get_stats().hit_count == 1
    assert second.get("b") == {"value": 2}
    entry = second.entry("b")
    assert entry is not None and entry.priority == 3


def test_expired_entries_are_dropped_on_load():
    clock = _FakeClock()
    storage = InMemoryStorage()
    first: AdvancedCache[int] = AdvancedCache(_persistent(), storage=storage, clock=clock)
    first.set("short", 1, ttl_s=1)
    first.set("long", 2, ttl_s=100)

    clock.now += 5
    second: AdvancedCache[int] = AdvancedCache(_persistent(), storage=storage, clock=clock)

    assert second.keys() == ["long"]
    snapshot = json.loads(storage.get_item("kairos_items_cache") or "{}")
    assert [row[0] for row in snapshot["entries"]] == ["long"]


def test_reads_do_not_rewrite_storage():
    storage = InMemoryStorage()
    cache: AdvancedCache[int] = AdvancedCache(_persistent(), storage=storage)
    cache.set("a", 1)
    before = storage.get_item("kairos_items_cache")

    cache.get("a")
    cache.get("missing")

    assert storage.get_item("kairos_items_cache") == before


def test_storage_failures_never_fail_cache_operations():
    metrics = InMemoryCacheMetrics()
    cache: AdvancedCache[int] = AdvancedCache(
        _persistent(), storage=_FailingStorage(), metrics=metrics, name="flaky"
    )
    cache.set("a", 1)
    cache.delete("a")
    cache.set("b", 2)

    assert cache.get("b") == 2
    assert metrics.total("cache_persist_failures_total", tags={"cache": "flaky"}) == 3


def test_corrupted_snapshot_starts_empty():
    storage = InMemoryStorage()
    storage.set_item("kairos_items_cache", "{not json")
    metrics = InMemoryCacheMetrics()

    cache: AdvancedCache[int] = AdvancedCache(_persistent(), storage=storage, metrics=metrics)

    assert len(cache) == 0
    assert metrics.total("cache_persist_failures_total") == 1
    cache.set("a", 1)
    assert json.loads(storage.get_item("kairos_items_cache") or "{}")["entries"][0][0] == "a"


def test_persistence_requires_storage_key():
    storage = InMemoryStorage()
    cache: AdvancedCache[int] = AdvancedCache(
        CacheConfig(persist_to_storage=True), storage=storage
    )
    cache.set("a", 1)

    assert storage.keys() == []


def test_persistence_is_off_by_default():
    storage = InMemoryStorage()
    cache: AdvancedCache[int] = AdvancedCache(
        CacheConfig(storage_key="kairos_items_cache"), storage=storage
    )
    cache.set("a", 1)

    assert storage.keys() == []


def test_type_adapter_codec_restores_dataclass_payloads():
    storage = InMemoryStorage()
    codec = TypeAdapterCodec(_Profile)
    first: AdvancedCache[_Profile] = AdvancedCache(_persistent(), storage=storage, codec=codec)
    first.set("user:1", _Profile(user_id=1, name="Ada"))

    raw = json.loads(storage.get_item("kairos_items_cache") or "{}")
    assert raw["entries"][0][1]["data"] == {"user_id": 1, "name": "Ada"}

    second: AdvancedCache[_Profile] = AdvancedCache(_persistent(), storage=storage, codec=codec)
    restored = second.get("user:1")
    assert isinstance(restored, _Profile)
    assert restored == _Profile(user_id=1, name="Ada")


def test_type_adapter_codec_rejects_invalid_payload():
    codec = TypeAdapterCodec(_Profile)
    with pytest.raises(CachePersistenceError):
        codec.decode({"user_id": "not-a-number"})


def test_invalid_stored_payload_discards_snapshot():
    storage = InMemoryStorage()
    plain: AdvancedCache[dict] = AdvancedCache(_persistent(), storage=storage)
    plain.set("user:1", {"unexpected": True})

    typed: AdvancedCache[_Profile] = AdvancedCache(
        _persistent(), storage=storage, codec=TypeAdapterCodec(_Profile)
    )

    assert len(typed) == 0


def test_file_storage_round_trip(tmp_path):
    storage = FileStorage(tmp_path / "slots")
    assert storage.keys() == []
    assert storage.get_item("kairos_query_cache") is None
    assert storage.usage_bytes() == 0

    storage.set_item("kairos_query_cache", '{"entries": []}')
    storage.set_item("other", "x")

    assert storage.get_item("kairos_query_cache") == '{"entries": []}'
    assert storage.keys() == ["kairos_query_cache", "other"]
    assert storage.usage_bytes() == len('{"entries": []}') + 1

    storage.remove_item("other")
    storage.remove_item("other")
    assert storage.keys() == ["kairos_query_cache"]


def test_file_storage_rejects_unsafe_slot_names(tmp_path):
    storage = FileStorage(tmp_path)
    with pytest.raises(CachePersistenceError):
        storage.set_item("../escape", "x")
    with pytest.raises(CachePersistenceError):
        storage.get_item("a/b")


def test_cache_persists_through_file_storage(tmp_path):
    first: AdvancedCache[str] = AdvancedCache(_persistent(), storage=FileStorage(tmp_path))
    first.set("greeting", "hello")

    second: AdvancedCache[str] = AdvancedCache(_persistent(), storage=FileStorage(tmp_path))
    assert second.get("greeting") == "hello"


def test_redis_storage_uses_prefixed_keys():
    client = _FakeRedis()
    storage = RedisStorage(client, prefix="tests:slots:")

    storage.set_item("kairos_query_cache", "payload")
    storage.set_item("other", "v")

    assert set(client.data) == {"tests:slots:kairos_query_cache", "tests:slots:other"}
    assert storage.get_item("kairos_query_cache") == "payload"
    assert storage.get_item("missing") is None
    assert storage.keys() == ["kairos_query_cache", "other"]
    assert storage.usage_bytes() == len("kairos_query_cache") + len("payload") + len("other") + 1

    storage.remove_item("other")
    assert storage.keys() == ["kairos_query_cache"]


def test_redis_storage_wraps_client_errors():
    class _BrokenRedis(_FakeRedis):
        def set(self, key: str, value: str):
            raise ConnectionError("redis down")

    storage = RedisStorage(_BrokenRedis())
    with pytest.raises(CachePersistenceError):
        storage.set_item("kairos_query_cache", "payload")


def test_storage_factory_resolves_backends(tmp_path):
    assert isinstance(create_storage(), InMemoryStorage)
    assert isinstance(create_storage("memory"), InMemoryStorage)
    assert isinstance(create_storage("file", directory=tmp_path), FileStorage)

    redis_storage = create_storage("redis", redis_client=_FakeRedis(), prefix="tests")
    assert isinstance(redis_storage, RedisStorage)
    assert redis_storage.backend_id == "redis"

    existing = InMemoryStorage()
    assert create_storage(existing) is existing

    with pytest.raises(ValueError):
        create_storage("file")
    with pytest.raises(ValueError):
        create_storage("bad-backend")


def test_redis_storage_wraps_scan_errors():
    class _NoScanRedis(_FakeRedis):
        def scan_iter(self, match: str):
            raise ConnectionError("redis down")

    storage = RedisStorage(_NoScanRedis())
    with pytest.raises(CachePersistenceError):
        storage.keys()
    with pytest.raises(CachePersistenceError):
        storage.usage_bytes()


def test_file_storage_wraps_listing_errors(tmp_path, monkeypatch):
    storage = FileStorage(tmp_path)
    storage.set_item("kairos_query_cache", "{}")

    def _unreadable(self):
        raise PermissionError("listing denied")

    monkeypatch.setattr(type(tmp_path), "iterdir", _unreadable)
    with pytest.raises(CachePersistenceError):
        storage.keys()
    with pytest.raises(CachePersistenceError):
        storage.usage_bytes()
