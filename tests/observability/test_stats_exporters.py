from __future__ import annotations

import io
from concurrent.futures import ThreadPoolExecutor

from prometheus_client import CollectorRegistry

from kairos.cache import AdvancedCache
from kairos.observability import (
    ConsoleStatsExporter,
    InMemoryCacheMetrics,
    JSONLStatsExporter,
    PrometheusCacheMetrics,
)
from kairos.observability.exporters import stats_schema_version


def _stats(*, leaking: bool = False) -> dict:
    return {
        "caches": {
            "query": {"size": 3, "max_size": 500, "hit_count": 9, "miss_count": 3, "hit_rate": 0.75},
        },
        "storage_usage_bytes": 2 * 1024 * 1024,
        "memory": {"samples": 12, "is_leaking": leaking, "trend_mb_per_sample": 1.5},
    }


def test_jsonl_exporter_is_append_only(tmp_path):
    path = tmp_path / "nested" / "stats.jsonl"
    exporter = JSONLStatsExporter(path)
    assert exporter.history() == []

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda _: exporter.export(_stats()), range(12)))

    rows = exporter.history()
    assert len(rows) == 12
    assert rows[0].schema_version == stats_schema_version() == "cache_stats.v1"
    assert rows[0].cache_stats("query")["hit_count"] == 9
    assert rows[0].cache_stats("images") is None
    assert rows[0].storage_usage_bytes == 2 * 1024 * 1024
    assert rows[0].leak_suspected is False
    assert exporter.path == path


def test_console_exporter_writes_human_output():
    buf = io.StringIO()
    ConsoleStatsExporter(output=buf, color=False).export(_stats())
    text = buf.getvalue()

    assert "Kairos Cache Stats" in text
    assert "query" in text
    assert "hit_rate=75.0%" in text
    assert "2.00MB" in text
    assert "OK" in text


def test_console_exporter_flags_suspected_leak():
    buf = io.StringIO()
    ConsoleStatsExporter(output=buf, color=False).export(_stats(leaking=True))
    assert "LEAK SUSPECTED" in buf.getvalue()


def test_in_memory_metrics_filter_by_tags():
    metrics = InMemoryCacheMetrics()
    metrics.incr("cache_hits_total", tags={"cache": "a"})
    metrics.incr("cache_hits_total", 2, tags={"cache": "b"})
    metrics.incr("cache_misses_total")

    assert metrics.total("cache_hits_total") == 3
    assert metrics.total("cache_hits_total", tags={"cache": "b"}) == 2
    assert metrics.total("cache_misses_total") == 1
    assert metrics.total("unknown") == 0

    metrics.reset()
    assert metrics.total("cache_hits_total") == 0


def test_prometheus_metrics_count_cache_activity():
    registry = CollectorRegistry()
    metrics = PrometheusCacheMetrics(namespace="kairos_test", registry=registry)
    cache: AdvancedCache[str] = AdvancedCache(name="prom", metrics=metrics)

    cache.set("a", "x")
    cache.get("a")
    cache.get("a")
    cache.get("missing")
    metrics.incr("memory_leak_suspected_total")

    assert registry.get_sample_value("kairos_test_cache_hits_total", {"cache": "prom"}) == 2
    assert registry.get_sample_value("kairos_test_cache_misses_total", {"cache": "prom"}) == 1
    assert registry.get_sample_value("kairos_test_memory_leak_suspected_total") == 1
