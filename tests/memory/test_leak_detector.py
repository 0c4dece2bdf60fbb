from __future__ import annotations

import asyncio

import pytest

from kairos.memory import (
    DETECTION_WINDOW,
    MAX_SAMPLES,
    MemoryLeakDetector,
    MemorySample,
    linear_trend,
)
from kairos.observability import InMemoryCacheMetrics

_MB = 1024 * 1024


def run_async(coro):
    return asyncio.run(coro)


def _sample(used: int, *, limit: int = 1024 * _MB, at: float = 0.0) -> MemorySample:
    return MemorySample(used_bytes=used, total_bytes=used * 2, limit_bytes=limit, taken_at=at)


class _FakeProbe:
    def __init__(self, readings: list[int | None]) -> None:
        self.readings = list(readings)
        self.calls = 0

    def __call__(self) -> MemorySample | None:
        self.calls += 1
        if not self.readings:
            return _sample(100 * _MB, at=float(self.calls))
        used = self.readings.pop(0)
        if used is None:
            return None
        return _sample(used, at=float(self.calls))


def test_linear_trend_matches_least_squares_slope():
    assert linear_trend([]) == 0.0
    assert linear_trend([5.0]) == 0.0
    assert linear_trend([1.0, 2.0, 3.0, 4.0]) == pytest.approx(1.0)
    assert linear_trend([10.0, 10.0, 10.0]) == pytest.approx(0.0)
    assert linear_trend([4.0, 2.0, 0.0]) == pytest.approx(-2.0)


def test_steady_growth_is_reported_as_leak():
    metrics = InMemoryCacheMetrics()
    reports = []
    detector = MemoryLeakDetector(
        _FakeProbe([]), metrics=metrics, on_leak=reports.append
    )

    flags = [detector.record(_sample(50 * _MB + step * 2 * _MB)) for step in range(15)]

    assert flags[: DETECTION_WINDOW - 1] == [False] * (DETECTION_WINDOW - 1)
    assert all(flags[DETECTION_WINDOW - 1 :])
    assert detector.leak_suspected is True
    assert metrics.total("memory_leak_suspected_total") == 15 - DETECTION_WINDOW + 1
    assert len(reports) == 15 - DETECTION_WINDOW + 1

    report = detector.get_report()
    assert report.is_leaking is True
    assert report.trend == pytest.approx(2 * _MB)
    assert report.current is not None
    assert report.current.used_bytes == 50 * _MB + 14 * 2 * _MB


def test_flat_or_oscillating_usage_is_not_a_leak():
    detector = MemoryLeakDetector(_FakeProbe([]))
    for step in range(30):
        wobble = _MB if step % 2 else -_MB
        assert detector.record(_sample(200 * _MB + wobble)) is False

    report = detector.get_report()
    assert report.is_leaking is False
    assert abs(report.trend) < 1_000_000


def test_detection_needs_full_window():
    detector = MemoryLeakDetector(_FakeProbe([]))
    for step in range(DETECTION_WINDOW - 1):
        assert detector.record(_sample(step * 50 * _MB)) is False
    assert detector.leak_suspected is False


def test_growth_that_stops_clears_suspicion():
    detector = MemoryLeakDetector(_FakeProbe([]))
    for step in range(12):
        detector.record(_sample(step * 5 * _MB))
    assert detector.leak_suspected is True

    for _ in range(DETECTION_WINDOW):
        detector.record(_sample(60 * _MB))
    assert detector.leak_suspected is False


def test_window_keeps_most_recent_samples():
    detector = MemoryLeakDetector(_FakeProbe([]))
    for step in range(MAX_SAMPLES + 25):
        detector.record(_sample(100 * _MB, at=float(step)))

    report = detector.get_report()
    assert detector.sample_count == MAX_SAMPLES
    assert report.measurements[0].taken_at == 25.0
    assert report.measurements[-1].taken_at == float(MAX_SAMPLES + 24)


def test_sample_once_skips_missing_readings():
    probe = _FakeProbe([None, 10 * _MB])
    detector = MemoryLeakDetector(probe)

    assert detector.sample_once() is None
    assert detector.sample_count == 0
    sample = detector.sample_once()
    assert sample is not None and sample.used_bytes == 10 * _MB
    assert detector.sample_count == 1


def test_on_leak_failure_is_logged_not_raised():
    def _explode(report) -> None:
        raise RuntimeError("alert sink down")

    detector = MemoryLeakDetector(_FakeProbe([]), on_leak=_explode)
    for step in range(DETECTION_WINDOW):
        detector.record(_sample(step * 10 * _MB))

    assert detector.leak_suspected is True


def test_report_to_dict_is_json_ready():
    detector = MemoryLeakDetector(_FakeProbe([]))
    assert detector.get_report().to_dict()["current"] is None

    detector.record(_sample(2 * _MB, limit=8 * _MB))
    payload = detector.get_report().to_dict()
    assert payload["samples"] == 1
    assert payload["is_leaking"] is False
    assert payload["current"]["used_fraction"] == 0.25

    detector.reset()
    assert detector.sample_count == 0


def test_max_samples_must_cover_detection_window():
    with pytest.raises(ValueError):
        MemoryLeakDetector(_FakeProbe([]), max_samples=DETECTION_WINDOW - 1)


def test_start_monitoring_requires_running_loop():
    detector = MemoryLeakDetector(_FakeProbe([]))
    assert detector.start_monitoring(0.01) is False
    assert detector.is_monitoring is False


def test_monitoring_samples_periodically_and_stops():
    async def scenario() -> None:
        probe = _FakeProbe([])
        detector = MemoryLeakDetector(probe)

        assert detector.start_monitoring(0.01) is True
        assert detector.start_monitoring(0.01) is True
        assert detector.is_monitoring is True
        await asyncio.sleep(0.08)

        detector.stop_monitoring()
        detector.stop_monitoring()
        taken = detector.sample_count
        await asyncio.sleep(0.03)

        assert taken >= 2
        assert detector.sample_count == taken
        assert detector.is_monitoring is False

    run_async(scenario())
