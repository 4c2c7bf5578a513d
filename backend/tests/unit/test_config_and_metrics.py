"""Unit tests for settings validation and the aggregation metrics collector."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from scorecard.core.config import Settings
from scorecard.core.metrics import MetricsCollector, get_metrics_collector, record_aggregation


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert settings.default_actor_scope == "all"
        assert settings.crown_jewel_trend_period == "1y"
        assert settings.cors_origin_list == [
            "http://localhost:3000",
            "http://localhost:3001",
        ]

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_ACTOR_SCOPE", "assigned")
        monkeypatch.setenv("MAX_SNAPSHOT_TECHNIQUES", "10")

        settings = Settings(_env_file=None)

        assert settings.default_actor_scope == "assigned"
        assert settings.max_snapshot_techniques == 10

    @pytest.mark.parametrize(
        "field,value",
        [
            ("environment", "prod"),
            ("default_actor_scope", "mine"),
            ("crown_jewel_trend_period", "2y"),
            ("max_snapshot_techniques", 0),
            ("metrics_window_size", -1),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            Settings(_env_file=None, **{field: value})


class TestMetricsCollector:
    def setup_method(self):
        self.collector = MetricsCollector(window_size=5)

    def test_empty_stats(self):
        stats = self.collector.get_all_stats()
        assert stats["latency"]["sample_size"] == 0
        assert stats["total_calls"] == 0
        assert stats["calls_by_operation"] == {}

    def test_latency_stats(self):
        for duration in (10.0, 20.0, 30.0):
            self.collector.record_aggregation(duration, "metrics", techniques=4)

        latency = self.collector.get_latency_stats()
        assert latency["avg_ms"] == 20.0
        assert latency["p50_ms"] == 20.0
        assert latency["p95_ms"] == 30.0
        assert latency["sample_size"] == 3

    def test_window_rolls_but_totals_accumulate(self):
        for i in range(8):
            self.collector.record_aggregation(1.0, "metrics", techniques=1, warnings=1)

        stats = self.collector.get_all_stats()
        assert stats["sample_size"] == 5
        assert stats["techniques_in_window"] == 5
        assert stats["total_calls"] == 8
        assert stats["total_warnings"] == 8

    def test_concurrent_recording(self):
        collector = MetricsCollector(window_size=1000)

        def record(i):
            collector.record_aggregation(float(i), "tools", techniques=1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(record, range(400)))

        assert collector.get_all_stats()["total_calls"] == 400
        assert collector.get_call_counts() == {"tools": 400}

    def test_global_collector(self):
        record_aggregation(5.0, "metrics", 2)
        assert get_metrics_collector().get_all_stats()["total_calls"] == 1
