"""
Tests for the in-memory metrics collector.
"""

from smpp_bridge.metrics import HISTOGRAM_WINDOW, BridgeMetrics, MetricLabels, MetricNames, Timer


class TestBridgeMetrics:

    def test_counters(self):
        metrics = BridgeMetrics()
        metrics.increment(MetricNames.RELAY_SENT)
        metrics.increment(MetricNames.RELAY_SENT, 2)

        assert metrics.get_counter(MetricNames.RELAY_SENT) == 3
        assert metrics.get_counter(MetricNames.RELAY_FAILED) == 0
        assert metrics.snapshot() == {MetricNames.RELAY_SENT: 3}

    def test_histogram_stats(self):
        metrics = BridgeMetrics()
        for value in (0.1, 0.3, 0.2):
            metrics.observe(MetricNames.RELAY_DURATION, value)

        stats = metrics.get_histogram_stats(MetricNames.RELAY_DURATION)

        assert stats["count"] == 3
        assert stats["p95"] == 0.3
        assert metrics.get_histogram_stats("missing")["count"] == 0

    def test_histogram_memory_is_bounded(self):
        metrics = BridgeMetrics(histogram_window=10)
        for i in range(5000):
            metrics.observe(MetricNames.RATE_LIMIT_WAIT, i % 7)

        stats = metrics.get_histogram_stats(MetricNames.RATE_LIMIT_WAIT)

        assert stats["window"] == 10
        assert stats["count"] == 5000
        assert stats["sum"] == sum(i % 7 for i in range(5000))
        assert stats["max"] == 6

    def test_default_window(self):
        metrics = BridgeMetrics()
        for _ in range(HISTOGRAM_WINDOW + 100):
            metrics.observe(MetricNames.RELAY_DURATION, 0.1)

        assert metrics.get_histogram_stats(MetricNames.RELAY_DURATION)["window"] == HISTOGRAM_WINDOW

    def test_prometheus_export(self):
        metrics = BridgeMetrics(MetricLabels(service="bridge", environment="test"))
        metrics.increment(MetricNames.SUBMIT_ACCEPTED)
        metrics.observe(MetricNames.RATE_LIMIT_WAIT, 0.5)

        lines = metrics.export_prometheus().splitlines()

        assert 'smpp_submit_accepted_total{service="bridge",env="test"} 1' in lines
        assert 'smpp_rate_limit_wait_seconds_count{service="bridge",env="test"} 1' in lines

    def test_timer_records_duration(self):
        metrics = BridgeMetrics()

        with Timer(metrics, MetricNames.RELAY_DURATION):
            pass

        assert metrics.get_histogram_stats(MetricNames.RELAY_DURATION)["count"] == 1

    def test_timer_without_metrics(self):
        with Timer(None, MetricNames.RELAY_DURATION) as timer:
            pass

        assert timer.metrics is None
