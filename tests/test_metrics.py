"""
Unit tests for metrics module.

Tests cover:
- Counter increment and per-component drop tracking
- Histogram statistics, including the gate summary
- Snapshot and reset
- Thread safety of the shared collector
"""

import logging
import threading

import numpy as np
import pytest

from survey_core.localization import WGS_84
from survey_core.metrics import (
    HIDDEN_POINT,
    INTEGRATOR,
    MetricsCollector,
    get_metrics,
    reset_metrics,
)
from survey_core.stats import HiddenPointSolver, Integrator


class TestMetricsCollectorBasic:
    """Tests for basic metrics collector functionality."""

    def test_standard_counters_start_at_zero(self):
        """Test solver and integrator counters are reported from the start."""
        collector = MetricsCollector()
        counters = collector.snapshot().counters

        for name in MetricsCollector.STANDARD_COUNTERS:
            assert counters[name] == 0
        assert counters['hidden_point_dropped'] == 0
        assert counters['integrator_dropped'] == 0

        assert collector.get_counter('unknown_counter') == 0

    def test_increment_counter(self):
        """Test incrementing a counter."""
        collector = MetricsCollector()

        collector.increment('hidden_point_solve_attempts')
        collector.increment('hidden_point_solve_attempts', 4)

        assert collector.get_counter('hidden_point_solve_attempts') == 5

    def test_drops_bucketed_by_component(self):
        """Test each reason lands in its component's total."""
        collector = MetricsCollector()

        collector.increment_drop('inconsistent_geometry', 3)
        collector.increment_drop('insufficient_inputs')
        collector.increment_drop('new_point_too_far', 2)

        snapshot = collector.snapshot()
        assert collector.get_drop_count('inconsistent_geometry') == 3
        assert snapshot.dropped_by(HIDDEN_POINT) == 4
        assert snapshot.dropped_by(INTEGRATOR) == 2
        assert snapshot.total_dropped() == 6

    def test_unknown_drop_reason_counted_and_logged(self, caplog):
        """Test an unknown reason is still counted, with a warning."""
        collector = MetricsCollector()

        with caplog.at_level(logging.WARNING, logger='survey_core.metrics.counters'):
            collector.increment_drop('cosmic_ray')

        assert 'cosmic_ray' in caplog.text
        assert collector.get_drop_count('cosmic_ray') == 1
        assert collector.snapshot().dropped_by('unknown') == 1
        assert collector.snapshot().dropped_by(HIDDEN_POINT) == 0

    def test_every_reason_has_a_component(self):
        """Test reasons map onto the two engine components."""
        assert set(MetricsCollector.DROP_REASONS.values()) == {HIDDEN_POINT, INTEGRATOR}


class TestHistograms:
    """Tests for histogram functionality."""

    def test_histogram_stats(self):
        """Test statistics over recorded values."""
        collector = MetricsCollector()

        for value in (1.0, 2.0, 3.0, 4.0):
            collector.record_histogram('hidden_point_pdop2', value)

        stats = collector.get_histogram_stats('hidden_point_pdop2')
        assert stats == {'count': 4, 'min': 1.0, 'max': 4.0, 'mean': 2.5}

    def test_gate_summary(self):
        """Test values at or above the limit are counted as over the gate."""
        collector = MetricsCollector()

        for value in (1.5, 2.0, 4.0, 9.0):
            collector.record_histogram('hidden_point_pdop2', value)

        stats = collector.get_histogram_stats('hidden_point_pdop2', limit=4.0)
        assert stats['at_or_above'] == 2
        assert stats['at_or_above_frac'] == pytest.approx(0.5)

    def test_empty_histogram(self):
        """Test unknown histograms have no stats."""
        assert MetricsCollector().get_histogram_stats('nothing') is None

    def test_histogram_is_bounded(self):
        """Test old samples are trimmed once the bound is exceeded."""
        collector = MetricsCollector()

        for i in range(1500):
            collector.record_histogram('hidden_point_iterations', i, max_samples=1000)

        samples = collector.snapshot().histograms['hidden_point_iterations']
        assert len(samples) <= 1000
        assert samples[-1] == 1499.0


class TestSnapshotAndReset:
    """Tests for snapshots and reset."""

    def test_snapshot_is_independent(self):
        """Test later increments do not leak into an earlier snapshot."""
        collector = MetricsCollector()

        collector.increment('integrator_samples_fused', 10)
        first = collector.snapshot()
        collector.increment('integrator_samples_fused', 5)

        assert first.counters['integrator_samples_fused'] == 10
        assert collector.snapshot().counters['integrator_samples_fused'] == 15

    def test_reset_restores_standard_counters(self):
        """Test reset clears data and re-creates the standard keys."""
        collector = MetricsCollector()
        collector.increment('analytical_solve_attempts', 3)
        collector.increment_drop('insufficient_inputs')
        collector.record_histogram('hidden_point_pdop2', 1.0)

        collector.reset()

        snapshot = collector.snapshot()
        assert snapshot.counters['analytical_solve_attempts'] == 0
        assert snapshot.drop_reasons['insufficient_inputs'] == 0
        assert snapshot.dropped_by(HIDDEN_POINT) == 0
        assert snapshot.histograms == {}


class TestComponentDrops:
    """Tests that the engine files its drops under the right component."""

    def test_solver_and_integrator_drops(self, two_point_inputs):
        """Test a short solve and an integrator outlier are kept apart."""
        solver = HiddenPointSolver()
        solver.solve(WGS_84, list(two_point_inputs))

        integrator = Integrator()
        integrator.add_coordinate(0.0, [0.0, 0.0, 0.0], np.eye(3) * 0.01)
        integrator.add_coordinate(60.0, [5.0, 0.0, 0.0], np.eye(3) * 0.01)

        snapshot = get_metrics().snapshot()
        assert snapshot.dropped_by(HIDDEN_POINT) == 1
        assert snapshot.dropped_by(INTEGRATOR) == 1

    def test_square_pdop2_below_gate(self, square_inputs):
        """Test the square geometry never reaches the PDOP² gate."""
        solver = HiddenPointSolver()
        solver.solve(WGS_84, square_inputs, 3)

        stats = solver.metrics.get_histogram_stats(
            'hidden_point_pdop2', limit=solver.config.max_pdop2)
        assert stats['count'] == 1
        assert stats['at_or_above'] == 0


class TestThreadSafety:
    """Tests for concurrent use of one collector."""

    def test_concurrent_increment(self):
        """Test no increments are lost across threads."""
        collector = MetricsCollector()

        def worker():
            for _ in range(1000):
                collector.increment('hidden_point_solve_attempts')
                collector.increment_drop('inconsistent_geometry')

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.get_counter('hidden_point_solve_attempts') == 8000
        assert collector.get_drop_count('inconsistent_geometry') == 8000
        assert collector.snapshot().dropped_by(HIDDEN_POINT) == 8000


class TestGlobalSingleton:
    """Tests for global metrics singleton."""

    def test_get_metrics_returns_same_instance(self):
        """Test the singleton is shared."""
        assert get_metrics() is get_metrics()

    def test_reset_metrics_creates_new_instance(self):
        """Test reset replaces the singleton with a clean collector."""
        before = get_metrics()
        before.increment('integrator_seeded')

        reset_metrics()

        after = get_metrics()
        assert after is not before
        assert after.get_counter('integrator_seeded') == 0
