"""
Metrics Module: Diagnostics, counters, histograms.

- Counters: solve attempts/successes, integrator fusions
- Histograms: Gauss-Newton iterations, PDOP²
- Drop reason codes for every rejected input, totalled per component

Usage:
    from survey_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('hidden_point_solve_attempts')
    metrics.increment_drop('inconsistent_geometry')
    metrics.record_histogram('hidden_point_pdop2', 1.5)
"""

from .counters import MetricsCollector, CounterSnapshot, HIDDEN_POINT, INTEGRATOR

# Global singleton for easy access
_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'CounterSnapshot', 'HIDDEN_POINT', 'INTEGRATOR',
           'get_metrics', 'reset_metrics']
