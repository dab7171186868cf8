"""
Solver and integrator diagnostics.

Every input the engine refuses is counted under a reason code, and every
reason belongs to the component that refused it: the hidden-point solvers
or the streaming integrator. Per-component drop totals live beside the
plain counters as '<component>_dropped'.

Histograms keep the recent Gauss-Newton iteration counts and PDOP² values,
so the share of solves that landed on the imprecise side of the solver's
PDOP² gate can be read back.
"""

import logging
import threading
from typing import Dict, List, Optional
from dataclasses import dataclass, field
from collections import defaultdict

import numpy as np

logger = logging.getLogger(__name__)

HIDDEN_POINT = 'hidden_point'
INTEGRATOR = 'integrator'
UNKNOWN_COMPONENT = 'unknown'


@dataclass
class CounterSnapshot:
    """Copy of the collector state."""

    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, List[float]] = field(default_factory=dict)

    def dropped_by(self, component: str) -> int:
        """Drops recorded by one component."""
        return self.counters.get(f'{component}_dropped', 0)

    def total_dropped(self) -> int:
        return sum(self.drop_reasons.values())


class MetricsCollector:
    """
    Thread-safe counters, drop reasons and histograms.

    Usage:
        metrics = MetricsCollector()
        metrics.increment('hidden_point_solve_attempts')
        metrics.increment_drop('inconsistent_geometry')
        metrics.record_histogram('hidden_point_pdop2', 1.5)

        metrics.snapshot().dropped_by('hidden_point')   # 1
    """

    # Reason code → component that rejects inputs for that reason
    DROP_REASONS = {
        'insufficient_inputs': HIDDEN_POINT,
        'inconsistent_geometry': HIDDEN_POINT,
        'new_point_too_far': INTEGRATOR,
        'out_of_order': INTEGRATOR,
    }

    STANDARD_COUNTERS = (
        'hidden_point_solve_attempts',
        'hidden_point_solve_success',
        'analytical_solve_attempts',
        'analytical_solve_success',
        'integrator_seeded',
        'integrator_samples_fused',
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._drop_reasons: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, List[float]] = defaultdict(list)
        self._seed_keys()

    def _seed_keys(self):
        """Report standard counters and reasons at zero before first use."""
        with self._lock:
            for name in self.STANDARD_COUNTERS:
                self._counters[name] += 0
            for reason, component in self.DROP_REASONS.items():
                self._drop_reasons[reason] += 0
                self._counters[f'{component}_dropped'] += 0

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """
        Count rejected inputs.

        Args:
            reason: Reason code, normally a key of DROP_REASONS. Unknown
                codes are counted under the 'unknown' component and logged.
            value: Number of inputs rejected
        """
        component = self.DROP_REASONS.get(reason)
        if component is None:
            logger.warning(f"Unknown drop reason '{reason}'")
            component = UNKNOWN_COMPONENT

        with self._lock:
            self._drop_reasons[reason] += value
            self._counters[f'{component}_dropped'] += value

    def get_counter(self, counter_name: str) -> int:
        with self._lock:
            return self._counters.get(counter_name, 0)

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drop_reasons.get(reason, 0)

    def record_histogram(self, histogram_name: str, value: float, max_samples: int = 10000):
        """
        Record a value, keeping the newest half once max_samples is passed.
        """
        with self._lock:
            samples = self._histograms[histogram_name]
            samples.append(float(value))
            if len(samples) > max_samples:
                self._histograms[histogram_name] = samples[-max_samples // 2:]

    def get_histogram_stats(
        self,
        histogram_name: str,
        limit: Optional[float] = None
    ) -> Optional[Dict[str, float]]:
        """
        Summarize a histogram.

        Args:
            histogram_name: Name of histogram
            limit: Optional gate, e.g. the solver's max_pdop2. Adds
                'at_or_above' (count) and 'at_or_above_frac' to the result.

        Returns:
            Dict with count, min, max, mean (and the gate fields), or None
            if nothing was recorded
        """
        with self._lock:
            samples = np.array(self._histograms.get(histogram_name, []))

        if samples.size == 0:
            return None

        stats = {
            'count': int(samples.size),
            'min': float(samples.min()),
            'max': float(samples.max()),
            'mean': float(samples.mean()),
        }
        if limit is not None:
            over = int(np.count_nonzero(samples >= limit))
            stats['at_or_above'] = over
            stats['at_or_above_frac'] = over / samples.size
        return stats

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(
                counters=dict(self._counters),
                drop_reasons=dict(self._drop_reasons),
                histograms={k: list(v) for k, v in self._histograms.items()},
            )

    def reset(self):
        """Zero everything, keeping the standard keys."""
        with self._lock:
            self._counters.clear()
            self._drop_reasons.clear()
            self._histograms.clear()
        self._seed_keys()
