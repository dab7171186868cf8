"""
Inverse-Variance Fusion ("Davis" information filter) and Streaming Integrator.

Combines a set of values and their variances/covariances into a single,
more accurate estimate:

    P = (Σ_i C_i^{-1})^{-1}
    x = P · Σ_i C_i^{-1} x_i

Reference: J. E. Davis, "Combining Error Ellipses"
(cxc.harvard.edu/csc/memos/files/Davis_ellipse.pdf)

The Integrator wraps the incremental update with outlier rejection and a
correction for time-correlated (multipath) errors, for use on a raw
stream of position fixes of a single static point.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Sequence, Tuple
import numpy as np

from survey_core.metrics import get_metrics
from .covariance import sep_3d_99

logger = logging.getLogger(__name__)


def _check_batch(values: Sequence, variances: Sequence):
    if len(values) == 0:
        raise ValueError("fusion requires at least one value")
    if len(values) != len(variances):
        raise ValueError(
            f"values and variances differ in length: {len(values)} != {len(variances)}"
        )


def fuse_scalar(
    values: Sequence[float],
    variances: Sequence[float]
) -> Tuple[float, float]:
    """
    Inverse-variance weighted mean of scalars.

    Args:
        values: Scalar estimates
        variances: Their variances (all > 0)

    Returns:
        (value, variance) of the fused estimate
    """
    _check_batch(values, variances)

    value_sum = 0.0
    inv_sum = 0.0
    for value, var in zip(values, variances):
        inv = 1.0 / var
        value_sum += inv * value
        inv_sum += inv

    var_result = 1.0 / inv_sum
    return var_result * value_sum, var_result


def fuse_vector(
    values: Sequence[np.ndarray],
    covariances: Sequence[np.ndarray]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Matrix version of fuse_scalar.

    Args:
        values: Vector estimates, all of the same dimension
        covariances: Their (invertible) covariance matrices

    Returns:
        (value, covariance) of the fused estimate
    """
    _check_batch(values, covariances)

    dim = len(values[0])
    value_sum = np.zeros(dim)
    info_sum = np.zeros((dim, dim))
    for value, covar in zip(values, covariances):
        inv = np.linalg.inv(covar)
        value_sum += inv @ np.asarray(value, dtype=float)
        info_sum += inv

    covar_result = np.linalg.inv(info_sum)
    return covar_result @ value_sum, covar_result


def fuse_update(
    new_value: np.ndarray,
    new_covar: np.ndarray,
    running_value: np.ndarray,
    running_covar: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fuse one new estimate into a running one (two-element fuse_vector).

    The running arrays are overwritten in place and also returned.

    Args:
        new_value: New estimate
        new_covar: Its covariance
        running_value: Accumulated estimate (float array, updated in place)
        running_covar: Accumulated covariance (float array, updated in place)

    Returns:
        (running_value, running_covar) after the update
    """
    new_inv = np.linalg.inv(new_covar)
    upd_inv = np.linalg.inv(running_covar)
    info = upd_inv @ running_value + new_inv @ np.asarray(new_value, dtype=float)
    running_covar[...] = np.linalg.inv(upd_inv + new_inv)
    running_value[...] = running_covar @ info
    return running_value, running_covar


def fuse_ellipsis(
    values: Sequence[np.ndarray],
    covariances: Sequence[np.ndarray]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sequential form of fuse_vector.

    Folds the estimates left to right with a single inverse per step,
    instead of one inverse per estimate plus a final one. Equal to
    fuse_vector up to rounding; which one is faster depends on the matrix
    size and the platform.

    Args:
        values: Vector estimates, all of the same dimension
        covariances: Their covariance matrices

    Returns:
        (value, covariance) of the fused estimate
    """
    _check_batch(values, covariances)

    value_result = np.array(values[0], dtype=float)
    covar_result = np.array(covariances[0], dtype=float)
    for value, covar in zip(values[1:], covariances[1:]):
        covar = np.asarray(covar, dtype=float)
        k = np.linalg.inv(covar_result + covar)
        value_result = covar @ k @ value_result + covar_result @ k @ np.asarray(value, dtype=float)
        covar_result = covar_result @ k @ covar

    return value_result, covar_result


class IntegratorStatus(IntEnum):
    """Outcome of Integrator.add_coordinate."""

    OK = 0
    NEW_POINT_TOO_FAR = 1   # Sample very far from the accumulated value
    IN_MOTION = 2           # Reserved: unstable rover over the whole integration
    POOR_QUALITY = 3        # Reserved: sample variance much worse than the integral


@dataclass
class IntegratorConfig:
    """
    Configuration for the streaming integrator.

    Attributes:
        multipath_period_s: Decorrelation time of multipath errors (s).
            Samples closer together than this are down-weighted.
    """

    multipath_period_s: float = 30.0

    def __post_init__(self):
        """Validate configuration."""
        assert self.multipath_period_s > 0, "multipath period must be positive"


class Integrator:
    """
    Fuse a raw stream of position fixes of one static point.

    Usage:
        integrator = Integrator(IntegratorConfig(multipath_period_s=30.0))

        for t, pos, cov in fixes:
            status = integrator.add_coordinate(t, pos, cov)
            if status == IntegratorStatus.NEW_POINT_TOO_FAR:
                ...  # rover moved, or outlier

        best_pos = integrator.position
        best_cov = integrator.covariance

    Not thread-safe: one owner per tracked point.
    """

    def __init__(self, config: Optional[IntegratorConfig] = None):
        """
        Initialize integrator.

        Args:
            config: Integrator configuration (uses defaults if None)
        """
        self.config = config or IntegratorConfig()
        self.metrics = get_metrics()
        self.clear()

    def clear(self):
        """Forget the accumulated estimate; the next sample seeds a new one."""
        self._position: Optional[np.ndarray] = None
        self._covariance: Optional[np.ndarray] = None
        self._last_sample_time: Optional[float] = None
        self._continuous_samples = 0

    def is_initialized(self) -> bool:
        """Check if at least one sample has been accepted."""
        return self._continuous_samples > 0

    @property
    def position(self) -> Optional[np.ndarray]:
        """Fused position (None before the first sample)."""
        return self._position

    @property
    def covariance(self) -> Optional[np.ndarray]:
        """Fused covariance (None before the first sample)."""
        return self._covariance

    @property
    def continuous_samples(self) -> int:
        """Number of samples fused since the last clear()."""
        return self._continuous_samples

    @property
    def last_sample_time(self) -> Optional[float]:
        """Time of the last fused sample."""
        return self._last_sample_time

    def add_coordinate(
        self,
        sample_time_s: float,
        position: np.ndarray,
        covariance: np.ndarray
    ) -> IntegratorStatus:
        """
        Add one position fix.

        Args:
            sample_time_s: Fix time (s)
            position: Position (3,)
            covariance: Covariance (3, 3)

        Returns:
            IntegratorStatus.OK if accepted (or skipped as a duplicate time),
            IntegratorStatus.NEW_POINT_TOO_FAR if rejected (state unchanged)
        """
        position = np.array(position, dtype=float)
        covariance = np.array(covariance, dtype=float)

        if not self.is_initialized():
            self._position = position
            self._covariance = covariance
            self._continuous_samples = 1
            self._last_sample_time = sample_time_s
            self.metrics.increment('integrator_seeded')
            logger.info(f"Integrator seeded at t={sample_time_s:.3f}")
            return IntegratorStatus.OK

        # Is the new point outside the 99% probability sphere?
        # TODO: test horizontal and vertical separately, their variances often differ a lot
        distance = float(np.linalg.norm(position - self._position))
        radius_99 = sep_3d_99(self._covariance)
        if distance > radius_99:
            self.metrics.increment_drop('new_point_too_far')
            logger.warning(f"Sample at t={sample_time_s:.3f} rejected: "
                           f"{distance:.3f}m from estimate (SEP99={radius_99:.3f}m)")
            return IntegratorStatus.NEW_POINT_TOO_FAR

        delta = sample_time_s - self._last_sample_time
        if delta == 0:
            return IntegratorStatus.OK
        if delta < 0:
            self.metrics.increment_drop('out_of_order')
            logger.warning(f"Out-of-order sample (dt={delta:.3f}s), skipping")
            return IntegratorStatus.OK
        self._last_sample_time = sample_time_s

        # Samples closer than the multipath period are correlated: inflate
        # the dominant covariance so they count for less
        period = self.config.multipath_period_s
        alpha = period / delta if delta < period else 1.0
        running_sum = np.trace(self._covariance)
        new_sum = np.trace(covariance)
        if new_sum > running_sum:
            covariance = covariance * alpha
        else:
            self._covariance = self._covariance * alpha

        fuse_update(position, covariance, self._position, self._covariance)

        self._continuous_samples += 1
        self.metrics.increment('integrator_samples_fused')
        logger.debug(f"Fused sample {self._continuous_samples} at t={sample_time_s:.3f}, "
                     f"alpha={alpha:.2f}")

        return IntegratorStatus.OK


def create_default_integrator() -> Integrator:
    """
    Create an integrator for static GNSS surveying.

    Returns:
        Integrator with a 30 s multipath decorrelation period
    """
    return Integrator(IntegratorConfig(multipath_period_s=30.0))
