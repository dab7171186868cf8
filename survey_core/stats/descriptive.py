"""Descriptive statistics over sequences of scalar values."""

from typing import Optional, Sequence
import numpy as np


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean. Raises ValueError on an empty sequence."""
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        raise ValueError("mean requires at least one value")
    return float(np.sum(data) / data.size)


def variance(values: Sequence[float], precomputed_mean: Optional[float] = None) -> float:
    """
    Population variance (divides by N, not N-1).

    Args:
        values: Scalar samples
        precomputed_mean: Mean of values, if the caller already has it

    Returns:
        Variance of values
    """
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        raise ValueError("variance requires at least one value")
    if precomputed_mean is None:
        precomputed_mean = mean(data)
    residuals = data - precomputed_mean
    return float(np.sum(residuals * residuals) / data.size)
