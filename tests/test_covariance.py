"""
Unit tests for descriptive statistics and covariance accuracy metrics.

Tests cover:
- Mean and population variance
- ECEF <-> local covariance transforms
- DRMS, MRSE, CEP and SEP metrics
"""

import math

import numpy as np
import pytest

from survey_core.localization import WGS_84, lla_to_ecef
from survey_core.stats import (
    CEP_FACTOR,
    SEP_99_FACTOR,
    SEP_FACTOR,
    accuracy_summary,
    cep_horizontal,
    drms_horizontal,
    drms_vertical,
    global_to_local,
    local_to_global,
    mean,
    mrse_3d,
    sep_3d,
    sep_3d_99,
    variance,
)


class TestDescriptive:
    """Tests for mean and variance."""

    def test_mean(self):
        """Test arithmetic mean."""
        assert mean([1.0, 2.0, 3.0, 4.0]) == pytest.approx(2.5)

    def test_variance_is_population_variance(self):
        """Test variance divides by N."""
        values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
        assert variance(values) == pytest.approx(4.0)

    def test_variance_with_precomputed_mean(self):
        """Test passing the mean gives the same variance."""
        values = [1.0, 3.0]
        assert variance(values, precomputed_mean=2.0) == pytest.approx(1.0)

    def test_single_value_has_zero_variance(self):
        """Test a single sample has no spread."""
        assert variance([42.0]) == 0.0

    def test_empty_input_raises(self):
        """Test empty sequences are rejected."""
        with pytest.raises(ValueError):
            mean([])
        with pytest.raises(ValueError):
            variance([])


class TestCovarianceTransform:
    """Tests for covariance frame transforms."""

    def test_equator_axes_are_permuted(self, equator_origin):
        """Test ECEF X/Y/Z variances map to up/east/north at the equator."""
        covar = np.diag([1.0, 2.0, 3.0])
        local = global_to_local(WGS_84, equator_origin, covar)

        np.testing.assert_allclose(local, np.diag([2.0, 3.0, 1.0]), atol=1e-12)

    def test_round_trip(self):
        """Test global -> local -> global returns the original covariance."""
        ref = lla_to_ecef(WGS_84, 22.29, 114.17, 2.0)
        covar = np.array([
            [0.04, 0.01, -0.02],
            [0.01, 0.09, 0.005],
            [-0.02, 0.005, 0.16],
        ])

        back = local_to_global(WGS_84, ref, global_to_local(WGS_84, ref, covar))
        np.testing.assert_allclose(back, covar, atol=1e-14)

    def test_transform_preserves_eigenvalues(self):
        """Test the rotation is a similarity transform."""
        ref = lla_to_ecef(WGS_84, -45.0, 170.0, 0.0)
        covar = np.array([
            [0.5, 0.1, 0.0],
            [0.1, 0.3, 0.05],
            [0.0, 0.05, 0.2],
        ])
        local = global_to_local(WGS_84, ref, covar)

        np.testing.assert_allclose(
            np.sort(np.linalg.eigvalsh(local)),
            np.sort(np.linalg.eigvalsh(covar)),
            atol=1e-12,
        )
        np.testing.assert_allclose(local, local.T, atol=1e-15)


class TestAccuracyMetrics:
    """Tests for scalar accuracy metrics."""

    def test_drms_horizontal(self):
        """Test horizontal DRMS uses only the 2x2 block."""
        covar = np.diag([2.0, 10.0, 15.0])
        assert drms_horizontal(covar) == pytest.approx(math.sqrt(12.0))

    def test_drms_vertical(self):
        """Test vertical DRMS is the third standard deviation."""
        covar = np.diag([2.0, 10.0, 16.0])
        assert drms_vertical(covar) == pytest.approx(4.0)

    def test_mrse_is_trace_root(self):
        """Test MRSE equals sqrt(trace) for a symmetric covariance."""
        covar = np.array([
            [4.0, 1.0, 0.0],
            [1.0, 3.0, 0.5],
            [0.0, 0.5, 2.0],
        ])
        assert mrse_3d(covar) == pytest.approx(3.0)

    def test_drms_ignores_rotation(self):
        """Test horizontal DRMS is invariant to correlation-only changes of axes."""
        covar = np.array([
            [1.5, 0.5, 0.0],
            [0.5, 1.5, 0.0],
            [0.0, 0.0, 1.0],
        ])
        # Eigenvalues of the horizontal block are 1 and 2
        assert drms_horizontal(covar) == pytest.approx(math.sqrt(3.0))

    def test_cep(self):
        """Test CEP from the square roots of the horizontal eigenvalues."""
        covar = np.diag([4.0, 9.0, 100.0])
        assert cep_horizontal(covar) == pytest.approx(CEP_FACTOR * math.sqrt(5.0))

    def test_sep(self):
        """Test SEP and SEP 99% scale the same root sum."""
        covar = np.diag([1.0, 4.0, 9.0])
        root_sum = math.sqrt(1.0 + 2.0 + 3.0)

        assert sep_3d(covar) == pytest.approx(SEP_FACTOR * root_sum)
        assert sep_3d_99(covar) == pytest.approx(SEP_99_FACTOR * root_sum)
        assert sep_3d_99(covar) > sep_3d(covar)

    def test_zero_covariance(self):
        """Test a perfect position has zero error radii."""
        covar = np.zeros((3, 3))
        assert drms_horizontal(covar) == 0.0
        assert sep_3d_99(covar) == 0.0

    def test_summary(self):
        """Test the summary gathers every metric."""
        covar = np.diag([2.0, 10.0, 15.0])
        summary = accuracy_summary(covar)

        assert summary.drms_horizontal == pytest.approx(math.sqrt(12.0))
        assert summary.drms_vertical == pytest.approx(math.sqrt(15.0))
        assert summary.mrse_3d == pytest.approx(math.sqrt(27.0))
        assert summary.sep_3d_99 == pytest.approx(sep_3d_99(covar))

        as_dict = summary.to_dict()
        assert set(as_dict) == {
            'drms_horizontal', 'drms_vertical', 'mrse_3d',
            'cep_horizontal', 'sep_3d', 'sep_3d_99',
        }
