"""
Pytest configuration and shared fixtures for the survey statistics tests.

This module provides reusable fixtures for hidden-point solving, position
fusion and geodetic frame tests.
"""

import sys
import math
from pathlib import Path
from typing import List, Tuple

import numpy as np
import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from survey_core.localization import WGS_84, lla_to_ecef, ecef_to_local_rotation
from survey_core.metrics import reset_metrics
from survey_core.proto import Sample, HiddenPointInput


# =============================================================================
# Metrics Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give every test its own global metrics collector."""
    reset_metrics()
    yield
    reset_metrics()


# =============================================================================
# Input Builders
# =============================================================================


def make_input(
    coord,
    horiz_distance: float,
    horiz_variance: float = 0.01,
    position_variance: float = 0.01,
) -> HiddenPointInput:
    """
    Build a measurement with an isotropic position covariance.

    Args:
        coord: ECEF position of the measuring point (m)
        horiz_distance: Measured horizontal distance to the hidden point (m)
        horiz_variance: Variance of that distance (m²)
        position_variance: Variance of each coordinate of the position (m²)
    """
    return HiddenPointInput(
        sample=Sample(coord=coord, covar=np.eye(3) * position_variance),
        horiz_distance=horiz_distance,
        horiz_variance=horiz_variance,
    )


# =============================================================================
# Reference Geometry Fixtures
# =============================================================================


@pytest.fixture
def equator_origin() -> np.ndarray:
    """
    WGS-84 point on the equator at the Greenwich meridian.

    The local frame there is east = +Y, north = +Z, up = +X.
    """
    return np.array([WGS_84.a, 0.0, 0.0])


@pytest.fixture
def square_inputs(equator_origin: np.ndarray) -> List[HiddenPointInput]:
    """
    Four measurements around a hidden point at local (10, 10).

    Measuring points at local east/north (0,0), (10,0), (0,10), (20,20).
    """
    offsets = [(0.0, 0.0), (10.0, 0.0), (0.0, 10.0), (20.0, 20.0)]
    distances = [math.sqrt(200.0), 10.0, 10.0, math.sqrt(200.0)]
    return [
        make_input(equator_origin + np.array([0.0, east, north]), dist)
        for (east, north), dist in zip(offsets, distances)
    ]


@pytest.fixture
def two_point_inputs(equator_origin: np.ndarray) -> Tuple[HiddenPointInput, HiddenPointInput]:
    """
    Two measurements 10 m from a hidden point.

    Solutions are (a, 10, 10) right of AB and (a, 0, 0) left of AB.
    """
    a = make_input(equator_origin + np.array([0.0, 10.0, 0.0]), 10.0)
    b = make_input(equator_origin + np.array([0.0, 0.0, 10.0]), 10.0)
    return a, b


# =============================================================================
# Random Cases
# =============================================================================


def generate_hidden_point_cases(
    case_count: int = 100,
    min_inputs: int = 2,
    max_inputs: int = 10,
    seed: int = 12345,
) -> List[Tuple[List[HiddenPointInput], np.ndarray]]:
    """
    Noise-free hidden point cases, the way a surveyor would measure them.

    Measuring points lie 0.3 to 3 m from the hidden point, in its tangent
    plane, spread around it so no two are aligned with it.

    Returns:
        List of (inputs, hidden_point_ecef)
    """
    rng = np.random.default_rng(seed)
    cases = []

    for c in range(case_count):
        input_count = (max_inputs + 1 - min_inputs) * c // case_count + min_inputs
        pos_std = np.abs(rng.normal(size=3)) * 0.01 + 0.001

        lat = (rng.random() - 0.5) * 90.0
        lon = (rng.random() - 0.5) * 180.0
        alt = (rng.random() - 0.5) * 100.0
        hidden_point = lla_to_ecef(WGS_84, lat, lon, alt)
        to_ecef = ecef_to_local_rotation(WGS_84, hidden_point, lat).T

        spacing = 2.0 * math.pi / (input_count + 0.5)
        base_angle = rng.random() * 2.0 * math.pi
        inputs = []
        for i in range(input_count):
            angle = base_angle + i * spacing + (rng.random() - 0.5) * 0.1 * spacing
            distance = 0.3 + rng.random() * 2.7
            local = np.array([distance * math.cos(angle), distance * math.sin(angle), 0.0])
            covar = np.diag(pos_std ** 2)
            inputs.append(HiddenPointInput(
                sample=Sample(
                    coord=to_ecef @ local + hidden_point,
                    covar=to_ecef @ covar @ to_ecef.T,
                ),
                horiz_distance=distance,
                horiz_variance=0.0001,
            ))

        cases.append((inputs, hidden_point))

    return cases


@pytest.fixture(scope="module")
def hidden_point_cases() -> List[Tuple[List[HiddenPointInput], np.ndarray]]:
    """One hundred random noise-free cases with 2 to 10 inputs."""
    return generate_hidden_point_cases()
