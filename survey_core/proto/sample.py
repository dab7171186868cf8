"""
Hidden-Point Input Schemas.

Defines the position samples and distance measurements handed to the
hidden-point solver and the streaming integrator.
"""

from dataclasses import dataclass
from typing import Optional
import numpy as np


@dataclass
class Sample:
    """
    Position with its covariance.

    Attributes:
        coord: Position (3,) in meters, ECEF or local depending on context
        covar: Covariance (3, 3) in meters²

    Notes:
        - Both arrays are stored as float numpy arrays
        - Position and covariance must be expressed in the same frame
    """

    coord: np.ndarray
    covar: np.ndarray = None

    def __post_init__(self):
        """Coerce and validate arrays."""
        self.coord = np.array(self.coord, dtype=float)
        if self.covar is None:
            self.covar = np.zeros((3, 3))
        else:
            self.covar = np.array(self.covar, dtype=float)

        if self.coord.shape != (3,):
            raise ValueError(f"Sample coord must have shape (3,): {self.coord.shape}")
        if self.covar.shape != (3, 3):
            raise ValueError(f"Sample covar must have shape (3, 3): {self.covar.shape}")

    def copy(self) -> "Sample":
        """Deep copy of this sample."""
        return Sample(coord=self.coord.copy(), covar=self.covar.copy())

    @property
    def position_std(self):
        """Standard deviations along each axis (sqrt of the covariance diagonal)."""
        return tuple(float(np.sqrt(v)) for v in np.diag(self.covar))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'coord': self.coord.tolist(),
            'covar': self.covar.tolist(),
        }


@dataclass
class HiddenPointInput:
    """
    One surveyor measurement towards a hidden point.

    Attributes:
        sample: Surveyed position of the measuring point (ECEF) and its covariance
        horiz_distance: Measured horizontal distance to the hidden point (m)
        horiz_variance: Variance of that distance (m²), as estimated by the
            surveyor or a sane default for the tape/laser used
        diagonal_distance: Slant distance to the hidden point (m). Reserved:
            solving the vertical from it is not supported
        time_stamp: Measurement time (s), only meaningful to the integrator

    Notes:
        - For a normal distribution, 68% of measurements fall within one
          standard deviation, and the variance is the squared std
    """

    sample: Sample
    horiz_distance: float
    horiz_variance: float = 0.0
    diagonal_distance: float = 0.0
    time_stamp: Optional[float] = None

    def __post_init__(self):
        """Validate measurement after initialization."""
        if self.horiz_distance < 0:
            raise ValueError(f"Distance cannot be negative: {self.horiz_distance}")

        if self.horiz_variance < 0:
            raise ValueError(f"Variance cannot be negative: {self.horiz_variance}")

    @property
    def coord(self) -> np.ndarray:
        """Position of the measuring point."""
        return self.sample.coord

    @property
    def covar(self) -> np.ndarray:
        """Covariance of the measuring point."""
        return self.sample.covar

    def with_sample(self, sample: Sample) -> "HiddenPointInput":
        """Same measurement taken from another (e.g. transformed) sample."""
        return HiddenPointInput(
            sample=sample,
            horiz_distance=self.horiz_distance,
            horiz_variance=self.horiz_variance,
            diagonal_distance=self.diagonal_distance,
            time_stamp=self.time_stamp,
        )
