"""
Covariance frame transforms and scalar accuracy metrics.

Covariances are rotated between ECEF and the local east-north-up tangent
frame with a congruence R·C·Rᵀ (see Soler & Chin, "On transformation of
covariance matrices between local Cartesian coordinate systems and
commutative diagrams", 1985). Since R is orthonormal this is a similarity
transform: symmetry and eigenvalues are preserved.

Accuracy metrics are computed from eigenvalues, in meters:
- DRMS horizontal / vertical, MRSE (3D DRMS)
- CEP (50% circle), SEP (50% sphere), SEP 99%

Local-frame metrics (drms_horizontal, drms_vertical, cep_horizontal)
expect a covariance already expressed in the local tangent frame.
"""

from dataclasses import dataclass
import numpy as np

from survey_core.localization.coordinate_converter import ecef_to_local_rotation
from survey_core.localization.ellipsoids import Ellipsoid

# Chatfield, "Fundamentals of High Accuracy Inertial Navigation".
# Approximation valid while the larger std-dev is at most 3x the smaller.
CEP_FACTOR = 0.589

# Novatel APN-029 Rev.1
SEP_FACTOR = 0.51
SEP_99_FACTOR = 1.122


def global_to_local(ell: Ellipsoid, ecef_ref, covar: np.ndarray) -> np.ndarray:
    """
    Rotate an ECEF covariance into the local tangent frame at ecef_ref.

    Args:
        ell: Reference ellipsoid
        ecef_ref: ECEF point where the tangent frame is built
        covar: 3x3 covariance in ECEF

    Returns:
        3x3 covariance in the local (east, north, up) frame
    """
    rotation = ecef_to_local_rotation(ell, ecef_ref)
    return rotation @ np.asarray(covar, dtype=float) @ rotation.T


def local_to_global(ell: Ellipsoid, ecef_ref, covar: np.ndarray) -> np.ndarray:
    """
    Rotate a local tangent-frame covariance back into ECEF.

    Args:
        ell: Reference ellipsoid
        ecef_ref: ECEF point where the tangent frame is built
        covar: 3x3 covariance in the local (east, north, up) frame

    Returns:
        3x3 covariance in ECEF
    """
    rotation = ecef_to_local_rotation(ell, ecef_ref)
    return rotation.T @ np.asarray(covar, dtype=float) @ rotation


def _abs_eigenvalues(matrix: np.ndarray) -> np.ndarray:
    # eigvals may return complex values for slightly asymmetric input
    return np.abs(np.linalg.eigvals(np.asarray(matrix, dtype=float)))


def drms_horizontal(covar: np.ndarray) -> float:
    """Horizontal distance RMS: sqrt(|λ1| + |λ2|) of the top-left 2x2 block."""
    return float(np.sqrt(np.sum(_abs_eigenvalues(np.asarray(covar)[:2, :2]))))


def drms_vertical(covar: np.ndarray) -> float:
    """Vertical distance RMS: standard deviation of the third axis."""
    return float(np.sqrt(covar[2][2]))


def mrse_3d(covar: np.ndarray) -> float:
    """Mean radial spherical error: DRMS over all three axes."""
    return float(np.sqrt(np.sum(_abs_eigenvalues(covar))))


def cep_horizontal(covar: np.ndarray) -> float:
    """
    Circular error probable (50%) of the horizontal block.

    Only meaningful while the larger horizontal std-dev is no greater than
    3 times the smaller one. Not checked.
    """
    eigen_vals = _abs_eigenvalues(np.asarray(covar)[:2, :2])
    return float(CEP_FACTOR * np.sqrt(np.sum(np.sqrt(eigen_vals))))


def sep_3d(covar: np.ndarray) -> float:
    """Spherical error probable (50%)."""
    return float(SEP_FACTOR * np.sqrt(np.sum(np.sqrt(_abs_eigenvalues(covar)))))


def sep_3d_99(covar: np.ndarray) -> float:
    """Spherical error radius containing 99% of the probability."""
    return float(SEP_99_FACTOR * np.sqrt(np.sum(np.sqrt(_abs_eigenvalues(covar)))))


@dataclass
class AccuracySummary:
    """
    Every scalar accuracy metric of one local-frame covariance.

    Attributes:
        drms_horizontal: Horizontal DRMS (m)
        drms_vertical: Vertical DRMS (m)
        mrse_3d: 3D mean radial spherical error (m)
        cep_horizontal: 50% circular error probable (m)
        sep_3d: 50% spherical error probable (m)
        sep_3d_99: 99% spherical error radius (m)
    """

    drms_horizontal: float
    drms_vertical: float
    mrse_3d: float
    cep_horizontal: float
    sep_3d: float
    sep_3d_99: float

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'drms_horizontal': self.drms_horizontal,
            'drms_vertical': self.drms_vertical,
            'mrse_3d': self.mrse_3d,
            'cep_horizontal': self.cep_horizontal,
            'sep_3d': self.sep_3d,
            'sep_3d_99': self.sep_3d_99,
        }


def accuracy_summary(covar: np.ndarray) -> AccuracySummary:
    """Compute all accuracy metrics of a local-frame covariance."""
    covar = np.asarray(covar, dtype=float)
    return AccuracySummary(
        drms_horizontal=drms_horizontal(covar),
        drms_vertical=drms_vertical(covar),
        mrse_3d=mrse_3d(covar),
        cep_horizontal=cep_horizontal(covar),
        sep_3d=sep_3d(covar),
        sep_3d_99=sep_3d_99(covar),
    )
