"""
Hidden-Point Solution Schemas.

Defines the output of the hidden-point solvers: the solved sample(s) and
an advisory warnings bitmask.

Hard failures (inconsistent geometry, too few inputs) produce an
unsolved result; soft failures are warning flags on a solved result.
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import Optional

from .sample import Sample


class SolutionWarnings(IntFlag):
    """Advisory quality flags, freely combined."""

    OK = 0x0                 # No warning
    AMBIGUOUS = 0x1          # Solution might be ambiguous
    HORIZ_IMPRECISE = 0x2    # Poor horizontal precision
    VERT_IMPRECISE = 0x4     # Poor vertical precision


@dataclass
class HiddenPointSolution:
    """
    Result of the iterative N-point solver.

    Attributes:
        solved: False for hard failures (no position produced)
        sample: Solved ECEF position and covariance (None if unsolved)
        warnings: Advisory quality flags
        iterations: Gauss-Newton iterations used
        pdop2: Squared horizontal position DOP at the solution
    """

    solved: bool
    sample: Optional[Sample]
    warnings: SolutionWarnings = SolutionWarnings.OK
    iterations: int = 0
    pdop2: Optional[float] = None

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.warnings & SolutionWarnings.AMBIGUOUS)

    @property
    def is_horiz_imprecise(self) -> bool:
        return bool(self.warnings & SolutionWarnings.HORIZ_IMPRECISE)

    @property
    def is_vert_imprecise(self) -> bool:
        return bool(self.warnings & SolutionWarnings.VERT_IMPRECISE)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'solved': self.solved,
            'sample': self.sample.to_dict() if self.sample is not None else None,
            'warnings': int(self.warnings),
            'iterations': self.iterations,
            'pdop2': self.pdop2,
        }


@dataclass
class AnalyticalSolution:
    """
    Result of the closed-form two-point solver.

    Both mirror-image candidates are returned; looking from A towards B,
    right_of_ab lies to the right of the AB segment and left_of_ab to the
    left. The caller picks one.

    Attributes:
        solved: False when the distances are geometrically inconsistent
        right_of_ab: Candidate right of AB (None if unsolved)
        left_of_ab: Candidate left of AB (None if unsolved)
        warnings: Advisory quality flags (always includes AMBIGUOUS)
    """

    solved: bool
    right_of_ab: Optional[Sample]
    left_of_ab: Optional[Sample]
    warnings: SolutionWarnings = SolutionWarnings.AMBIGUOUS

    @property
    def is_ambiguous(self) -> bool:
        return bool(self.warnings & SolutionWarnings.AMBIGUOUS)

    @property
    def is_horiz_imprecise(self) -> bool:
        return bool(self.warnings & SolutionWarnings.HORIZ_IMPRECISE)

    @property
    def is_vert_imprecise(self) -> bool:
        return bool(self.warnings & SolutionWarnings.VERT_IMPRECISE)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'solved': self.solved,
            'right_of_ab': self.right_of_ab.to_dict() if self.right_of_ab is not None else None,
            'left_of_ab': self.left_of_ab.to_dict() if self.left_of_ab is not None else None,
            'warnings': int(self.warnings),
        }


def create_unsolved(
    warnings: SolutionWarnings = SolutionWarnings.OK
) -> HiddenPointSolution:
    """
    Create an unsolved N-point result.

    Args:
        warnings: Flags gathered before the failure

    Returns:
        HiddenPointSolution with solved=False
    """
    return HiddenPointSolution(
        solved=False,
        sample=None,
        warnings=warnings,
    )


def create_unsolved_analytical(
    warnings: SolutionWarnings = SolutionWarnings.AMBIGUOUS
) -> AnalyticalSolution:
    """
    Create an unsolved two-point result.

    Args:
        warnings: Flags gathered before the failure

    Returns:
        AnalyticalSolution with solved=False
    """
    return AnalyticalSolution(
        solved=False,
        right_of_ab=None,
        left_of_ab=None,
        warnings=warnings,
    )
