"""
Protocol Module: Value types exchanged with solver callers.

- Sample: position + covariance
- HiddenPointInput: sample + measured horizontal distance to the hidden point
- SolutionWarnings / HiddenPointSolution / AnalyticalSolution: solver output
"""

from .sample import (
    Sample,
    HiddenPointInput,
)
from .solution import (
    SolutionWarnings,
    HiddenPointSolution,
    AnalyticalSolution,
    create_unsolved,
    create_unsolved_analytical,
)

__all__ = [
    'Sample',
    'HiddenPointInput',
    'SolutionWarnings',
    'HiddenPointSolution',
    'AnalyticalSolution',
    'create_unsolved',
    'create_unsolved_analytical',
]
