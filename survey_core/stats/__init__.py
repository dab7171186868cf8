"""
Statistics Module: Accuracy metrics, fusion and hidden-point solving.

Key components:
- descriptive: mean / population variance
- covariance: ECEF <-> local covariance transforms, DRMS/CEP/SEP metrics
- integration: inverse-variance fusion and the streaming Integrator
- hidden_point: two-point analytical and N-point least-squares solvers
"""

from .descriptive import mean, variance
from .covariance import (
    CEP_FACTOR,
    SEP_FACTOR,
    SEP_99_FACTOR,
    global_to_local,
    local_to_global,
    drms_horizontal,
    drms_vertical,
    mrse_3d,
    cep_horizontal,
    sep_3d,
    sep_3d_99,
    AccuracySummary,
    accuracy_summary,
)
from .integration import (
    fuse_scalar,
    fuse_vector,
    fuse_update,
    fuse_ellipsis,
    IntegratorStatus,
    IntegratorConfig,
    Integrator,
    create_default_integrator,
)
from .hidden_point import (
    HiddenPointSolverConfig,
    HiddenPointSolver,
    SeedSide,
    SeedDecision,
    choose_seed,
    create_default_solver,
)

__all__ = [
    # Descriptive
    'mean',
    'variance',
    # Covariance
    'CEP_FACTOR',
    'SEP_FACTOR',
    'SEP_99_FACTOR',
    'global_to_local',
    'local_to_global',
    'drms_horizontal',
    'drms_vertical',
    'mrse_3d',
    'cep_horizontal',
    'sep_3d',
    'sep_3d_99',
    'AccuracySummary',
    'accuracy_summary',
    # Fusion
    'fuse_scalar',
    'fuse_vector',
    'fuse_update',
    'fuse_ellipsis',
    'IntegratorStatus',
    'IntegratorConfig',
    'Integrator',
    'create_default_integrator',
    # Hidden point
    'HiddenPointSolverConfig',
    'HiddenPointSolver',
    'SeedSide',
    'SeedDecision',
    'choose_seed',
    'create_default_solver',
]
