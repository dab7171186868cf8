"""
Hidden-Point Solver (horizontal trilateration).

A hidden point is a point the GNSS antenna cannot occupy (under a tree,
against a wall). The surveyor occupies nearby points instead and measures
the horizontal distance from each of them to the hidden point with a tape
or laser. The hidden point is the intersection of those circles.

Two solvers are provided:
- analytical_solve: closed-form intersection of two circles. Always
  returns both mirror-image candidates, the caller picks one.
- solve: weighted least squares (Gauss-Newton) over 3+ measurements,
  seeded by two analytical solves.

All work is done in the local east-north-up tangent frame at the first
measuring point; results are rotated back to ECEF. Horizontal and vertical
are solved separately: the vertical is an inverse-variance weighted mean of
the measuring points' altitudes.

Quality problems do not fail the solve, they raise SolutionWarnings flags.
Only inconsistent geometry or too few inputs produce an unsolved result.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import numpy as np

from survey_core.localization.coordinate_converter import ecef_to_local_rotation
from survey_core.localization.ellipsoids import Ellipsoid
from survey_core.metrics import get_metrics
from survey_core.proto.sample import Sample, HiddenPointInput
from survey_core.proto.solution import (
    SolutionWarnings,
    HiddenPointSolution,
    AnalyticalSolution,
    create_unsolved,
    create_unsolved_analytical,
)
from .integration import fuse_scalar

logger = logging.getLogger(__name__)

# Ranges below this are treated as the estimate sitting on a source
_MIN_RANGE_M = 1e-12


@dataclass
class HiddenPointSolverConfig:
    """
    Configuration for the hidden-point solver.

    Attributes:
        max_iterations: Maximum Gauss-Newton iterations
        convergence_tol_m: Stop iterating when the step is shorter than this (m)
        max_pdop2: Squared PDOP at or above which the horizontal is imprecise
            (4 corresponds to a 45° separation between two sources)
        residual_gate: Squared-sigma multiplier for residual and altitude
            checks (4 = 2 sigma)
        ambiguity_ratio: Seed ratio test; the best seed agreement must be this
            many times better than the second best
    """

    max_iterations: int = 5
    convergence_tol_m: float = 0.001
    max_pdop2: float = 4.0
    residual_gate: float = 4.0
    ambiguity_ratio: float = 4.0

    def __post_init__(self):
        """Validate configuration."""
        assert self.max_iterations >= 1, "need at least one iteration"
        assert self.convergence_tol_m > 0, "convergence tolerance must be positive"
        assert self.max_pdop2 > 0, "PDOP² limit must be positive"
        assert self.residual_gate > 0, "residual gate must be positive"
        assert self.ambiguity_ratio >= 1, "ambiguity ratio must be >= 1"


class SeedSide(Enum):
    """Which candidate of the first seed pair starts the iteration."""

    RIGHT = "right"
    LEFT = "left"


@dataclass
class SeedDecision:
    """
    Outcome of choose_seed.

    Attributes:
        side: Candidate of pair A to start from
        ambiguous: True if the ratio test failed
        distances: Cross-pair distances (rr, rl, lr, ll)
    """

    side: SeedSide
    ambiguous: bool
    distances: Tuple[float, float, float, float]


def choose_seed(
    right_a: np.ndarray,
    left_a: np.ndarray,
    right_b: np.ndarray,
    left_b: np.ndarray,
    check_ratio: bool,
    ambiguity_ratio: float = 4.0
) -> SeedDecision:
    """
    Pick the starting candidate from two analytical solves sharing a source.

    The true hidden point comes back (close to) twice: once from each pair.
    The mirror candidates land elsewhere.

    Args:
        right_a, left_a: Candidates of pair A
        right_b, left_b: Candidates of pair B
        check_ratio: Run the ratio test (when a seed was imprecise)
        ambiguity_ratio: Required ratio between second best and best distance

    Returns:
        SeedDecision
    """
    distances = (
        float(np.linalg.norm(right_a - right_b)),
        float(np.linalg.norm(right_a - left_b)),
        float(np.linalg.norm(left_a - right_b)),
        float(np.linalg.norm(left_a - left_b)),
    )
    ambiguous = False
    if check_ratio:
        order = np.argsort(distances, kind='stable')
        side = SeedSide.RIGHT if order[0] in (0, 1) else SeedSide.LEFT
        ambiguous = ambiguity_ratio * distances[order[0]] >= distances[order[1]]
    else:
        rr, rl, lr, ll = distances
        # Right only on a strict win; every tie goes left
        if (rr < rl and rr < lr and rr < ll) or (rl < lr and rl < ll):
            side = SeedSide.RIGHT
        else:
            side = SeedSide.LEFT

    return SeedDecision(side=side, ambiguous=ambiguous, distances=distances)


class _LocalFrame:
    """East-north-up tangent frame anchored at an ECEF origin."""

    def __init__(self, ell: Ellipsoid, origin: np.ndarray):
        self.origin = np.array(origin, dtype=float)
        self.rotation = ecef_to_local_rotation(ell, self.origin)

    def to_local(self, sample: Sample) -> Sample:
        return Sample(
            coord=self.rotation @ (sample.coord - self.origin),
            covar=self.rotation @ sample.covar @ self.rotation.T,
        )

    def to_global(self, sample: Sample) -> Sample:
        # rotation is orthonormal: its inverse is its transpose
        return Sample(
            coord=self.rotation.T @ sample.coord + self.origin,
            covar=self.rotation.T @ sample.covar @ self.rotation,
        )


class HiddenPointSolver:
    """
    Solve hidden points from surveyed positions and horizontal distances.

    Usage:
        solver = HiddenPointSolver()

        # Two measurements: both candidates, caller picks
        pair = solver.analytical_solve(WGS_84, input_a, input_b)
        if pair.solved:
            candidate = pair.right_of_ab

        # Three or more: least squares
        solution = solver.solve(WGS_84, inputs)
        if solution.solved and not solution.warnings:
            print(f"Hidden point: {solution.sample.coord}")

    The solver keeps no state between calls.
    """

    def __init__(self, config: Optional[HiddenPointSolverConfig] = None):
        """
        Initialize hidden-point solver.

        Args:
            config: Solver configuration (uses defaults if None)
        """
        self.config = config or HiddenPointSolverConfig()
        self.metrics = get_metrics()

    def analytical_solve(
        self,
        ell: Ellipsoid,
        input_a: HiddenPointInput,
        input_b: HiddenPointInput
    ) -> AnalyticalSolution:
        """
        Closed-form solve from two measurements.

        Args:
            ell: Reference ellipsoid
            input_a: First measurement (ECEF); the local frame is built here
            input_b: Second measurement (ECEF)

        Returns:
            AnalyticalSolution with both candidates in ECEF. AMBIGUOUS is
            always set. Unsolved if the distances cannot form a triangle.
        """
        self.metrics.increment('analytical_solve_attempts')

        frame = _LocalFrame(ell, input_a.coord)
        local_a = input_a.with_sample(frame.to_local(input_a.sample))
        local_b = input_b.with_sample(frame.to_local(input_b.sample))

        solved = self._analytical_solve_local(local_a, local_b, compute_covar=True)
        if solved is None:
            self.metrics.increment_drop('inconsistent_geometry')
            logger.warning(f"Two-point solve: inconsistent distances "
                           f"({input_a.horiz_distance:.3f}m, {input_b.horiz_distance:.3f}m)")
            return create_unsolved_analytical()

        right, left, warnings = solved
        self.metrics.increment('analytical_solve_success')

        return AnalyticalSolution(
            solved=True,
            right_of_ab=frame.to_global(right),
            left_of_ab=frame.to_global(left),
            warnings=warnings | SolutionWarnings.AMBIGUOUS,
        )

    def solve(
        self,
        ell: Ellipsoid,
        inputs: Sequence[HiddenPointInput],
        n: Optional[int] = None
    ) -> HiddenPointSolution:
        """
        Weighted least-squares solve from three or more measurements.

        Args:
            ell: Reference ellipsoid
            inputs: Measurements (ECEF); the local frame is built at the first
            n: Use only the first n inputs (all if None)

        Returns:
            HiddenPointSolution in ECEF

        Notes:
            - Fewer than 3 inputs → unsolved, AMBIGUOUS
              (use analytical_solve for two)
            - Seeds are the analytical solves of inputs (0, 1) and (0, n-1);
              either failing → unsolved
            - Singular geometry or zero variances raise from numpy/float math
        """
        inputs = list(inputs)
        if n is None:
            n = len(inputs)
        if n > len(inputs):
            raise ValueError(f"n={n} exceeds the {len(inputs)} inputs given")
        inputs = inputs[:n]

        self.metrics.increment('hidden_point_solve_attempts')

        if n < 3:
            self.metrics.increment_drop('insufficient_inputs')
            logger.debug(f"Hidden point solve needs 3+ inputs, got {n}")
            return create_unsolved(SolutionWarnings.AMBIGUOUS)

        frame = _LocalFrame(ell, inputs[0].coord)
        local = [inp.with_sample(frame.to_local(inp.sample)) for inp in inputs]

        # Seeds: both circle intersections of two pairs sharing input 0
        seed_a = self._analytical_solve_local(local[0], local[1])
        seed_b = self._analytical_solve_local(local[0], local[n - 1])
        if seed_a is None or seed_b is None:
            self.metrics.increment_drop('inconsistent_geometry')
            logger.warning("Hidden point solve: seed pair has inconsistent distances")
            return create_unsolved()

        right_a, left_a, warnings_a = seed_a
        right_b, left_b, warnings_b = seed_b
        seed_imprecise = bool((warnings_a | warnings_b) & SolutionWarnings.HORIZ_IMPRECISE)
        decision = choose_seed(
            right_a.coord, left_a.coord, right_b.coord, left_b.coord,
            check_ratio=seed_imprecise,
            ambiguity_ratio=self.config.ambiguity_ratio,
        )
        logger.debug(f"Seed {decision.side.value} of first pair, "
                     f"distances={decision.distances}, ambiguous={decision.ambiguous}")

        warnings = SolutionWarnings.AMBIGUOUS if decision.ambiguous else SolutionWarnings.OK
        seed = right_a if decision.side == SeedSide.RIGHT else left_a

        # Horizontal: Gauss-Newton on the range equations
        hp = seed.coord[:2].copy()
        iterations = 0
        for iterations in range(1, self.config.max_iterations + 1):
            h, z, r = self._linearize(hp, local)
            step = self._wls_gain(h, r) @ z
            hp = hp + step
            if np.linalg.norm(step) < self.config.convergence_tol_m:
                break

        # Diagnostics at the final estimate
        h, z, r = self._linearize(hp, local)
        gain = self._wls_gain(h, r)
        pdop2 = float(np.trace(np.linalg.inv(h.T @ h)))
        if pdop2 >= self.config.max_pdop2:
            warnings |= SolutionWarnings.HORIZ_IMPRECISE
        elif np.any(z * z >= self.config.residual_gate * r):
            warnings |= SolutionWarnings.HORIZ_IMPRECISE

        # Vertical: weighted mean of the measuring points' altitudes
        z_coords = [inp.coord[2] for inp in local]
        z_vars = [inp.covar[2][2] for inp in local]
        altitude, z_var = fuse_scalar(z_coords, z_vars)
        for z_coord, var in zip(z_coords, z_vars):
            dz = z_coord - altitude
            if dz * dz >= self.config.residual_gate * var:
                warnings |= SolutionWarnings.VERT_IMPRECISE
                break

        covar = np.zeros((3, 3))
        covar[:2, :2] = gain @ np.diag(r) @ gain.T
        covar[2][2] = z_var

        solved = frame.to_global(Sample(coord=[hp[0], hp[1], altitude], covar=covar))

        self.metrics.increment('hidden_point_solve_success')
        self.metrics.record_histogram('hidden_point_iterations', iterations)
        self.metrics.record_histogram('hidden_point_pdop2', pdop2)
        logger.debug(f"Hidden point solved from {n} inputs in {iterations} iterations, "
                     f"PDOP²={pdop2:.2f}, warnings={int(warnings):#x}")

        return HiddenPointSolution(
            solved=True,
            sample=solved,
            warnings=warnings,
            iterations=iterations,
            pdop2=pdop2,
        )

    @staticmethod
    def _linearize(
        hp: np.ndarray,
        local: List[HiddenPointInput]
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Range equations linearized at hp.

        Returns:
            (H, Z, R): unit vectors hp→source (n, 2), range residuals
            measured - expected (n,), range variances (n,)
        """
        n = len(local)
        h = np.zeros((n, 2))
        z = np.zeros(n)
        r = np.zeros(n)
        for j, inp in enumerate(local):
            delta = inp.coord[:2] - hp
            rng = max(float(np.linalg.norm(delta)), _MIN_RANGE_M)
            h[j] = delta / rng
            z[j] = rng - inp.horiz_distance
            # Source position error projected on the line of sight, plus tape error
            r[j] = h[j] @ inp.covar[:2, :2] @ h[j] + inp.horiz_variance
        return h, z, r

    @staticmethod
    def _wls_gain(h: np.ndarray, r: np.ndarray) -> np.ndarray:
        """J = (Hᵀ R⁻¹ H)⁻¹ Hᵀ R⁻¹ for diagonal R."""
        ht_rinv = h.T / r
        return np.linalg.inv(ht_rinv @ h) @ ht_rinv

    def _analytical_solve_local(
        self,
        input_a: HiddenPointInput,
        input_b: HiddenPointInput,
        compute_covar: bool = False
    ) -> Optional[Tuple[Sample, Sample, SolutionWarnings]]:
        """
        Intersect the two distance circles in the local frame.

        Args:
            input_a: First measurement, local frame
            input_b: Second measurement, local frame
            compute_covar: Also propagate covariances and run the precision
                checks that need them

        Returns:
            (right_of_ab, left_of_ab, warnings), or None if the distances
            violate the triangle inequality
        """
        a = input_a.coord
        b = input_b.coord
        d_a = input_a.horiz_distance
        d_b = input_b.horiz_distance

        ab = b[:2] - a[:2]
        diffx2 = ab[0] * ab[0]
        diffy2 = ab[1] * ab[1]
        d_ab = np.sqrt(diffx2 + diffy2)

        if d_ab + d_a <= d_b or d_ab + d_b <= d_a or d_a + d_b <= d_ab:
            return None

        # The larger coordinate difference goes in the denominator
        dim0, dim1 = (1, 0) if diffx2 > diffy2 else (0, 1)

        ax, ay = a[dim0], a[dim1]
        bx, by = b[dim0], b[dim1]
        dx = bx - ax
        dy = by - ay
        dx2 = dx * dx
        dy2 = dy * dy

        d_a2 = d_a * d_a
        d_b2 = d_b * d_b
        ka = (d_a2 - d_b2 + bx * bx + by * by - ax * ax - ay * ay) / 2.0
        kb = d_a2 - ax * ax - ay * ay

        qa = 1.0 + dx2 / dy2
        qb = 2 * ay * dx / dy - 2 * ka * dx / dy2 - 2 * ax
        qc = ka * ka / dy2 - 2 * ay * ka / dy - kb

        first_term = -qb / (2 * qa)
        sqrt_term = np.sqrt(max(qb * qb - 4 * qa * qc, 0.0)) / (2 * qa)

        var_a = input_a.covar[2][2]
        var_b = input_b.covar[2][2]
        if compute_covar:
            inv_a = 1.0 / var_a
            inv_b = 1.0 / var_b
            altitude = (a[2] * inv_a + b[2] * inv_b) / (inv_a + inv_b)
            # Only the better vertical variance is reported
            z_var = min(var_a, var_b)
        else:
            altitude = 0.5 * (a[2] + b[2])
            z_var = 0.0

        candidates = []
        for sign in (-1.0, 1.0):
            coord = np.zeros(3)
            coord[dim0] = first_term + sign * sqrt_term
            coord[dim1] = (ka - coord[dim0] * dx) / dy
            coord[2] = altitude
            candidates.append(coord)

        # Looking from A to B, a positive z of AB × AX puts X on the left
        ax_vec = candidates[0][:2] - a[:2]
        cross_z = ab[0] * ax_vec[1] - ab[1] * ax_vec[0]
        if cross_z > 0:
            left_coord, right_coord = candidates
        else:
            right_coord, left_coord = candidates

        warnings = SolutionWarnings.OK
        sources = (input_a, input_b)

        h = self._unit_rows(right_coord, sources)
        g = np.linalg.inv(h.T @ h)
        if np.trace(g) >= self.config.max_pdop2:
            warnings |= SolutionWarnings.HORIZ_IMPRECISE

        if not compute_covar:
            return Sample(right_coord), Sample(left_coord), warnings

        samples = []
        for coord in (right_coord, left_coord):
            h = self._unit_rows(coord, sources)
            g = np.linalg.inv(h.T @ h)
            r = np.array([
                h[j] @ src.covar[:2, :2] @ h[j] + src.horiz_variance
                for j, src in enumerate(sources)
            ])
            gain = g @ h.T

            covar = np.zeros((3, 3))
            covar[:2, :2] = gain @ np.diag(r) @ gain.T
            covar[2][2] = z_var
            samples.append(Sample(coord, covar))

            gate = self.config.residual_gate
            for j, src in enumerate(sources):
                residual = np.linalg.norm(src.coord[:2] - coord[:2]) - src.horiz_distance
                if src.horiz_distance ** 2 < gate * r[j]:
                    warnings |= SolutionWarnings.HORIZ_IMPRECISE
                elif r[j] > 0 and residual * residual >= gate * r[j]:
                    warnings |= SolutionWarnings.HORIZ_IMPRECISE

        for src in sources:
            dz = altitude - src.coord[2]
            if dz * dz >= self.config.residual_gate * src.covar[2][2]:
                warnings |= SolutionWarnings.VERT_IMPRECISE

        right, left = samples
        return right, left, warnings

    @staticmethod
    def _unit_rows(coord: np.ndarray, sources: Sequence[HiddenPointInput]) -> np.ndarray:
        """Horizontal unit vectors from coord towards each source."""
        rows = []
        for src in sources:
            delta = src.coord[:2] - coord[:2]
            rows.append(delta / np.linalg.norm(delta))
        return np.array(rows)


def create_default_solver() -> HiddenPointSolver:
    """
    Create a solver with survey-grade defaults.

    Returns:
        HiddenPointSolver (5 iterations, 1 mm convergence, 2 sigma checks)
    """
    return HiddenPointSolver(HiddenPointSolverConfig())
