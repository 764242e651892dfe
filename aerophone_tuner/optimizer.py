"""
Optimizer for instrument geometry.

Minimises an objective function (weighted squared tuning error of a
geometry point) with scipy.optimize and reports the best geometry found.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np
from scipy.optimize import differential_evolution, minimize, minimize_scalar

from .geometry import Instrument, convert_instrument
from .objective import Constraints, ObjectiveFunction

logger = logging.getLogger(__name__)

METHODS = ('powell', 'nelder-mead', 'brent', 'differential_evolution')


@dataclass
class OptimizationResult:
    """Results from the optimization."""
    success: bool
    method: str
    point: np.ndarray
    initial_norm: float
    final_norm: float
    n_evaluations: int
    n_tunings: int
    elapsed_time: float
    message: str = ""
    initial_point: Optional[np.ndarray] = None
    constraints: Optional[Constraints] = None
    optimized_instrument: Optional[Instrument] = None
    start_norms: list[float] = field(default_factory=list)

    @property
    def residual_error_ratio(self) -> float:
        """Final norm as a fraction of the initial norm."""
        if not self.initial_norm:
            return 0.0 if not self.final_norm else float('inf')
        return self.final_norm / self.initial_norm

    def summary(self) -> str:
        """Generate a human-readable summary."""
        lines = []
        lines.append("=" * 60)
        lines.append("OPTIMIZATION RESULT")
        lines.append("=" * 60)
        lines.append(f"Status: {'SUCCESS' if self.success else 'FAILED'}")
        lines.append(f"Method: {self.method}")
        lines.append(f"Evaluations: {self.n_evaluations}  (tunings: {self.n_tunings})")
        if self.message:
            lines.append(f"Message: {self.message}")
        lines.append("")

        if self.constraints is not None and len(self.point):
            lines.append(f"GEOMETRY ({self.constraints.objective_name}):")
            lines.append(f"  {'Variable':<36} {'Start':>9} {'Final':>9} {'Bounds':>19}")
            lines.append(f"  {'-'*36} {'-'*9} {'-'*9} {'-'*19}")
            start = self.initial_point if self.initial_point is not None else self.point
            for i, constraint in enumerate(self.constraints.constraints):
                # Dimensional values are shown in mm
                scale = 1000.0 if constraint.dimensional else 1.0
                bounds = ""
                if constraint.lower_bound is not None and constraint.upper_bound is not None:
                    bounds = (f"{constraint.lower_bound * scale:.2f}"
                              f" - {constraint.upper_bound * scale:.2f}")
                lines.append(f"  {constraint.name:<36} {start[i] * scale:>9.2f}"
                             f" {self.point[i] * scale:>9.2f} {bounds:>19}")
            lines.append("")

        lines.append("ERROR NORM:")
        lines.append(f"  Initial:  {self.initial_norm:.6g}")
        lines.append(f"  Final:    {self.final_norm:.6g}")
        lines.append(f"  Residual: {self.residual_error_ratio:.4f}")
        if len(self.start_norms) > 1:
            lines.append(f"  Starts:   {len(self.start_norms)} "
                         f"(best {min(self.start_norms):.6g})")
        lines.append(f"Elapsed: {self.elapsed_time:.2f} s")
        lines.append("=" * 60)
        return "\n".join(lines)


# =============================================================================
# Starting points
# =============================================================================

def starting_points(
    lower,
    upper,
    n: int,
    kind: str = 'random',
    indices_to_vary: Optional[list[int]] = None,
    start=None,
    seed: Optional[int] = None
) -> np.ndarray:
    """
    Generate ``n`` start vectors inside the box [lower, upper].

    Args:
        lower, upper: Bounds of each dimension
        n: Number of points
        kind: 'random' (uniform), 'grid' (regular lattice over the varying
            dimensions, filled in counter order) or 'latin' (Latin hypercube)
        indices_to_vary: Dimensions to spread; all if omitted
        start: Values for the dimensions that are not varied; ``lower`` if
            omitted
        seed: Seed for the random kinds

    Returns:
        Array of shape (n, dimensions)
    """
    lower = np.asarray(lower, dtype=float)
    upper = np.asarray(upper, dtype=float)
    n_dims = len(lower)
    if indices_to_vary is None:
        indices_to_vary = list(range(n_dims))
    base = lower if start is None else np.asarray(start, dtype=float)

    points = np.tile(base, (n, 1))
    if n <= 0 or not indices_to_vary:
        return points

    varying = np.asarray(indices_to_vary)
    span = upper[varying] - lower[varying]
    rng = np.random.default_rng(seed)

    if kind == 'random':
        fractions = rng.random((n, len(varying)))
    elif kind == 'grid':
        per_dim = max(2, int(np.floor(n ** (1.0 / len(varying)))))
        counters = np.arange(n)[:, None] // per_dim ** np.arange(len(varying)) % per_dim
        fractions = counters / (per_dim - 1)
    elif kind == 'latin':
        fractions = np.column_stack([
            (rng.permutation(n) + rng.random(n)) / n for _ in varying
        ])
    else:
        raise ValueError(f"Unknown starting point kind: {kind}")

    points[:, varying] = lower[varying] + fractions * span
    return points


# =============================================================================
# Optimization
# =============================================================================

def _failed_result(objective, method, message, start, start_time, initial_norm=np.nan):
    logger.warning("Optimization failed: %s", message)
    return OptimizationResult(
        success=False,
        method=method,
        point=np.asarray(start, dtype=float),
        initial_norm=initial_norm,
        final_norm=initial_norm,
        n_evaluations=objective.evaluations,
        n_tunings=objective.tunings,
        elapsed_time=time.perf_counter() - start_time,
        message=message,
        initial_point=np.asarray(start, dtype=float),
        constraints=objective.constraints,
    )


def optimize_objective(
    objective: ObjectiveFunction,
    method: str = 'powell',
    max_evaluations: int = 2000,
    starts: int = 1,
    start_kind: str = 'latin',
    seed: Optional[int] = 42,
    verbose: bool = False,
    callback: Optional[Callable] = None
) -> OptimizationResult:
    """
    Minimise ``objective`` within its bounds.

    Args:
        objective: Objective function, with bounds set
        method: 'powell', 'nelder-mead', 'brent' (one dimension only) or
            'differential_evolution' (global search, then Powell refinement)
        max_evaluations: Evaluation budget for each local run
        starts: Number of local runs; the first starts from the current
            geometry, the rest from ``starting_points``
        start_kind: Kind of the extra starting points
        seed: Seed for the starting points and the global search
        verbose: Print each new best
        callback: Optional callback(evaluation, point, norm) on each new best

    Returns:
        OptimizationResult. The best point seen is kept, so its final norm
        never exceeds the initial norm. The objective is left at that point.
    """
    method = method.lower()
    if method not in METHODS:
        raise ValueError(f"Unknown method: {method}")

    start_time = time.perf_counter()
    objective.reset_statistics()
    n_dims = objective.n_dimensions
    start = objective.initial_point()

    if n_dims == 0:
        return _failed_result(objective, method, "Nothing to optimize: zero dimensions",
                              start, start_time)
    if method == 'brent' and n_dims != 1:
        raise ValueError(f"Brent's method needs one dimension, objective has {n_dims}")

    best_norm = [np.inf]
    best_x = [start.copy()]

    def tracked(x) -> float:
        x = np.clip(np.atleast_1d(np.asarray(x, dtype=float)),
                    objective.lower_bounds, objective.upper_bounds)
        norm = objective.value(x)
        if norm < best_norm[0]:
            best_norm[0] = norm
            best_x[0] = x.copy()
            if verbose:
                print(f"[{objective.evaluations:4d}] norm={norm:12.6g}  ★ NEW BEST")
            if callback:
                callback(objective.evaluations, x, norm)
        return norm

    start_norms = []
    message = ""
    try:
        initial_norm = tracked(start)
        logger.info("%s: %d dimensions, %d notes, initial norm %.6g",
                    objective.constraints.objective_name, n_dims,
                    objective.n_notes, initial_norm)

        if method == 'differential_evolution':
            n_pop = 10
            result = differential_evolution(
                tracked,
                bounds=objective.bounds,
                maxiter=max(1, max_evaluations // (n_pop * n_dims)),
                popsize=n_pop,
                tol=1e-4,
                seed=seed,
                polish=False,
                x0=start,
            )
            logger.info("Global search: norm %.6g after %d evaluations",
                        result.fun, objective.evaluations)
            starts_list = [best_x[0].copy()]
            local_method = 'powell'
        else:
            starts_list = [start]
            if starts > 1:
                extra = starting_points(objective.lower_bounds, objective.upper_bounds,
                                        starts - 1, kind=start_kind, start=start, seed=seed)
                starts_list.extend(extra)
            local_method = method

        for x0 in starts_list:
            before = best_norm[0]
            if local_method == 'brent':
                result = minimize_scalar(
                    lambda v: tracked([v]),
                    bounds=(objective.lower_bounds[0], objective.upper_bounds[0]),
                    method='bounded',
                    options={'maxiter': max_evaluations, 'xatol': 1e-7},
                )
            elif local_method == 'nelder-mead':
                result = minimize(
                    tracked, x0, method='Nelder-Mead', bounds=objective.bounds,
                    options={'maxfev': max_evaluations, 'xatol': 1e-7, 'fatol': 1e-8},
                )
            else:
                result = minimize(
                    tracked, x0, method='Powell', bounds=objective.bounds,
                    options={'maxfev': max_evaluations, 'xtol': 1e-7, 'ftol': 1e-8},
                )
            start_norms.append(float(result.fun))
            message = str(result.message)
            logger.debug("Local run from %s: norm %.6g (best before %.6g)",
                         np.array2string(np.asarray(x0), precision=5), result.fun, before)

        objective.set_geometry_point(best_x[0])
    except Exception as e:
        return _failed_result(objective, method, f"{type(e).__name__}: {e}", best_x[0],
                              start_time, best_norm[0] if np.isfinite(best_norm[0]) else np.nan)

    result = OptimizationResult(
        success=True,
        method=method,
        point=best_x[0],
        initial_norm=initial_norm,
        final_norm=best_norm[0],
        n_evaluations=objective.evaluations,
        n_tunings=objective.tunings,
        elapsed_time=time.perf_counter() - start_time,
        message=message,
        initial_point=start,
        constraints=objective.constraints,
        optimized_instrument=convert_instrument(objective.instrument, 'M'),
        start_norms=start_norms,
    )
    logger.info("Optimization finished: norm %.6g -> %.6g in %d evaluations (%.2f s)",
                result.initial_norm, result.final_norm, result.n_evaluations,
                result.elapsed_time)
    return result
