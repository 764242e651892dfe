"""
Objective functions for instrument geometry optimisation.

An objective function maps a point (a vector of geometry values, in metres)
to a scalar error: the weighted sum of squares of an evaluator's error
vector over the target fingerings. Each subclass chooses which geometry the
point describes:

- LengthObjectiveFunction: bore length only
- HolePositionObjectiveFunction: bore length and hole spacings
- HoleSizeObjectiveFunction: hole diameters
- HoleObjectiveFunction: bore length, hole spacings and hole diameters

Hole spacings run from the bottom of the bore upwards: the first is the
distance from the bore end to the bottom hole, the next from the bottom hole
to the one above it, and so on. Keeping spacings rather than absolute
positions means positive lower bounds alone stop holes crossing.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from .evaluator import Evaluator
from .geometry import convert_instrument
from .instrument_calculator import InstrumentCalculator
from .tuning import Tuning

logger = logging.getLogger(__name__)


class BoreLengthAdjustment(Enum):
    """How a new bore length reshapes the bore profile."""
    MOVE_BOTTOM = "move_bottom"          # Move the last bore point only
    PRESERVE_TAPER = "preserve_taper"    # Scale every point below the top
    PRESERVE_LENGTH = "preserve_length"  # Leave the bore alone


# =============================================================================
# Constraints
# =============================================================================

@dataclass
class Constraint:
    """Name and bounds of one optimisation variable."""
    category: str
    name: str
    dimensional: bool = True
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None


@dataclass
class Constraints:
    """Description of every variable of an objective function."""
    objective_name: str = ""
    number_of_holes: int = 0
    constraints: list[Constraint] = field(default_factory=list)

    def add(self, category: str, name: str, dimensional: bool = True):
        self.constraints.append(Constraint(category, name, dimensional))

    def set_bounds(self, lower, upper):
        for constraint, lo, hi in zip(self.constraints, lower, upper):
            constraint.lower_bound = float(lo)
            constraint.upper_bound = float(hi)

    @property
    def lower_bounds(self) -> list[Optional[float]]:
        return [c.lower_bound for c in self.constraints]

    @property
    def upper_bounds(self) -> list[Optional[float]]:
        return [c.upper_bound for c in self.constraints]

    def __len__(self) -> int:
        return len(self.constraints)


def hole_name(index_from_bottom: int, total: int) -> str:
    """Display name of a hole counted from the bottom, starting at 1."""
    if total == 1:
        return "Hole"
    if index_from_bottom == 1:
        return "Bottom hole"
    if index_from_bottom == total:
        return "Top hole"
    return f"Hole {index_from_bottom}"


# =============================================================================
# Base class
# =============================================================================

class ObjectiveFunction(ABC):
    """
    Weighted least-squares error of a geometry point.

    Args:
        calculator: Calculator for the starting instrument. Its component
            calculators and air properties are reused for every point.
        tuning: Target fingerings
        evaluator: Error measure per fingering

    Attributes:
        instrument: Working copy of the geometry in metres, updated by
            ``set_geometry_point``
        calculator: Calculator for the current point
        lower_bounds, upper_bounds: Bounds of each dimension (numpy arrays)
    """

    display_name = "Objective"
    category = ""

    def __init__(self, calculator: InstrumentCalculator, tuning: Tuning, evaluator: Evaluator,
                 length_adjustment: BoreLengthAdjustment = BoreLengthAdjustment.MOVE_BOTTOM):
        self.base_calculator = calculator
        self.calculator = calculator
        self.instrument = convert_instrument(calculator.instrument, 'M')
        self.fingerings = list(tuning.fingerings)
        self.evaluator = evaluator
        self.length_adjustment = length_adjustment

        self.constraints = Constraints(self.display_name, len(self.instrument.holes))
        self._add_constraints()
        self.lower_bounds = np.zeros(0)
        self.upper_bounds = np.zeros(0)
        lower, upper = self.default_bounds()
        self.set_bounds(lower, upper)

        self.evaluations = 0
        self.tunings = 0

    # --- geometry --------------------------------------------------------

    @abstractmethod
    def geometry_point(self) -> np.ndarray:
        """Current geometry as a point."""

    @abstractmethod
    def _apply_point(self, point: np.ndarray):
        """Write ``point`` into ``self.instrument``."""

    @abstractmethod
    def _add_constraints(self):
        ...

    @abstractmethod
    def default_bounds(self) -> tuple[np.ndarray, np.ndarray]:
        ...

    @property
    def n_dimensions(self) -> int:
        return len(self.constraints)

    @property
    def n_notes(self) -> int:
        """Fingerings that count towards the norm."""
        return sum(1 for f in self.fingerings if f.weight > 0)

    def _check_dimensions(self, values):
        if len(values) != self.n_dimensions:
            raise ValueError(f"Dimension mismatch: expected {self.n_dimensions}, "
                             f"got {len(values)}")

    def set_geometry_point(self, point):
        point = np.asarray(point, dtype=float)
        self._check_dimensions(point)
        self._apply_point(point)
        self.calculator = self.base_calculator.with_instrument(self.instrument)

    def bore_end(self) -> float:
        return max(bp.position for bp in self.instrument.bore_points)

    def set_bore_length(self, new_length: float):
        points = self.instrument.sorted_bore_points()
        if len(points) < 2:
            return

        if self.length_adjustment is BoreLengthAdjustment.MOVE_BOTTOM:
            points[-1].position = new_length
        elif self.length_adjustment is BoreLengthAdjustment.PRESERVE_TAPER:
            top = points[0].position
            old_length = points[-1].position - top
            if old_length > 0:
                ratio = (new_length - top) / old_length
                for bp in points[1:]:
                    bp.position = top + (bp.position - top) * ratio

    def hole_spacings(self) -> list[float]:
        """Spacings from the bore end upwards, bottom hole first."""
        spacings = []
        prior = self.bore_end()
        for hole in reversed(self.instrument.sorted_holes()):
            spacings.append(prior - hole.position)
            prior = hole.position
        return spacings

    def set_hole_spacings(self, bore_end: float, spacings):
        holes = self.instrument.sorted_holes()
        prior = bore_end
        for hole, spacing in zip(reversed(holes), spacings):
            hole.position = prior - spacing
            prior = hole.position

    def _add_spacing_constraints(self):
        holes = self.instrument.sorted_holes()
        n = len(holes)
        for j in range(1, n + 1):
            hole = holes[n - j]
            name = hole.name or hole_name(j, n)
            if j == 1:
                below = "bore end"
            else:
                below = holes[n - j + 1].name or hole_name(j - 1, n)
            self.constraints.add(self.category, f"{name} to {below} distance")

    def _add_diameter_constraints(self):
        holes = self.instrument.sorted_holes()
        n = len(holes)
        for i, hole in enumerate(holes):
            name = hole.name or hole_name(n - i, n)
            self.constraints.add(self.category, f"{name} diameter")

    # --- bounds ----------------------------------------------------------

    def set_bounds(self, lower, upper):
        """
        Set the search box.

        Reversed bounds are swapped; equal bounds are widened by 1e-7 so the
        optimiser sees a non-empty range.
        """
        lower = np.asarray(lower, dtype=float)
        upper = np.asarray(upper, dtype=float)
        self._check_dimensions(lower)
        self._check_dimensions(upper)

        lo = np.minimum(lower, upper)
        hi = np.maximum(lower, upper)
        lo = np.where(lo == hi, lo - 1e-7, lo)

        self.lower_bounds = lo
        self.upper_bounds = hi
        self.constraints.set_bounds(lo, hi)
        logger.debug("%s bounds: %s to %s", self.display_name, lo, hi)

    @property
    def bounds(self) -> list[tuple[float, float]]:
        return list(zip(self.lower_bounds, self.upper_bounds))

    def initial_point(self) -> np.ndarray:
        """Current geometry clipped to the bounds."""
        return np.clip(self.geometry_point(), self.lower_bounds, self.upper_bounds)

    # --- evaluation ------------------------------------------------------

    def error_vector(self, point) -> np.ndarray:
        self.set_geometry_point(point)
        return self.evaluator.calculate_error_vector(self.calculator, self.fingerings)

    def calc_norm(self, errors) -> float:
        """Sum of weight * error^2; fingerings with zero weight are ignored."""
        weights = np.array([f.weight for f in self.fingerings], dtype=float)
        errors = np.asarray(errors, dtype=float)
        return float(np.sum(weights * errors * errors))

    def value(self, point) -> float:
        self.evaluations += 1
        errors = self.error_vector(point)
        self.tunings += len(errors)
        return self.calc_norm(errors)

    def __call__(self, point) -> float:
        return self.value(point)

    def reset_statistics(self):
        self.evaluations = 0
        self.tunings = 0


# =============================================================================
# Objective functions
# =============================================================================

class LengthObjectiveFunction(ObjectiveFunction):
    """Bore length only; holes stay where they are."""

    display_name = "Length optimizer"
    category = "Bore length"

    def geometry_point(self):
        return np.array([self.bore_end()])

    def _apply_point(self, point):
        self.set_bore_length(point[0])

    def _add_constraints(self):
        self.constraints.add(self.category, "Bore length")

    def default_bounds(self):
        length = self.bore_end()
        return np.array([max(0.05, 0.5 * length)]), np.array([2.0 * length])


class HolePositionObjectiveFunction(ObjectiveFunction):
    """Bore length followed by the hole spacings, bottom hole first."""

    display_name = "Hole position optimizer"
    category = "Hole position"

    def geometry_point(self):
        return np.array([self.bore_end()] + self.hole_spacings())

    def _apply_point(self, point):
        self.set_bore_length(point[0])
        self.set_hole_spacings(point[0], point[1:])

    def _add_constraints(self):
        self.constraints.add(self.category, "Bore length")
        self._add_spacing_constraints()

    def default_bounds(self):
        current = self.geometry_point()
        return np.maximum(0.001, 0.5 * current), 2.0 * current


class HoleSizeObjectiveFunction(ObjectiveFunction):
    """Hole diameters, top hole first."""

    display_name = "Hole size optimizer"
    category = "Hole size"

    def geometry_point(self):
        return np.array([h.diameter for h in self.instrument.sorted_holes()])

    def _apply_point(self, point):
        for hole, diameter in zip(self.instrument.sorted_holes(), point):
            hole.diameter = diameter

    def _add_constraints(self):
        self._add_diameter_constraints()

    def default_bounds(self):
        current = self.geometry_point()
        return np.maximum(0.002, 0.5 * current), np.minimum(0.02, 2.0 * current)


class HoleObjectiveFunction(ObjectiveFunction):
    """Bore length, hole spacings (bottom first) and hole diameters (top first)."""

    display_name = "Hole geometry optimizer"
    category = "Hole geometry"

    def geometry_point(self):
        diameters = [h.diameter for h in self.instrument.sorted_holes()]
        return np.array([self.bore_end()] + self.hole_spacings() + diameters)

    def _apply_point(self, point):
        n = len(self.instrument.holes)
        self.set_bore_length(point[0])
        self.set_hole_spacings(point[0], point[1:n + 1])
        for hole, diameter in zip(self.instrument.sorted_holes(), point[n + 1:]):
            hole.diameter = diameter

    def _add_constraints(self):
        self.constraints.add(self.category, "Bore length")
        self._add_spacing_constraints()
        self._add_diameter_constraints()

    def default_bounds(self):
        current = self.geometry_point()
        n = len(self.instrument.holes)
        lower = np.empty_like(current)
        upper = np.empty_like(current)

        lower[0] = max(0.05, 0.5 * current[0])
        upper[0] = 2.0 * current[0]
        lower[1:n + 1] = np.maximum(0.005, 0.5 * current[1:n + 1])
        upper[1:n + 1] = 2.0 * current[1:n + 1]
        lower[n + 1:] = np.maximum(0.002, 0.5 * current[n + 1:])
        upper[n + 1:] = np.minimum(0.02, 2.0 * current[n + 1:])
        return lower, upper
