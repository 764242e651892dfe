"""
Playing-range solver.

Finds the frequencies where an instrument, for one fingering, will sound:
the zero of the input reactance nearest a target (fmax, the top of the
playing range) and the lowest frequency that still sustains oscillation
(fmin). The impedance is treated as a black box; roots are bracketed by
stepping outward from the target, then refined with Brent's method.

Failure to find a root is a normal outcome, reported as a
``PlayingRangeResult`` with ``success=False`` rather than an exception.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from scipy.optimize import brentq, minimize_scalar

from .instrument_calculator import InstrumentCalculator
from .tuning import Fingering

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverConfig:
    """
    Search and refinement settings.

    Attributes:
        granularity: Bracket search step as a fraction of the start frequency (~20 cents)
        preferred_ratio: A bracket within this ratio of the start is accepted
            without looking on the other side (~200 cents)
        search_bound_ratio: Give up beyond this ratio of the start (an octave)
        minimum_gain: Loop gain needed to sustain oscillation
        max_iterations: Brent iteration cap
        tolerance: Brent absolute tolerance (Hz)
    """
    granularity: float = 0.012
    preferred_ratio: float = 1.12
    search_bound_ratio: float = 2.0
    minimum_gain: float = 1.0
    max_iterations: int = 50
    tolerance: float = 1e-8


@dataclass(frozen=True)
class PlayingRangeResult:
    """Outcome of a search: a frequency, or no playing range near ``near_frequency``."""
    success: bool
    frequency: Optional[float]
    near_frequency: float
    message: str = ""

    @classmethod
    def found(cls, frequency: float, near_frequency: float) -> 'PlayingRangeResult':
        return cls(True, frequency, near_frequency)

    @classmethod
    def no_range(cls, near_frequency: float, reason: str = "") -> 'PlayingRangeResult':
        message = f"No playing range near {near_frequency:g} Hz"
        if reason:
            message = f"{message}: {reason}"
        return cls(False, None, near_frequency, message)

    def __bool__(self) -> bool:
        return self.success


# =============================================================================
# Scalar solvers
# =============================================================================

def brent_root(func: Callable[[float], float], lo: float, hi: float,
               tolerance: float = 1e-8, max_iterations: int = 50) -> Optional[float]:
    """
    Root of ``func`` in [lo, hi] by Brent's method.

    Returns None when the endpoints do not bracket a sign change or the
    iteration cap is reached first.
    """
    try:
        root, info = brentq(func, lo, hi, xtol=tolerance, maxiter=max_iterations,
                            full_output=True, disp=False)
    except ValueError as exc:
        logger.debug("Brent solver failed on [%g, %g]: %s", lo, hi, exc)
        return None
    if not info.converged:
        logger.debug("Brent solver did not converge on [%g, %g] after %d iterations",
                     lo, hi, info.iterations)
        return None
    return root


def golden_minimum(func: Callable[[float], float], lo: float, hi: float,
                   rel_tolerance: float = 1e-6) -> float:
    """Location of a local minimum of ``func`` in [lo, hi] (bounded golden-section/Brent)."""
    result = minimize_scalar(func, bounds=(lo, hi), method='bounded',
                             options={'xatol': rel_tolerance * (abs(lo) + abs(hi)) / 2})
    return float(result.x)


def impedance_ratio(z: complex) -> float:
    # NaN for a purely reactive impedance
    if z.real == 0.0:
        return math.nan
    return z.imag / z.real


# =============================================================================
# Target functions
# =============================================================================

class ReactanceFunction:
    """Im(Z(f)) - target."""

    def __init__(self, calculator: InstrumentCalculator, fingering: Fingering,
                 target: float = 0.0):
        self.calculator = calculator
        self.fingering = fingering
        self.target = target

    def value_from_z(self, z: complex) -> float:
        return z.imag - self.target

    def value(self, freq: float) -> float:
        return self.value_from_z(self.calculator.calc_z(freq, self.fingering))

    __call__ = value


class ZRatioFunction(ReactanceFunction):
    """Im(Z(f))/Re(Z(f)) - target."""

    def value_from_z(self, z: complex) -> float:
        return impedance_ratio(z) - self.target


class GainFunction:
    """Loop gain(f) - target."""

    def __init__(self, calculator: InstrumentCalculator, fingering: Fingering,
                 target: float = 1.0):
        self.calculator = calculator
        self.fingering = fingering
        self.target = target

    def value(self, freq: float) -> float:
        z = self.calculator.calc_z(freq, self.fingering)
        return self.calculator.calc_gain(freq, z) - self.target

    __call__ = value


# =============================================================================
# Playing range
# =============================================================================

class PlayingRange:
    """
    Root and range searches for one instrument calculator and fingering.

    Args:
        calculator: Impedance oracle
        fingering: Hole states to evaluate
        config: Solver settings; SolverConfig() if omitted
    """

    def __init__(self, calculator: InstrumentCalculator, fingering: Fingering,
                 config: Optional[SolverConfig] = None):
        self.calculator = calculator
        self.fingering = fingering
        self.config = config or SolverConfig()

    def _calc_z(self, freq: float) -> complex:
        return self.calculator.calc_z(freq, self.fingering)

    def _bracket_above(self, near_freq: float, z_near: complex, func,
                       upper_bound: float) -> Optional[tuple[float, float]]:
        step = near_freq * self.config.granularity
        lower_freq = near_freq
        z_lower = z_near

        # Move up until func(lower) < 0
        while func.value_from_z(z_lower) >= 0:
            lower_freq += step
            if lower_freq >= upper_bound:
                return None
            z_lower = self._calc_z(lower_freq)

        # Then until func(upper) > 0
        upper_freq = lower_freq + step
        z_upper = self._calc_z(upper_freq)
        while func.value_from_z(z_upper) <= 0:
            if func.value_from_z(z_upper) < 0:
                lower_freq = upper_freq
            upper_freq += step
            if upper_freq > upper_bound:
                return None
            z_upper = self._calc_z(upper_freq)

        return lower_freq, upper_freq

    def _bracket_below(self, near_freq: float, z_near: complex, func,
                       lower_bound: float) -> Optional[tuple[float, float]]:
        step = near_freq * self.config.granularity
        upper_freq = near_freq
        z_upper = z_near

        # Move down until func(upper) > 0
        while func.value_from_z(z_upper) <= 0:
            upper_freq -= step
            if upper_freq <= lower_bound:
                return None
            z_upper = self._calc_z(upper_freq)

        # Then until func(lower) < 0
        lower_freq = upper_freq - step
        z_lower = self._calc_z(lower_freq)
        while func.value_from_z(z_lower) >= 0:
            if func.value_from_z(z_lower) > 0:
                upper_freq = lower_freq
            lower_freq -= step
            if lower_freq < lower_bound:
                return None
            z_lower = self._calc_z(lower_freq)

        return lower_freq, upper_freq

    def find_bracket(self, near_freq: float, func) -> Optional[tuple[float, float]]:
        """
        Interval (lo, hi) with func(lo) < 0 < func(hi), close to ``near_freq``.

        The search starts on the side the function's sign points to. If that
        bracket is missing or further than ``preferred_ratio`` away, the other
        side is searched too, no further out than the first bracket, and
        the closer result wins. Returns None when neither side has a sign
        change within ``search_bound_ratio``.
        """
        cfg = self.config
        freq = near_freq
        z_near = self._calc_z(freq)

        # Landed exactly on a zero
        while func.value_from_z(z_near) == 0:
            freq *= 0.999
            z_near = self._calc_z(freq)

        if func.value_from_z(z_near) < 0:
            upward = self._bracket_above(freq, z_near, func, near_freq * cfg.search_bound_ratio)
            if upward is None or upward[1] > near_freq * cfg.preferred_ratio:
                if upward is None:
                    limit = near_freq / cfg.search_bound_ratio
                else:
                    limit = near_freq * near_freq / upward[1]
                downward = self._bracket_below(freq, z_near, func, limit)
                if downward is not None:
                    logger.debug("Bracket near %g Hz: %s (below)", near_freq, downward)
                    return downward
            logger.debug("Bracket near %g Hz: %s (above)", near_freq, upward)
            return upward

        downward = self._bracket_below(freq, z_near, func, near_freq / cfg.search_bound_ratio)
        if downward is None or downward[0] < near_freq / cfg.preferred_ratio:
            if downward is None:
                limit = near_freq * cfg.search_bound_ratio
            else:
                limit = near_freq * near_freq / downward[0]
            upward = self._bracket_above(freq, z_near, func, limit)
            if upward is not None:
                logger.debug("Bracket near %g Hz: %s (above)", near_freq, upward)
                return upward
        logger.debug("Bracket near %g Hz: %s (below)", near_freq, downward)
        return downward

    def _find_root(self, near_freq: float, func) -> PlayingRangeResult:
        bracket = self.find_bracket(near_freq, func)
        if bracket is None:
            return PlayingRangeResult.no_range(near_freq, "no sign change within search bounds")
        root = brent_root(func.value, bracket[0], bracket[1],
                          self.config.tolerance, self.config.max_iterations)
        if root is None:
            return PlayingRangeResult.no_range(near_freq, "root refinement failed")
        return PlayingRangeResult.found(root, near_freq)

    def find_x_zero(self, near_freq: float) -> PlayingRangeResult:
        """Zero of the reactance nearest ``near_freq``, crossing from negative to positive."""
        return self._find_root(near_freq, ReactanceFunction(self.calculator, self.fingering))

    def find_x(self, near_freq: float, target_x: float) -> PlayingRangeResult:
        """Frequency near ``near_freq`` where Im(Z) equals ``target_x``."""
        return self._find_root(
            near_freq, ReactanceFunction(self.calculator, self.fingering, target_x))

    def find_z_ratio(self, near_freq: float, target_ratio: float) -> PlayingRangeResult:
        """Frequency near ``near_freq`` where Im(Z)/Re(Z) equals ``target_ratio``."""
        return self._find_root(
            near_freq, ZRatioFunction(self.calculator, self.fingering, target_ratio))

    def find_fmax(self, near_freq: float) -> PlayingRangeResult:
        return self.find_x_zero(near_freq)

    def find_fmin(self, fmax: float) -> PlayingRangeResult:
        """
        Bottom of the playing range below ``fmax``.

        Steps down while the gain stays above ``minimum_gain`` and Im(Z)/Re(Z)
        keeps falling, then takes the higher of the frequency where the gain
        reaches the minimum and the local minimum of Im(Z)/Re(Z).
        """
        cfg = self.config
        step = fmax * cfg.granularity

        lower_freq = fmax
        z_lo = self._calc_z(fmax)
        gain_lo = self.calculator.calc_gain(lower_freq, z_lo)
        ratio = impedance_ratio(z_lo)
        min_ratio = ratio + 1.0

        if gain_lo < cfg.minimum_gain:
            return PlayingRangeResult.no_range(fmax, f"gain {gain_lo:.3g} below minimum at fmax")

        while gain_lo >= cfg.minimum_gain and ratio < min_ratio:
            min_ratio = ratio
            lower_freq -= step
            if lower_freq < fmax / cfg.search_bound_ratio:
                return PlayingRangeResult.no_range(fmax, "no lower bound within search bounds")
            z_lo = self._calc_z(lower_freq)
            gain_lo = self.calculator.calc_gain(lower_freq, z_lo)
            ratio = impedance_ratio(z_lo)

        if gain_lo < cfg.minimum_gain:
            gain_func = GainFunction(self.calculator, self.fingering, cfg.minimum_gain)
            freq_gain = brent_root(gain_func.value, lower_freq, fmax,
                                   cfg.tolerance, cfg.max_iterations)
            if freq_gain is None:
                return PlayingRangeResult.no_range(fmax, "gain threshold refinement failed")
        else:
            freq_gain = lower_freq

        freq_ratio = golden_minimum(lambda f: impedance_ratio(self._calc_z(f)), lower_freq, fmax)
        return PlayingRangeResult.found(max(freq_ratio, freq_gain), fmax)

    def find_range(self, near_freq: float) -> tuple[PlayingRangeResult, PlayingRangeResult]:
        """(fmin, fmax) results for the playing range nearest ``near_freq``."""
        fmax = self.find_fmax(near_freq)
        if not fmax.success:
            return PlayingRangeResult.no_range(near_freq, fmax.message), fmax
        return self.find_fmin(fmax.frequency), fmax
