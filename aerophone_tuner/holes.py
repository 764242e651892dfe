"""
Tone-hole transfer matrices (Lefebvre and Scavone lumped tonehole model).

A tone hole is a symmetric two-port: a series inertance Za and a shunt
admittance Ys,

    A = 1 + Za*Ys/2,   B = Za*(1 + Za*Ys/4),   C = Ys,   D = A

with length corrections that depend on whether the hole is open, closed by a
finger, closed by a key pad, or plugged altogether.
"""

import math
from dataclasses import dataclass, replace
from typing import Optional, Protocol

from .complex_math import I, ONE, ZERO, cdiv
from .geometry import Hole
from .transfer_matrix import TransferMatrix

NO_FINGER_ADJ = 0.0
CAP_VOLUME_FINGER_ADJ = 0.02
CAP_HEIGHT_FINGER_ADJ = 0.011
DEFAULT_FINGER_ADJ = 0.01
DEFAULT_HOLE_SIZE_MULT = 1.0


class HoleCalculator(Protocol):
    def calc_transfer_matrix(self, hole: Hole, is_open: bool, wave_number: float,
                             params) -> TransferMatrix:
        ...


@dataclass(frozen=True)
class DefaultHoleCalculator:
    """
    Lefebvre-Scavone tonehole calculator.

    Args:
        hole_size_mult: Multiplier on the hole radius, for per-family calibration
        is_plugged: Closed holes contribute nothing (zero admittance, no inertance)
        finger_adjustment: Finger intrusion constant; None picks
            DEFAULT_FINGER_ADJ for an unscaled hole and NO_FINGER_ADJ otherwise
    """
    hole_size_mult: float = DEFAULT_HOLE_SIZE_MULT
    is_plugged: bool = False
    finger_adjustment: Optional[float] = None

    def __post_init__(self):
        if self.finger_adjustment is None:
            if self.hole_size_mult != DEFAULT_HOLE_SIZE_MULT:
                adjustment = NO_FINGER_ADJ
            else:
                adjustment = DEFAULT_FINGER_ADJ
            object.__setattr__(self, 'finger_adjustment', adjustment)

    def with_hole_size_mult(self, hole_size_mult: float) -> 'DefaultHoleCalculator':
        return replace(self, hole_size_mult=hole_size_mult)

    def with_finger_adjustment(self, finger_adjustment: float) -> 'DefaultHoleCalculator':
        return replace(self, finger_adjustment=finger_adjustment)

    def with_plugged(self, is_plugged: bool = True) -> 'DefaultHoleCalculator':
        return replace(self, is_plugged=is_plugged)

    def _elements(self, hole: Hole, is_open: bool, wave_number: float,
                  params) -> tuple[complex, complex]:
        """Series impedance Za and shunt admittance Ys of ``hole``."""
        radius = self.hole_size_mult * hole.diameter / 2.0
        bore_radius = (hole.bore_diameter or hole.diameter * 2.0) / 2.0

        z0h = params.calc_z0(radius)
        delta = radius / bore_radius
        delta2 = delta * delta

        # Matching length correction
        tm = 0.125 * radius * delta * (1.0 + 0.207 * delta * delta2)
        te = hole.height + tm

        # Inner length correction, frequency-independent part
        ti_base = radius * (0.822 + delta * (-0.095 + delta * (-1.566 + delta * (
            2.138 + delta * (-1.64 + delta * 0.502)))))

        if is_open:
            kb = wave_number * radius
            ka = wave_number * bore_radius

            ta = (-0.35 + 0.06 * math.tanh(2.7 * hole.height / radius)) * radius * delta2
            ti = ti_base * (1.0 + (1.0 - 4.56 * delta + 6.55 * delta2)
                            * ka * (0.17 + ka * (0.92 + ka * (0.16 - 0.29 * ka))))

            # Normalised radiation resistance and radiation length correction
            rr = 0.25 * kb * kb
            tr = radius * (0.822 - 0.47 * (radius / (bore_radius + hole.height)) ** 0.8)

            kt_total = wave_number * ti + math.tan(wave_number * (te + tr))
            ys = cdiv(ONE, complex(rr, kt_total) * z0h)
        elif self.is_plugged:
            ta = 0.0
            ys = ZERO
        elif hole.key is None:
            # Closed by a finger
            ta = (-0.2 - 0.1 * math.tanh(2.4 * hole.height / radius)) * radius * delta2
            tf = 0.0
            if self.finger_adjustment > 0.0:
                tf = radius * radius / self.finger_adjustment
            tan_kt = math.tan(wave_number * (te - tf))
            ys = complex(0.0, tan_kt / (z0h * (1.0 - wave_number * ti_base * tan_kt)))
        else:
            # Closed by a key pad
            ta = (-0.12 - 0.17 * math.tanh(2.4 * hole.height / radius)) * radius * delta2
            tan_kt = math.tan(wave_number * te)
            ys = complex(0.0, tan_kt / (z0h * (1.0 - wave_number * ti_base * tan_kt)))

        za = I * (z0h * delta2 * wave_number * ta)
        return za, ys

    def shunt_admittance(self, hole: Hole, is_open: bool, wave_number: float,
                         params) -> complex:
        return self._elements(hole, is_open, wave_number, params)[1]

    def series_impedance(self, hole: Hole, is_open: bool, wave_number: float,
                         params) -> complex:
        return self._elements(hole, is_open, wave_number, params)[0]

    def calc_transfer_matrix(self, hole: Hole, is_open: bool, wave_number: float,
                             params) -> TransferMatrix:
        za, ys = self._elements(hole, is_open, wave_number, params)
        za_ys = za * ys
        a = za_ys / 2.0 + ONE
        b = za * (za_ys / 4.0 + ONE)
        return TransferMatrix(a, b, ys, a)
