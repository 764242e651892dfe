"""
Acoustic state vectors: a (pressure, volume flow) pair at one bore location.

Impedance is never stored directly. Keeping P and U separately lets ideal
open (P = 0) and closed (U = 0) ends be represented exactly, and series or
parallel combinations are formed without dividing by either.
"""

import math
from dataclasses import dataclass

from .complex_math import ONE, ZERO, cdiv, complex_equals
from .transfer_matrix import TransferMatrix


@dataclass(frozen=True)
class StateVector:
    """Pressure and volume flow at a point in the bore."""
    p: complex = ZERO
    u: complex = ZERO

    @classmethod
    def from_impedance(cls, z: complex) -> 'StateVector':
        """
        State vector whose P/U ratio is ``z``.

        Both components are divided by (1 + Z) so they stay of order one.
        A real part of +inf maps to a closed end (1, 0); -inf maps to (-1, 0).
        """
        z = complex(z)
        if z.real == math.inf:
            return cls(ONE, ZERO)
        if z.real == -math.inf:
            return cls(complex(-1.0, 0.0), ZERO)
        z_plus_1 = z + 1.0
        return cls(cdiv(z, z_plus_1), cdiv(ONE, z_plus_1))

    @classmethod
    def open_end(cls) -> 'StateVector':
        """Ideal open end: zero pressure."""
        return cls(ZERO, ONE)

    @classmethod
    def closed_end(cls) -> 'StateVector':
        """Ideal closed end: zero flow."""
        return cls(ONE, ZERO)

    def impedance(self) -> complex:
        """P/U; a closed end (U = 0, real P) reads back as +/-inf."""
        if self.u == 0 and self.p.imag == 0 and self.p.real != 0:
            return complex(math.copysign(math.inf, self.p.real), 0.0)
        return cdiv(self.p, self.u)

    def admittance(self) -> complex:
        if self.p == 0 and self.u.imag == 0 and self.u.real != 0:
            return complex(math.copysign(math.inf, self.u.real), 0.0)
        return cdiv(self.u, self.p)

    def reflectance(self, z0: float) -> complex:
        """Reflection coefficient relative to characteristic impedance ``z0``."""
        uz0 = self.u * z0
        return cdiv(self.p - uz0, self.p + uz0)

    def series(self, other: 'StateVector') -> 'StateVector':
        """Impedances add: Z = Z_self + Z_other."""
        return StateVector(
            self.p * other.u + other.p * self.u,
            self.u * other.u,
        )

    def parallel(self, other: 'StateVector') -> 'StateVector':
        """Admittances add: 1/Z = 1/Z_self + 1/Z_other."""
        return StateVector(
            self.p * other.p,
            self.p * other.u + other.p * self.u,
        )

    def apply(self, tm: TransferMatrix) -> 'StateVector':
        """State on the far side of ``tm``."""
        p, u = tm.multiply_state(self.p, self.u)
        return StateVector(p, u)

    def equals(self, other: 'StateVector', tolerance: float = 0.0) -> bool:
        return (complex_equals(self.p, other.p, tolerance)
                and complex_equals(self.u, other.u, tolerance))
