"""
2x2 complex transfer matrices.

A transfer matrix maps the (pressure, volume flow) state on one side of a
component to the state on the other:

    [P_in]   [PP  PU] [P_out]
    [U_in] = [UP  UU] [U_out]

Composition order matters: ``A.multiply(B)`` applies ``B`` first when the
product is later applied to a state vector.
"""

from dataclasses import dataclass

import numpy as np

from .complex_math import ONE, ZERO, cdiv, complex_equals


@dataclass(frozen=True)
class TransferMatrix:
    """Immutable 2x2 complex transfer matrix."""
    pp: complex = ONE
    pu: complex = ZERO
    up: complex = ZERO
    uu: complex = ONE

    @classmethod
    def identity(cls) -> 'TransferMatrix':
        return cls(ONE, ZERO, ZERO, ONE)

    def multiply(self, rhs: 'TransferMatrix') -> 'TransferMatrix':
        """Matrix product ``self @ rhs``."""
        return multiply(self, rhs)

    def __matmul__(self, rhs: 'TransferMatrix') -> 'TransferMatrix':
        return multiply(self, rhs)

    def multiply_state(self, p: complex, u: complex) -> tuple[complex, complex]:
        """Apply this matrix to the column vector (p, u)."""
        return (
            self.pp * p + self.pu * u,
            self.up * p + self.uu * u,
        )

    def determinant(self) -> complex:
        return self.pp * self.uu - self.pu * self.up

    def inverse(self) -> 'TransferMatrix':
        """
        Inverse as adj(M)/det(M).

        Near-singular matrices give large (or NaN) coefficients rather than
        an exception.
        """
        det = self.determinant()
        return TransferMatrix(
            cdiv(self.uu, det),
            cdiv(-self.pu, det),
            cdiv(-self.up, det),
            cdiv(self.pp, det),
        )

    def equals(self, other: 'TransferMatrix', tolerance: float = 0.0) -> bool:
        return (
            complex_equals(self.pp, other.pp, tolerance)
            and complex_equals(self.pu, other.pu, tolerance)
            and complex_equals(self.up, other.up, tolerance)
            and complex_equals(self.uu, other.uu, tolerance)
        )

    def as_array(self) -> np.ndarray:
        """Coefficients as a 2x2 complex numpy array."""
        return np.array([[self.pp, self.pu], [self.up, self.uu]], dtype=complex)

    def __str__(self) -> str:
        return (f"TransferMatrix[[{self.pp}, {self.pu}], "
                f"[{self.up}, {self.uu}]]")


def multiply(lhs: TransferMatrix, rhs: TransferMatrix) -> TransferMatrix:
    """Matrix product ``lhs @ rhs``; identical arithmetic to the method form."""
    return TransferMatrix(
        lhs.pp * rhs.pp + lhs.pu * rhs.up,
        lhs.pp * rhs.pu + lhs.pu * rhs.uu,
        lhs.up * rhs.pp + lhs.uu * rhs.up,
        lhs.up * rhs.pu + lhs.uu * rhs.uu,
    )
