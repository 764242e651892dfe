"""
Complex arithmetic helpers for the transmission-line model.

Python's built-in ``complex`` is the value type used throughout the package.
The operators and cmath cover most needs; this module adds division that
propagates NaN instead of raising, and tolerance-based equality.
"""

import math

ZERO = complex(0.0, 0.0)
ONE = complex(1.0, 0.0)
I = complex(0.0, 1.0)
NAN = complex(math.nan, math.nan)


def cdiv(a, b) -> complex:
    """
    Divide ``a`` by ``b`` without raising on a zero denominator.

    Real or complex operands are accepted. A zero denominator yields
    ``complex(nan, nan)`` so the result propagates through later arithmetic
    the way IEEE division would.
    """
    a = complex(a)
    b = complex(b)
    denominator = b.real * b.real + b.imag * b.imag
    if denominator == 0.0:
        return NAN
    return complex(
        (a.real * b.real + a.imag * b.imag) / denominator,
        (a.imag * b.real - a.real * b.imag) / denominator,
    )


def reciprocal(z) -> complex:
    """1/z, NaN for zero."""
    return cdiv(ONE, z)


def is_nan(z) -> bool:
    return math.isnan(z.real) or math.isnan(z.imag)


def is_infinite(z) -> bool:
    """True when either component is infinite and neither is NaN."""
    return not is_nan(z) and (math.isinf(z.real) or math.isinf(z.imag))


def complex_equals(a, b, tolerance: float = 0.0) -> bool:
    """
    Compare two complex values.

    With ``tolerance == 0`` the comparison is exact; otherwise each component
    must agree to within ``tolerance``.
    """
    if tolerance == 0.0:
        return a.real == b.real and a.imag == b.imag
    return abs(a.real - b.real) <= tolerance and abs(a.imag - b.imag) <= tolerance

