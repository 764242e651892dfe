import math

import numpy as np
import pytest

from aerophone_tuner.state_vector import StateVector
from aerophone_tuner.transfer_matrix import TransferMatrix

IMPEDANCES = [3 - 4j, 120 + 45j, 1e-3 + 2e5j, -7.5 + 0.2j]


@pytest.mark.parametrize("z", IMPEDANCES)
def test_impedance_round_trip(z):
    assert StateVector.from_impedance(z).impedance() == pytest.approx(z, rel=1e-8)


def test_infinite_impedance_round_trip():
    closed = StateVector.from_impedance(math.inf)
    assert closed.p == 1 and closed.u == 0
    assert closed.impedance() == complex(math.inf, 0.0)

    negative = StateVector.from_impedance(-math.inf)
    assert negative.p == -1 and negative.u == 0
    assert negative.impedance() == complex(-math.inf, 0.0)


def test_ideal_ends():
    assert StateVector.open_end().impedance() == 0
    assert StateVector.closed_end().admittance() == 0
    assert StateVector.open_end().reflectance(5.0) == pytest.approx(-1.0)
    assert StateVector.closed_end().reflectance(5.0) == pytest.approx(1.0)


@pytest.mark.parametrize("za, zb", [(3 - 4j, 10 + 1j), (0.5j, -2 + 7j), (100.0, 1e-2j)])
def test_series_adds_impedances(za, zb):
    sv = StateVector.from_impedance(za).series(StateVector.from_impedance(zb))
    assert sv.impedance() == pytest.approx(za + zb, rel=1e-9)


@pytest.mark.parametrize("za, zb", [(3 - 4j, 10 + 1j), (0.5j, -2 + 7j), (100.0, 1e-2j)])
def test_parallel_adds_admittances(za, zb):
    sv = StateVector.from_impedance(za).parallel(StateVector.from_impedance(zb))
    assert sv.impedance() == pytest.approx(za * zb / (za + zb), rel=1e-9)


def test_parallel_with_closed_end_is_neutral():
    z = 40 + 12j
    sv = StateVector.from_impedance(z).parallel(StateVector.closed_end())
    assert sv.impedance() == pytest.approx(z)


def test_identity_leaves_state_unchanged():
    sv = StateVector(0.3 + 0.1j, -2j)
    assert sv.apply(TransferMatrix.identity()) == sv


def test_chained_application_equals_product():
    rng = np.random.default_rng(7)
    a = TransferMatrix(*[complex(v) for v in rng.normal(size=4) + 1j * rng.normal(size=4)])
    b = TransferMatrix(*[complex(v) for v in rng.normal(size=4) + 1j * rng.normal(size=4)])
    sv = StateVector(1 + 1j, 0.5 - 2j)

    sequential = sv.apply(b).apply(a)
    assert sequential.equals(sv.apply(a @ b), tolerance=1e-12)
