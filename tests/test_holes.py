import dataclasses

import pytest

from aerophone_tuner.geometry import Hole, Key
from aerophone_tuner.holes import (
    DEFAULT_FINGER_ADJ, NO_FINGER_ADJ, DefaultHoleCalculator,
)
from aerophone_tuner.transfer_matrix import TransferMatrix


def make_hole(diameter=0.008, height=0.004, key=None):
    return Hole(position=0.2, diameter=diameter, height=height, key=key, bore_diameter=0.016)


KEYED = make_hole(key=Key(diameter=0.012, height=0.003))


def test_finger_adjustment_defaults():
    assert DefaultHoleCalculator().finger_adjustment == DEFAULT_FINGER_ADJ
    assert DefaultHoleCalculator(0.9605).finger_adjustment == NO_FINGER_ADJ
    assert DefaultHoleCalculator(0.9605, finger_adjustment=0.02).finger_adjustment == 0.02


def test_calculator_is_immutable():
    calc = DefaultHoleCalculator()
    with pytest.raises(dataclasses.FrozenInstanceError):
        calc.hole_size_mult = 2.0

    scaled = calc.with_hole_size_mult(0.9)
    assert scaled.hole_size_mult == 0.9
    assert calc.hole_size_mult == 1.0
    assert calc.with_plugged().is_plugged and not calc.is_plugged
    assert calc.with_finger_adjustment(0.0).finger_adjustment == 0.0


@pytest.mark.parametrize("hole", [make_hole(), make_hole(0.004, 0.002), KEYED])
@pytest.mark.parametrize("freq", [100.0, 1000.0, 5000.0])
def test_plugged_hole_has_no_admittance(params, hole, freq):
    calc = DefaultHoleCalculator(is_plugged=True)
    k = params.calc_wave_number(freq)
    assert calc.shunt_admittance(hole, False, k, params) == 0
    assert calc.series_impedance(hole, False, k, params) == 0
    assert calc.calc_transfer_matrix(hole, False, k, params) == TransferMatrix.identity()


def test_plugged_hole_still_opens(params):
    k = params.calc_wave_number(440.0)
    calc = DefaultHoleCalculator(is_plugged=True)
    assert calc.shunt_admittance(make_hole(), True, k, params) != 0


@pytest.mark.parametrize("is_open, hole", [(True, make_hole()), (False, make_hole()),
                                           (False, KEYED)])
def test_hole_matrix_is_symmetric(params, is_open, hole):
    k = params.calc_wave_number(800.0)
    tm = DefaultHoleCalculator().calc_transfer_matrix(hole, is_open, k, params)
    assert tm.pp == tm.uu
    assert tm.up == DefaultHoleCalculator().shunt_admittance(hole, is_open, k, params)


def test_open_admittance_continuous_at_low_frequency(params):
    # Ys diverges like 1/k (an inertance), so k*Ys must settle to a limit
    calc = DefaultHoleCalculator()
    hole = make_hole()
    scaled = [k * calc.shunt_admittance(hole, True, k, params) for k in (1e-2, 1e-3, 1e-4)]
    assert scaled[1] == pytest.approx(scaled[2], rel=1e-3)
    assert scaled[0] == pytest.approx(scaled[1], rel=1e-2)
    assert scaled[2].imag < 0


def test_open_hole_admittance_is_inertive(params):
    k = params.calc_wave_number(300.0)
    ys = DefaultHoleCalculator().shunt_admittance(make_hole(), True, k, params)
    assert ys.imag < 0
    assert ys.real > 0


def test_finger_and_key_closures_differ(params):
    k = params.calc_wave_number(800.0)
    calc = DefaultHoleCalculator()
    finger = calc.shunt_admittance(make_hole(), False, k, params)
    pad = calc.shunt_admittance(KEYED, False, k, params)
    assert finger.imag > 0 and pad.imag > 0
    assert finger != pad


def test_finger_adjustment_changes_closed_hole(params):
    k = params.calc_wave_number(800.0)
    hole = make_hole()
    with_finger = DefaultHoleCalculator().shunt_admittance(hole, False, k, params)
    without = DefaultHoleCalculator(finger_adjustment=0.0).shunt_admittance(hole, False, k, params)
    assert with_finger != without


def test_hole_size_multiplier_scales_admittance(params):
    k = params.calc_wave_number(440.0)
    hole = make_hole()
    small = DefaultHoleCalculator(0.8).shunt_admittance(hole, True, k, params)
    full = DefaultHoleCalculator().shunt_admittance(hole, True, k, params)
    assert abs(small) < abs(full)
