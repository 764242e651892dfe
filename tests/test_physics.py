import math

import pytest

from aerophone_tuner.physics import (
    PhysicalParameters, SimplePhysicalParameters, pressure_at, standard_pressure_at,
)


def test_speed_of_sound_at_room_temperature(params):
    assert params.speed_of_sound == pytest.approx(343.5, abs=1.0)
    assert params.rho == pytest.approx(1.20, abs=0.01)
    assert params.gamma == pytest.approx(1.40, abs=0.005)


def test_fahrenheit_default():
    p = PhysicalParameters()
    assert p.temperature == pytest.approx((72.0 - 32.0) * 5.0 / 9.0)
    assert p.temp_unit == 'C'


def test_warmer_air_is_faster():
    assert (PhysicalParameters(30.0, 'C').speed_of_sound
            > PhysicalParameters(10.0, 'C').speed_of_sound)


def test_unknown_temperature_unit():
    with pytest.raises(ValueError):
        PhysicalParameters(20.0, 'K')


def test_wave_number_round_trip(params):
    k = params.calc_wave_number(440.0)
    assert k == pytest.approx(2 * math.pi * 440.0 / params.speed_of_sound)
    assert params.calc_frequency(k) == pytest.approx(440.0)


def test_characteristic_impedance(params):
    radius = 0.008
    expected = params.rho * params.speed_of_sound / (math.pi * radius ** 2)
    assert params.calc_z0(radius) == pytest.approx(expected)


def test_loss_term_falls_with_radius(params):
    k = params.calc_wave_number(500.0)
    assert params.get_epsilon(k, 0.005) == pytest.approx(2 * params.get_epsilon(k, 0.01))


def test_pressure_with_elevation():
    assert standard_pressure_at(0.0) == pytest.approx(101.325)
    assert standard_pressure_at(1500.0) < 101.325
    assert pressure_at(100.0, 0.0) == pytest.approx(100.0)


def test_simple_parameters_track_full_model(params):
    simple = SimplePhysicalParameters.from_params(params)
    assert simple.temperature == pytest.approx(20.0)
    assert simple.speed_of_sound == pytest.approx(params.speed_of_sound, rel=0.01)
    assert simple.rho == pytest.approx(params.rho, rel=0.02)
