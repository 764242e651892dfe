import numpy as np
import pytest

from aerophone_tuner.geometry import BorePoint, Hole, Instrument, Mouthpiece, create_tube
from aerophone_tuner.instrument_calculator import (
    BoreComponent, HoleComponent, InstrumentCalculator,
)
from aerophone_tuner.mouthpiece import DefaultFippleMouthpieceCalculator, MouthpieceCalculator
from aerophone_tuner.termination import UnflangedEndCalculator
from aerophone_tuner.tuning import Fingering

ALL_CLOSED = Fingering([False] * 6)
ALL_OPEN = Fingering([True] * 6)


def test_defaults_follow_geometry(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    assert calc.params is params
    assert isinstance(calc.mouthpiece_calculator, DefaultFippleMouthpieceCalculator)
    assert isinstance(calc.termination_calculator, UnflangedEndCalculator)


def test_geometry_converted_to_metres(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    instrument = calc.instrument
    assert instrument.length_type == 'M'
    assert instrument.bore_points[-1].position == pytest.approx(0.3)
    assert instrument.mouthpiece.bore_diameter == pytest.approx(0.016)
    assert instrument.termination.bore_diameter == pytest.approx(0.016)
    assert all(h.bore_diameter == pytest.approx(0.016) for h in instrument.holes)


def test_source_instrument_not_modified(whistle, params):
    InstrumentCalculator(whistle, params)
    assert whistle.length_type == 'MM'
    assert whistle.holes[0].bore_diameter is None
    assert whistle.mouthpiece.headspace == []


def test_component_chain(whistle, params):
    components = InstrumentCalculator(whistle, params).components
    assert len(components) == 13
    assert all(isinstance(c, BoreComponent) for c in components[::2])
    assert all(isinstance(c, HoleComponent) for c in components[1::2])
    assert components[0].section.length == pytest.approx(0.2)
    assert components[-1].section.right_position == pytest.approx(0.3)
    total = sum(c.section.length for c in components if isinstance(c, BoreComponent))
    assert total == pytest.approx(0.3)


def test_bore_above_mouthpiece_is_headspace(params):
    flute = Instrument(
        name="Side blown",
        length_type='MM',
        bore_points=[BorePoint(0.0, 19.0), BorePoint(600.0, 19.0)],
        mouthpiece=Mouthpiece(position=20.0),
        holes=[Hole(position=400.0, diameter=8.0, height=3.0)],
    )
    calc = InstrumentCalculator(flute, params)
    assert len(calc.instrument.mouthpiece.headspace) == 1
    assert calc.instrument.mouthpiece.headspace[0].length == pytest.approx(0.02)
    bore_length = sum(c.section.length for c in calc.components if isinstance(c, BoreComponent))
    assert bore_length == pytest.approx(0.58)


def test_hole_outside_bore_warns(params):
    tube = create_tube(300.0, 16.0)
    tube.holes.append(Hole(position=350.0, diameter=6.0, height=3.0, name='thumb'))
    with pytest.warns(UserWarning, match="thumb"):
        InstrumentCalculator(tube, params)


def test_impedance_depends_on_frequency_and_fingering(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    z = calc.calc_z(440.0, ALL_CLOSED)
    assert abs(z) > 0
    assert abs(z) != pytest.approx(abs(calc.calc_z(880.0, ALL_CLOSED)), rel=1e-3)
    assert abs(z) != pytest.approx(abs(calc.calc_z(440.0, ALL_OPEN)), rel=1e-3)


def test_missing_flags_are_open(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    assert calc.calc_z(500.0, Fingering([])) == calc.calc_z(500.0, ALL_OPEN)
    z = calc.calc_z(500.0, Fingering([False, False, False]))
    assert np.isfinite(z)


def test_open_end_flag(params, open_cylinder):
    calc = InstrumentCalculator(open_cylinder, params)
    unset = calc.calc_z(400.0, Fingering())
    assert calc.calc_z(400.0, Fingering(open_end=True)) == unset
    assert abs(calc.calc_z(400.0, Fingering(open_end=False))) != pytest.approx(abs(unset),
                                                                            rel=1e-3)


def test_reflection_coefficient(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    z = calc.calc_z(440.0, ALL_CLOSED)
    z0 = params.calc_z0(0.008)
    r = calc.calc_reflection_coefficient(440.0, ALL_CLOSED)
    assert r == pytest.approx((z - z0) / (z + z0))
    assert abs(r) < 1.5


def test_gain(whistle, whistle_with_windway, params):
    plain = InstrumentCalculator(whistle, params)
    assert plain.calc_gain(440.0, 1000 + 0j) == 1.0

    calc = InstrumentCalculator(whistle_with_windway, params)
    z = calc.calc_z(440.0, ALL_CLOSED)
    assert calc.calc_gain(440.0, z) > 0
    assert calc.calc_gain_for_fingering(440.0, ALL_CLOSED) == pytest.approx(
        calc.calc_gain(440.0, z))


def test_impedance_array(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    freqs = [300.0, 600.0, 900.0]
    z = calc.calc_z_array(freqs, ALL_CLOSED)
    assert z.dtype == complex
    np.testing.assert_allclose(z, [calc.calc_z(f, ALL_CLOSED) for f in freqs])


def test_reed_tube_uses_generic_mouthpiece(reed_cylinder, params):
    calc = InstrumentCalculator(reed_cylinder, params)
    assert type(calc.mouthpiece_calculator) is MouthpieceCalculator
    assert len(calc.components) == 1


def test_reactance_crosses_zero(whistle, params):
    calc = InstrumentCalculator(whistle, params)
    reactance = calc.calc_z_array(np.linspace(200.0, 2000.0, 200), ALL_CLOSED).imag
    crossings = np.count_nonzero(np.diff(np.sign(reactance)) != 0)
    assert crossings > 0
