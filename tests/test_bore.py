import pytest

from aerophone_tuner.bore import (
    SimpleBoreSectionCalculator, bore_sections_from_points, calc_bore_transfer_matrix,
)
from aerophone_tuner.geometry import BorePoint, BoreSection
from aerophone_tuner.transfer_matrix import TransferMatrix
from aerophone_tuner.tube import calc_cylinder_matrix


def test_sections_from_points():
    points = [BorePoint(0.2, 0.012), BorePoint(0.0, 0.016), BorePoint(0.1, 0.014)]
    sections = bore_sections_from_points(points)
    assert [s.length for s in sections] == pytest.approx([0.1, 0.1])
    assert sections[0].left_radius == pytest.approx(0.008)
    assert sections[0].right_radius == pytest.approx(0.007)
    assert sections[1].right_position == pytest.approx(0.2)
    assert bore_sections_from_points(points[:1]) == []


def test_cylinder_chain_is_symmetric(params):
    sections = bore_sections_from_points([BorePoint(0.0, 0.02), BorePoint(0.3, 0.02)])
    tm = calc_bore_transfer_matrix(sections, params.calc_wave_number(440.0), params)
    assert abs(tm.determinant() - 1.0) < 1e-9
    assert tm.pp == pytest.approx(tm.uu, rel=1e-12)


def test_cone_chain_is_not_symmetric(params):
    sections = bore_sections_from_points([BorePoint(0.0, 0.016), BorePoint(0.2, 0.024)])
    tm = calc_bore_transfer_matrix(sections, params.calc_wave_number(440.0), params)
    assert abs(tm.determinant() - 1.0) < 1e-9
    assert tm.pp != pytest.approx(tm.uu, rel=1e-3)


def test_split_cylinder_matches_whole(params):
    k = params.calc_wave_number(440.0)
    split = bore_sections_from_points([BorePoint(0.0, 0.02), BorePoint(0.1, 0.02),
                                       BorePoint(0.3, 0.02)])
    tm = calc_bore_transfer_matrix(split, k, params)
    assert tm.equals(calc_cylinder_matrix(k, 0.3, 0.01, params), tolerance=1e-6)


def test_empty_chain_is_identity(params):
    assert calc_bore_transfer_matrix([], 10.0, params) == TransferMatrix.identity()


def test_simple_calculator_uses_cone_matrix(params):
    section = BoreSection(0.1, 0.008, 0.008, 0.1)
    k = params.calc_wave_number(500.0)
    tm = SimpleBoreSectionCalculator().calc_transfer_matrix(section, k, params)
    assert tm == calc_cylinder_matrix(k, 0.1, 0.008, params)
