import numpy as np
import pytest

from aerophone_tuner.evaluator import Evaluator
from aerophone_tuner.geometry import BorePoint, Mouthpiece, Reed, create_tube
from aerophone_tuner.instrument_calculator import InstrumentCalculator
from aerophone_tuner.objective import (
    BoreLengthAdjustment, HoleObjectiveFunction, HolePositionObjectiveFunction,
    HoleSizeObjectiveFunction, LengthObjectiveFunction, hole_name,
)
from aerophone_tuner.tuning import Fingering, Note, Tuning

WHISTLE_POINT = [0.3, 0.02, 0.01, 0.01, 0.02, 0.02, 0.02]


class UnitErrors(Evaluator):
    """One unit of error per fingering, without solving anything."""

    def calculate_error_vector(self, calculator, fingerings):
        return np.ones(len(fingerings))


@pytest.fixture
def tuning():
    return Tuning("Test Tuning", 6, [
        Fingering([False] * 6, note=Note('D4', 294.0)),
        Fingering([False] * 5 + [True], note=Note('E4', 330.0), optimization_weight=0.0),
        Fingering([False] * 4 + [True] * 2, note=Note('F#4', 370.0), optimization_weight=2.0),
    ])


@pytest.fixture
def calc(whistle, params):
    return InstrumentCalculator(whistle, params)


def test_hole_names():
    assert hole_name(1, 1) == "Hole"
    assert hole_name(1, 6) == "Bottom hole"
    assert hole_name(6, 6) == "Top hole"
    assert hole_name(3, 6) == "Hole 3"


def test_hole_position_point(calc, tuning):
    objective = HolePositionObjectiveFunction(calc, tuning, UnitErrors())
    assert objective.n_dimensions == 7
    assert objective.geometry_point() == pytest.approx(WHISTLE_POINT)

    names = [c.name for c in objective.constraints.constraints]
    assert names[0] == "Bore length"
    assert names[1] == "Bottom hole to bore end distance"
    assert names[2] == "Hole 2 to Bottom hole distance"


def test_set_hole_positions(whistle, calc, tuning):
    objective = HolePositionObjectiveFunction(calc, tuning, UnitErrors())
    point = [0.32, 0.03, 0.015, 0.015, 0.02, 0.02, 0.02]
    objective.set_geometry_point(point)

    assert objective.geometry_point() == pytest.approx(point)
    assert objective.calculator is not calc
    positions = [h.position for h in objective.calculator.instrument.sorted_holes()]
    assert positions == pytest.approx([0.2, 0.22, 0.24, 0.26, 0.275, 0.29])
    # The caller's instrument is left in millimetres and unchanged
    assert [h.position for h in whistle.holes][0] == 200.0


def test_hole_size_point_and_bounds(calc, tuning):
    objective = HoleSizeObjectiveFunction(calc, tuning, UnitErrors())
    assert objective.geometry_point() == pytest.approx([0.008] * 6)
    assert objective.lower_bounds == pytest.approx([0.004] * 6)
    assert objective.upper_bounds == pytest.approx([0.016] * 6)

    objective.set_geometry_point([0.006] * 6)
    assert [h.diameter for h in objective.calculator.instrument.holes] == pytest.approx([0.006] * 6)


def test_length_bounds(calc, tuning):
    objective = LengthObjectiveFunction(calc, tuning, UnitErrors())
    assert objective.geometry_point() == pytest.approx([0.3])
    assert objective.lower_bounds == pytest.approx([0.15])
    assert objective.upper_bounds == pytest.approx([0.6])


def test_combined_bounds_have_floors(calc, tuning):
    objective = HoleObjectiveFunction(calc, tuning, UnitErrors())
    assert objective.n_dimensions == 13
    assert objective.lower_bounds[0] == pytest.approx(0.15)
    assert objective.lower_bounds[1:7] == pytest.approx([0.01, 0.005, 0.005, 0.01, 0.01, 0.01])
    assert objective.upper_bounds[7:] == pytest.approx([0.016] * 6)


def test_set_bounds(calc, tuning):
    objective = LengthObjectiveFunction(calc, tuning, UnitErrors())

    objective.set_bounds([0.4], [0.2])
    assert objective.lower_bounds == pytest.approx([0.2])
    assert objective.upper_bounds == pytest.approx([0.4])
    assert objective.constraints.constraints[0].upper_bound == pytest.approx(0.4)

    objective.set_bounds([0.25], [0.25])
    assert objective.lower_bounds[0] == pytest.approx(0.25 - 1e-7, abs=1e-12)

    with pytest.raises(ValueError, match="Dimension mismatch"):
        objective.set_bounds([0.1, 0.2], [0.3, 0.4])
    with pytest.raises(ValueError):
        objective.set_geometry_point([0.3, 0.3])


def test_initial_point_is_clipped(calc, tuning):
    objective = LengthObjectiveFunction(calc, tuning, UnitErrors())
    objective.set_bounds([0.1], [0.25])
    assert objective.initial_point() == pytest.approx([0.25])


def test_weighted_norm(calc, tuning):
    objective = LengthObjectiveFunction(calc, tuning, UnitErrors())
    # Weights 1, 0 and 2
    assert objective.calc_norm([1.0, 5.0, 2.0]) == pytest.approx(9.0)
    assert objective.n_notes == 2


def test_value_counts_evaluations(calc, tuning):
    objective = LengthObjectiveFunction(calc, tuning, UnitErrors())
    assert objective([0.3]) == pytest.approx(3.0)
    assert objective.value([0.31]) == pytest.approx(3.0)
    assert objective.evaluations == 2
    assert objective.tunings == 6

    objective.reset_statistics()
    assert objective.evaluations == 0


@pytest.fixture
def three_point_reed_pipe(params):
    pipe = create_tube(300.0, 20.0, 10.0,
                       mouthpiece=Mouthpiece(position=0.0, reed=Reed('single')))
    pipe.bore_points.insert(1, BorePoint(150.0, 15.0))
    return InstrumentCalculator(pipe, params)


def test_length_adjustments(three_point_reed_pipe):
    tuning = Tuning("Bell", 0, [Fingering(note=Note('A3', 220.0))])

    def bore_after(adjustment):
        objective = LengthObjectiveFunction(three_point_reed_pipe, tuning, UnitErrors(),
                                            length_adjustment=adjustment)
        objective.set_geometry_point([0.36])
        return [bp.position for bp in objective.instrument.sorted_bore_points()]

    assert bore_after(BoreLengthAdjustment.MOVE_BOTTOM) == pytest.approx([0.0, 0.15, 0.36])
    assert bore_after(BoreLengthAdjustment.PRESERVE_TAPER) == pytest.approx([0.0, 0.18, 0.36])
    assert bore_after(BoreLengthAdjustment.PRESERVE_LENGTH) == pytest.approx([0.0, 0.15, 0.3])
