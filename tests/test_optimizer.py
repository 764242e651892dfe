import numpy as np
import pytest

from aerophone_tuner.evaluator import CentDeviationEvaluator, Evaluator
from aerophone_tuner.instrument_calculator import InstrumentCalculator
from aerophone_tuner.objective import HoleSizeObjectiveFunction, LengthObjectiveFunction
from aerophone_tuner.optimizer import OptimizationResult, optimize_objective, starting_points
from aerophone_tuner.playing_range import PlayingRange
from aerophone_tuner.tuning import Fingering, Note, Tuning

TARGET = 250.0


@pytest.fixture
def length_objective(reed_cylinder, params):
    """Reed pipe (fundamental near 278 Hz) to be lengthened to play 250 Hz."""
    calc = InstrumentCalculator(reed_cylinder, params)
    tuning = Tuning("Single note", 0, [Fingering(note=Note('B3', TARGET))])
    objective = LengthObjectiveFunction(calc, tuning, CentDeviationEvaluator())
    objective.set_bounds([0.25], [0.45])
    return objective


class Failing(Evaluator):
    def calculate_error_vector(self, calculator, fingerings):
        raise RuntimeError("solver exploded")


@pytest.mark.parametrize("method", ['brent', 'powell', 'differential_evolution'])
def test_lengthen_reed_pipe(length_objective, method):
    result = optimize_objective(length_objective, method=method, max_evaluations=200)

    assert result.success
    assert result.final_norm <= result.initial_norm
    # Within 5 cents of the target
    assert result.final_norm < 25.0
    assert 0.3 < result.point[0] < 0.4
    assert result.residual_error_ratio < 0.01
    assert result.n_evaluations == length_objective.evaluations
    assert result.n_tunings == result.n_evaluations

    # The objective is left at the best point
    assert length_objective.geometry_point() == pytest.approx(result.point)
    played = PlayingRange(length_objective.calculator, Fingering()).find_x_zero(TARGET)
    assert played.frequency == pytest.approx(TARGET, rel=0.003)

    bore_end = max(bp.position for bp in result.optimized_instrument.bore_points)
    assert bore_end == pytest.approx(result.point[0])


def test_summary(length_objective):
    result = optimize_objective(length_objective, method='brent', max_evaluations=50)
    text = result.summary()
    assert "OPTIMIZATION RESULT" in text
    assert "SUCCESS" in text
    assert "Bore length" in text


def test_zero_dimensions_fail(reed_cylinder, params):
    calc = InstrumentCalculator(reed_cylinder, params)
    tuning = Tuning("Single note", 0, [Fingering(note=Note('B3', TARGET))])
    objective = HoleSizeObjectiveFunction(calc, tuning, CentDeviationEvaluator())
    assert objective.n_dimensions == 0

    result = optimize_objective(objective)
    assert not result.success
    assert "zero dimensions" in result.message
    assert "FAILED" in result.summary()


def test_evaluation_errors_give_failed_result(reed_cylinder, params):
    calc = InstrumentCalculator(reed_cylinder, params)
    tuning = Tuning("Single note", 0, [Fingering(note=Note('B3', TARGET))])
    objective = LengthObjectiveFunction(calc, tuning, Failing())

    result = optimize_objective(objective)
    assert not result.success
    assert "RuntimeError" in result.message
    assert "solver exploded" in result.message


def test_bad_method(length_objective, whistle, params):
    with pytest.raises(ValueError, match="Unknown method"):
        optimize_objective(length_objective, method='simplex')

    tuning = Tuning("Whistle", 6, [Fingering([False] * 6, note=Note('D4', 294.0))])
    sizes = HoleSizeObjectiveFunction(InstrumentCalculator(whistle, params), tuning,
                                      CentDeviationEvaluator())
    with pytest.raises(ValueError, match="one dimension"):
        optimize_objective(sizes, method='brent')


def test_result_residual_ratio():
    result = OptimizationResult(success=True, method='powell', point=np.array([0.3]),
                                initial_norm=400.0, final_norm=4.0, n_evaluations=10,
                                n_tunings=10, elapsed_time=0.1)
    assert result.residual_error_ratio == pytest.approx(0.01)
    assert "Residual: 0.0100" in result.summary()


# =============================================================================
# Starting points
# =============================================================================

LOWER = np.array([0.0, 1.0, 10.0])
UPPER = np.array([1.0, 2.0, 20.0])


@pytest.mark.parametrize("kind", ['random', 'grid', 'latin'])
def test_starting_points_in_bounds(kind):
    points = starting_points(LOWER, UPPER, 8, kind=kind, seed=1)
    assert points.shape == (8, 3)
    assert np.all(points >= LOWER)
    assert np.all(points <= UPPER)


def test_starting_points_are_reproducible():
    first = starting_points(LOWER, UPPER, 5, seed=7)
    second = starting_points(LOWER, UPPER, 5, seed=7)
    assert np.array_equal(first, second)


def test_grid_points():
    points = starting_points(LOWER[:2], UPPER[:2], 9, kind='grid')
    assert sorted(set(points[:, 0])) == pytest.approx([0.0, 0.5, 1.0])
    assert sorted(set(points[:, 1])) == pytest.approx([1.0, 1.5, 2.0])
    assert len({tuple(p) for p in points}) == 9


def test_latin_points_fill_every_stratum():
    n = 10
    points = starting_points(LOWER, UPPER, n, kind='latin', seed=3)
    for dim in range(3):
        strata = np.floor((points[:, dim] - LOWER[dim]) / (UPPER[dim] - LOWER[dim]) * n)
        assert sorted(strata) == list(range(n))


def test_static_dimensions_keep_start():
    start = np.array([0.5, 1.5, 15.0])
    points = starting_points(LOWER, UPPER, 6, indices_to_vary=[1], start=start, seed=2)
    assert np.all(points[:, 0] == 0.5)
    assert np.all(points[:, 2] == 15.0)
    assert len(set(points[:, 1])) == 6


def test_unknown_starting_point_kind():
    with pytest.raises(ValueError):
        starting_points(LOWER, UPPER, 3, kind='sobol')


def test_multi_start(length_objective):
    result = optimize_objective(length_objective, method='nelder-mead', starts=3,
                                max_evaluations=100)
    assert result.success
    assert len(result.start_norms) == 3
    assert result.final_norm <= min(result.start_norms) + 1e-12
    assert result.final_norm < 25.0
