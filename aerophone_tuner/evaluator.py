"""
Error measures between a target tuning and an instrument's predictions.

An evaluator turns a calculator and a list of target fingerings into one
error per fingering. Geometry objectives minimise the weighted sum of
squares of that vector.
"""

import cmath
import math
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from .instrument_calculator import InstrumentCalculator
from .playing_range import SolverConfig
from .tuner import InstrumentTuner, LinearVInstrumentTuner, SimpleInstrumentTuner, calc_cents
from .tuning import Fingering, Tuning

TunerFactory = Callable[..., InstrumentTuner]


def target_tuning(fingerings: list[Fingering]) -> Tuning:
    number_of_holes = fingerings[0].number_of_holes if fingerings else 0
    return Tuning("Target", number_of_holes, list(fingerings))


class Evaluator(ABC):
    """Base class: ``calculate_error_vector`` gives one error per fingering."""

    @abstractmethod
    def calculate_error_vector(self, calculator: InstrumentCalculator,
                               fingerings: list[Fingering]) -> np.ndarray:
        ...


class TunerEvaluator(Evaluator):
    """
    Evaluator that compares predicted notes from a tuner.

    Args:
        tuner_factory: Called as ``tuner_factory(calculator, tuning, config=config)``
        config: Solver settings passed to the tuner
    """

    default_tuner: TunerFactory = SimpleInstrumentTuner

    def __init__(self, tuner_factory: Optional[TunerFactory] = None,
                 config: Optional[SolverConfig] = None):
        self.tuner_factory = tuner_factory or self.default_tuner
        self.config = config

    def make_tuner(self, calculator: InstrumentCalculator,
                   fingerings: list[Fingering]) -> InstrumentTuner:
        return self.tuner_factory(calculator, target_tuning(fingerings), config=self.config)


class CentDeviationEvaluator(TunerEvaluator):
    """Predicted minus target nominal frequency, in cents."""

    DEFAULT_ERROR = 1200.0

    def calculate_error_vector(self, calculator, fingerings):
        tuner = self.make_tuner(calculator, fingerings)
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if fingering.note is None or fingering.note.frequency is None:
                # No target: left out of the fit
                continue
            predicted = tuner.predicted_frequency(fingering)
            if predicted is None:
                errors[i] = self.DEFAULT_ERROR
            else:
                errors[i] = calc_cents(fingering.note.frequency, predicted)
        return errors


class FrequencyDeviationEvaluator(TunerEvaluator):
    """Predicted minus target nominal frequency, in Hz."""

    def calculate_error_vector(self, calculator, fingerings):
        tuner = self.make_tuner(calculator, fingerings)
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if fingering.note is None or fingering.note.frequency is None:
                continue
            target = fingering.note.frequency
            predicted = tuner.predicted_frequency(fingering)
            errors[i] = target if predicted is None else predicted - target
        return errors


class FminEvaluator(TunerEvaluator):
    """Bottom of the predicted playing range against ``frequency_min``, in cents."""

    DEFAULT_ERROR = 400.0
    default_tuner = LinearVInstrumentTuner

    def calculate_error_vector(self, calculator, fingerings):
        tuner = self.make_tuner(calculator, fingerings)
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if fingering.note is None or fingering.note.frequency_min is None:
                continue
            predicted = tuner.predicted_note(fingering)
            if predicted.frequency_min is None:
                errors[i] = self.DEFAULT_ERROR
            else:
                errors[i] = calc_cents(fingering.note.frequency_min, predicted.frequency_min)
        return errors


class FmaxEvaluator(TunerEvaluator):
    """Top of the predicted playing range against ``frequency_max``, in cents."""

    DEFAULT_ERROR = 400.0
    default_tuner = LinearVInstrumentTuner

    def calculate_error_vector(self, calculator, fingerings):
        tuner = self.make_tuner(calculator, fingerings)
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if fingering.note is None or fingering.note.frequency_max is None:
                continue
            predicted = tuner.predicted_note(fingering)
            if predicted.frequency_max is None:
                errors[i] = self.DEFAULT_ERROR
            else:
                errors[i] = calc_cents(fingering.note.frequency_max, predicted.frequency_max)
        return errors


class FminmaxEvaluator(TunerEvaluator):
    """
    Weighted combination of fmax, fmin and nominal deviations (cents).

    With both fmax and fmin targets the error is
    sqrt((4 * fmax_dev)^2 + fmin_dev^2). Otherwise it falls back to
    whichever of fmax, fmin or the nominal frequency can be compared.
    """

    DEFAULT_ERROR = 1200.0
    FMAX_WEIGHT = 4.0
    FMIN_WEIGHT = 1.0
    FPLAYING_WEIGHT = 1.0
    default_tuner = LinearVInstrumentTuner

    def calculate_error_vector(self, calculator, fingerings):
        tuner = self.make_tuner(calculator, fingerings)
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            target = fingering.note
            if target is None:
                continue
            predicted = tuner.predicted_note(fingering)

            has_fmax = target.frequency_max is not None and predicted.frequency_max is not None
            has_fmin = target.frequency_min is not None and predicted.frequency_min is not None
            if has_fmax:
                fmax_dev = self.FMAX_WEIGHT * calc_cents(target.frequency_max,
                                                         predicted.frequency_max)
                if has_fmin:
                    fmin_dev = self.FMIN_WEIGHT * calc_cents(target.frequency_min,
                                                             predicted.frequency_min)
                    errors[i] = math.hypot(fmax_dev, fmin_dev)
                else:
                    errors[i] = fmax_dev
            elif has_fmin:
                errors[i] = self.FMIN_WEIGHT * calc_cents(target.frequency_min,
                                                          predicted.frequency_min)
            elif target.frequency is not None and predicted.frequency is not None:
                errors[i] = self.FPLAYING_WEIGHT * calc_cents(target.frequency,
                                                              predicted.frequency)
            elif target.target_frequency is not None:
                errors[i] = self.DEFAULT_ERROR
        return errors


class ReactanceEvaluator(Evaluator):
    """Im(Z) at each target frequency; zero reactance means in tune."""

    def calculate_error_vector(self, calculator, fingerings):
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if fingering.note is None or fingering.note.frequency is None:
                continue
            errors[i] = calculator.calc_z(fingering.note.frequency, fingering).imag
        return errors


class BellNoteEvaluator(Evaluator):
    """Im(Z) just above the target of each all-holes-closed fingering."""

    FMAX_RATIO = 1.001

    def calculate_error_vector(self, calculator, fingerings):
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if any(fingering.open_holes):
                continue
            if fingering.note is None or fingering.note.frequency is None:
                continue
            fmax = self.FMAX_RATIO * fingering.note.frequency
            errors[i] = calculator.calc_z(fmax, fingering).imag
        return errors


class ReflectionEvaluator(Evaluator):
    """Phase of -R at each target frequency, so that R = -1 scores zero."""

    def calculate_error_vector(self, calculator, fingerings):
        errors = np.zeros(len(fingerings))
        for i, fingering in enumerate(fingerings):
            if fingering.note is None or fingering.note.frequency is None:
                continue
            reflectance = calculator.calc_reflection_coefficient(fingering.note.frequency,
                                                                 fingering)
            errors[i] = cmath.phase(-reflectance)
        return errors


EVALUATORS = {
    'cents': CentDeviationEvaluator,
    'frequency': FrequencyDeviationEvaluator,
    'reactance': ReactanceEvaluator,
    'fmin': FminEvaluator,
    'fmax': FmaxEvaluator,
    'fminmax': FminmaxEvaluator,
    'bellnote': BellNoteEvaluator,
    'reflection': ReflectionEvaluator,
}


def create_evaluator(name: str, tuner_factory: Optional[TunerFactory] = None,
                     config: Optional[SolverConfig] = None) -> Evaluator:
    """
    Evaluator by name.

    ``tuner_factory`` and ``config`` apply to the tuner-based kinds and are
    ignored by the impedance-based ones.
    """
    key = name.lower()
    if key not in EVALUATORS:
        available = ", ".join(EVALUATORS)
        raise ValueError(f"Unknown evaluator '{name}'. Available: {available}")
    cls = EVALUATORS[key]
    if issubclass(cls, TunerEvaluator):
        return cls(tuner_factory, config)
    return cls()
