"""
Predicted tuning of an instrument.

A tuner predicts the sounding frequency of every fingering in a tuning:

- SimpleInstrumentTuner: the reactance zero nearest the target, i.e. the
  top of the playing range.
- LinearVInstrumentTuner: models the player's breath. Jet velocity is
  assumed to rise linearly with frequency between the lowest and highest
  notes; each note sounds where Im(Z)/Re(Z) matches that velocity.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .geometry import Instrument, airstream_length
from .instrument_calculator import InstrumentCalculator
from .physics import PhysicalParameters
from .playing_range import PlayingRange, SolverConfig, impedance_ratio
from .tuning import Fingering, Note, Tuning, cents

logger = logging.getLogger(__name__)


def calc_cents(target: float, actual: float) -> float:
    """Deviation of ``actual`` from ``target`` in cents."""
    return cents(target, actual)


def frequency_target(note: Optional[Note]) -> Optional[float]:
    """Exact frequency, else the top of the range, else the bottom."""
    if note is None:
        return None
    for value in (note.frequency, note.frequency_max, note.frequency_min):
        if value is not None:
            return value
    return None


class InstrumentTuner(ABC):
    """Base class: predicted notes for every fingering of a tuning."""

    def __init__(self, calculator: InstrumentCalculator, tuning: Tuning,
                 config: Optional[SolverConfig] = None):
        self.calculator = calculator
        self.tuning = tuning
        self.config = config

    def playing_range(self, fingering: Fingering) -> PlayingRange:
        return PlayingRange(self.calculator, fingering, self.config)

    @abstractmethod
    def predicted_frequency(self, fingering: Fingering) -> Optional[float]:
        ...

    def predicted_note(self, fingering: Fingering) -> Note:
        name = fingering.note.name if fingering.note is not None else None
        return Note(name=name, frequency=self.predicted_frequency(fingering))

    def predicted_tuning(self) -> Tuning:
        predicted = Tuning(self.tuning.name, self.tuning.number_of_holes,
                           comment=self.tuning.comment)
        for fingering in self.tuning.fingerings:
            predicted.fingerings.append(Fingering(
                open_holes=list(fingering.open_holes),
                open_end=fingering.open_end,
                note=self.predicted_note(fingering),
            ))
        return predicted


class SimpleInstrumentTuner(InstrumentTuner):
    """Predicts the reactance zero nearest each target."""

    def predicted_frequency(self, fingering: Fingering) -> Optional[float]:
        target = frequency_target(fingering.note)
        if not target:
            return None
        result = self.playing_range(fingering).find_x_zero(target)
        if not result.success:
            logger.debug("%s: %s", fingering, result.message)
        return result.frequency


# Blowing-level tables: how far below the velocity at fmax the player blows
# the lowest and highest notes, as a fraction of the fmax-fmin velocity span
BOTTOM_FRACTIONS = [0.35, 0.35, 0.30, 0.30, 0.25, 0.25, 0.20, 0.15, 0.10, 0.10, 0.05]
TOP_FRACTIONS = [0.80, 0.85, 0.90, 0.95, 0.90, 0.95, 0.95, 0.95, 0.95, 0.99, 0.99]
BOTTOM_LO, BOTTOM_HI = 0.20, 0.05
TOP_LO, TOP_HI = 0.99, 0.30
DEFAULT_BLOWING_LEVEL = 5


def bottom_fraction(blowing_level: int) -> float:
    if blowing_level < 0:
        return BOTTOM_LO
    if blowing_level > 10:
        return BOTTOM_HI
    return BOTTOM_FRACTIONS[blowing_level]


def top_fraction(blowing_level: int) -> float:
    if blowing_level < 0:
        return TOP_LO
    if blowing_level > 10:
        return TOP_HI
    return TOP_FRACTIONS[blowing_level]


def jet_velocity(freq: float, window_length: float, z_ratio: float) -> float:
    """Jet velocity for which the mouthpiece oscillates at ``freq``."""
    # Inside a playing range Im(Z) < 0, so the Strouhal number is above 0.26
    strouhal = 0.26 - 0.037 * z_ratio
    strouhal = min(max(strouhal, 0.13), 0.75)
    return freq * window_length / strouhal


def z_ratio_for_velocity(freq: float, window_length: float, velocity: float) -> float:
    """Im(Z)/Re(Z) at which a jet of ``velocity`` oscillates at ``freq``."""
    return (0.26 - freq * window_length / velocity) / 0.037


class LinearVInstrumentTuner(InstrumentTuner):
    """
    Predicts frequencies from a jet velocity that is linear in frequency.

    Args:
        calculator: Instrument calculator
        tuning: Target tuning; its lowest and highest weighted notes fix the
            velocity line
        blowing_level: 0 (soft) to 10 (hard)
        config: Solver settings
    """

    def __init__(self, calculator: InstrumentCalculator, tuning: Tuning,
                 blowing_level: int = DEFAULT_BLOWING_LEVEL,
                 config: Optional[SolverConfig] = None):
        super().__init__(calculator, tuning, config)
        self.blowing_level = blowing_level
        self.bottom_fraction = bottom_fraction(blowing_level)
        self.top_fraction = top_fraction(blowing_level)
        self.window_length = airstream_length(calculator.instrument.mouthpiece)
        self.f_low = 100.0
        self.f_high = 100.0
        self.slope = 0.0
        self.intercept = 0.0
        if tuning.fingerings:
            self._fit_velocity_line(tuning.fingerings)

    def _range_velocities(self, fingering: Fingering,
                          target: float) -> Optional[tuple[float, float, float, float]]:
        """(fmin, fmax, v at fmin, v at fmax) for the playing range near ``target``."""
        fmin_result, fmax_result = self.playing_range(fingering).find_range(target)
        if not (fmin_result.success and fmax_result.success):
            return None
        fmax = fmax_result.frequency
        fmin = fmin_result.frequency
        z_max = self.calculator.calc_z(fmax, fingering)
        z_min = self.calculator.calc_z(fmin, fingering)
        v_max = jet_velocity(fmax, self.window_length, impedance_ratio(z_max))
        v_min = jet_velocity(fmin, self.window_length, impedance_ratio(z_min))
        return fmin, fmax, v_min, v_max

    def _fit_velocity_line(self, fingerings: list[Fingering]):
        note_low = note_high = None
        self.f_low = 100000.0
        self.f_high = 0.0
        for fingering in fingerings:
            if fingering.note is None or fingering.weight <= 0:
                continue
            freq = fingering.note.frequency
            if freq is None:
                freq = fingering.note.frequency_max
            if freq is None:
                continue
            if freq < self.f_low:
                self.f_low = freq
                note_low = fingering
            if freq > self.f_high:
                self.f_high = freq
                note_high = fingering

        if note_low is None or note_high is None:
            return

        low = self._range_velocities(note_low, self.f_low)
        if low is not None:
            fmin, fmax, v_min, v_max = low
            v_low = v_max - self.bottom_fraction * (v_max - v_min)
            self.f_low = fmax
        else:
            v_low = jet_velocity(self.f_low, self.window_length, 0.0)

        high = self._range_velocities(note_high, self.f_high)
        if high is not None:
            fmin, fmax, v_min, v_max = high
            v_high = v_max - self.top_fraction * (v_max - v_min)
            self.f_high = fmin
        else:
            v_high = jet_velocity(self.f_high, self.window_length, 0.0)

        if self.f_high != self.f_low:
            self.slope = (v_high - v_low) / (self.f_high - self.f_low)
            self.intercept = v_low - self.slope * self.f_low
        else:
            self.slope = 0.0
            self.intercept = v_low
        logger.debug("Velocity line: v = %.4g * f + %.4g", self.slope, self.intercept)

    def nominal_velocity(self, freq: float) -> float:
        return self.slope * freq + self.intercept

    def _target_ratio(self, target: float) -> float:
        return z_ratio_for_velocity(target, self.window_length, self.nominal_velocity(target))

    def predicted_frequency(self, fingering: Fingering) -> Optional[float]:
        target = frequency_target(fingering.note)
        if not target:
            return None
        result = self.playing_range(fingering).find_z_ratio(target, self._target_ratio(target))
        return result.frequency

    def predicted_note(self, fingering: Fingering) -> Note:
        """Predicted nominal frequency plus the playing range (fmin, fmax)."""
        note = Note(name=fingering.note.name if fingering.note is not None else None)
        target = frequency_target(fingering.note)
        if not target:
            return note

        playing_range = self.playing_range(fingering)
        fmin_result, fmax_result = playing_range.find_range(target)
        note.frequency_max = fmax_result.frequency
        note.frequency_min = fmin_result.frequency
        note.frequency = playing_range.find_z_ratio(target, self._target_ratio(target)).frequency
        return note


def create_instrument_tuner(instrument: Instrument, tuning: Tuning,
                            params: Optional[PhysicalParameters] = None) -> SimpleInstrumentTuner:
    return SimpleInstrumentTuner(InstrumentCalculator(instrument, params), tuning)


def create_linear_v_tuner(instrument: Instrument, tuning: Tuning,
                          params: Optional[PhysicalParameters] = None,
                          blowing_level: int = DEFAULT_BLOWING_LEVEL) -> LinearVInstrumentTuner:
    return LinearVInstrumentTuner(InstrumentCalculator(instrument, params), tuning, blowing_level)


# =============================================================================
# Comparison
# =============================================================================

@dataclass
class TuningResult:
    """Target against predicted frequency for one fingering."""
    name: str
    target_frequency: Optional[float]
    predicted_frequency: Optional[float]
    deviation_cents: Optional[float]
    fingering: Fingering


@dataclass
class TuningStats:
    """Summary of deviations (cents) over the fingerings that were predicted."""
    valid_count: int
    mean_cents: float
    std_dev_cents: float
    max_abs_cents: float
    rms_cents: float

    def summary(self) -> str:
        return (f"{self.valid_count} notes: mean {self.mean_cents:+.1f}, "
                f"std {self.std_dev_cents:.1f}, max |dev| {self.max_abs_cents:.1f}, "
                f"rms {self.rms_cents:.1f} cents")


def compare_tunings(target: Tuning, predicted: Tuning) -> list[TuningResult]:
    """Pair target and predicted fingerings by index."""
    results = []
    for i, target_fingering in enumerate(target.fingerings):
        note = target_fingering.note
        target_freq = note.target_frequency if note is not None else None

        predicted_freq = None
        if i < len(predicted.fingerings) and predicted.fingerings[i].note is not None:
            predicted_freq = predicted.fingerings[i].note.frequency

        deviation = None
        if target_freq is not None and predicted_freq is not None:
            deviation = calc_cents(target_freq, predicted_freq)

        name = note.name if note is not None and note.name else f"Note {i + 1}"
        results.append(TuningResult(name, target_freq, predicted_freq, deviation,
                                    target_fingering))
    return results


def tuning_stats(results: list[TuningResult]) -> TuningStats:
    deviations = np.array([r.deviation_cents for r in results
                           if r.deviation_cents is not None], dtype=float)
    if deviations.size == 0:
        return TuningStats(0, 0.0, 0.0, 0.0, 0.0)
    return TuningStats(
        valid_count=int(deviations.size),
        mean_cents=float(np.mean(deviations)),
        std_dev_cents=float(np.std(deviations)),
        max_abs_cents=float(np.max(np.abs(deviations))),
        rms_cents=float(np.sqrt(np.mean(deviations ** 2))),
    )
