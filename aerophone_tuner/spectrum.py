"""
Impedance and reflectance spectra over a frequency grid.

Extrema are found by three-point comparison on the sampled grid, so their
resolution is the grid spacing.
"""

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .instrument_calculator import InstrumentCalculator
from .tuning import Fingering


def _local_minima(freqs: np.ndarray, values: np.ndarray) -> list[float]:
    minima = []
    for i in range(1, len(values) - 1):
        if values[i] < values[i-1] and values[i] < values[i+1]:
            minima.append(float(freqs[i]))
    return minima


def _local_maxima(freqs: np.ndarray, values: np.ndarray) -> list[float]:
    maxima = []
    for i in range(1, len(values) - 1):
        if values[i] > values[i-1] and values[i] > values[i+1]:
            maxima.append(float(freqs[i]))
    return maxima


def _closest(candidates: list[float], frequency: float) -> Optional[float]:
    if not candidates:
        return None
    return min(candidates, key=lambda f: abs(frequency - f))


@dataclass
class ImpedanceSpectrum:
    """Complex impedance per frequency, with minima and maxima of |Im Z|."""
    frequencies: np.ndarray
    values: np.ndarray
    minima: list[float] = field(default_factory=list)
    maxima: list[float] = field(default_factory=list)

    @classmethod
    def from_values(cls, frequencies, values) -> 'ImpedanceSpectrum':
        frequencies = np.asarray(frequencies, dtype=float)
        values = np.asarray(values, dtype=complex)
        reactance = np.abs(values.imag)
        return cls(frequencies, values,
                   _local_minima(frequencies, reactance),
                   _local_maxima(frequencies, reactance))

    def closest_minimum(self, frequency: float) -> Optional[float]:
        return _closest(self.minima, frequency)

    def closest_maximum(self, frequency: float) -> Optional[float]:
        return _closest(self.maxima, frequency)

    @property
    def magnitude(self) -> np.ndarray:
        return np.abs(self.values)


@dataclass
class ReflectanceSpectrum:
    """
    Complex reflectance per frequency.

    ``minima`` and ``maxima`` are extrema of the squared reflectance angle;
    ``magnitude_minima`` are minima of |R|.
    """
    frequencies: np.ndarray
    values: np.ndarray
    minima: list[float] = field(default_factory=list)
    maxima: list[float] = field(default_factory=list)
    magnitude_minima: list[float] = field(default_factory=list)
    fingering: Optional[Fingering] = None

    @classmethod
    def from_values(cls, frequencies, values,
                    fingering: Optional[Fingering] = None) -> 'ReflectanceSpectrum':
        frequencies = np.asarray(frequencies, dtype=float)
        values = np.asarray(values, dtype=complex)
        angle_sq = np.angle(values) ** 2
        magnitude = np.abs(values)
        return cls(frequencies, values,
                   _local_minima(frequencies, angle_sq),
                   _local_maxima(frequencies, angle_sq),
                   _local_minima(frequencies, magnitude),
                   fingering)

    def closest_minimum(self, frequency: float) -> Optional[float]:
        return _closest(self.minima, frequency)

    def closest_maximum(self, frequency: float) -> Optional[float]:
        return _closest(self.maxima, frequency)


def calculate_impedance_spectrum(
    calculator: InstrumentCalculator,
    fingering: Fingering,
    freq_start: float = 200.0,
    freq_end: float = 2000.0,
    n_freq: int = 1000
) -> ImpedanceSpectrum:
    """Sample the input impedance on an evenly spaced grid."""
    freqs = np.linspace(freq_start, freq_end, n_freq)
    return ImpedanceSpectrum.from_values(freqs, calculator.calc_z_array(freqs, fingering))


def calculate_reflectance_spectrum(
    calculator: InstrumentCalculator,
    fingering: Fingering,
    freq_start: float = 200.0,
    freq_end: float = 2000.0,
    n_freq: int = 1000
) -> ReflectanceSpectrum:
    """Sample the reflection coefficient on an evenly spaced grid."""
    freqs = np.linspace(freq_start, freq_end, n_freq)
    values = [calculator.calc_reflection_coefficient(f, fingering) for f in freqs]
    return ReflectanceSpectrum.from_values(freqs, values, fingering)
