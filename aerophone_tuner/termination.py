"""
Termination calculators: boundary state at the far end of the bore.
"""

from typing import Protocol

from .geometry import DEFAULT_BORE_DIAMETER, Termination
from .state_vector import StateVector
from .tube import calc_z_flanged, calc_z_load, calc_z_thick_flanged

# Flanges this much wider than the bore count as flanged
FLANGE_MARGIN = 1.1


class TerminationCalculator(Protocol):
    def calc_state_vector(self, termination: Termination, is_open: bool,
                          wave_number: float, params) -> StateVector:
        ...


class UnflangedEndCalculator:
    def calc_state_vector(self, termination: Termination, is_open: bool,
                          wave_number: float, params) -> StateVector:
        if not is_open:
            return StateVector.closed_end()
        freq = params.calc_frequency(wave_number)
        return StateVector.from_impedance(calc_z_load(freq, termination.radius, params))


class FlangedEndCalculator:
    def calc_state_vector(self, termination: Termination, is_open: bool,
                          wave_number: float, params) -> StateVector:
        if not is_open:
            return StateVector.closed_end()
        freq = params.calc_frequency(wave_number)
        return StateVector.from_impedance(calc_z_flanged(freq, termination.radius, params))


class ThickFlangedEndCalculator:
    """Open end in a flange of the termination's actual width."""

    def calc_state_vector(self, termination: Termination, is_open: bool,
                          wave_number: float, params) -> StateVector:
        if not is_open:
            return StateVector.closed_end()
        freq = params.calc_frequency(wave_number)
        z = calc_z_thick_flanged(freq, termination.radius,
                                 0.5 * termination.flange_diameter, params)
        return StateVector.from_impedance(z)


def get_termination_calculator(termination: Termination):
    """Flanged when the flange is more than 10% wider than the bore."""
    bore_diameter = termination.bore_diameter or DEFAULT_BORE_DIAMETER
    if termination.flange_diameter > bore_diameter * FLANGE_MARGIN:
        return FlangedEndCalculator()
    return UnflangedEndCalculator()
