"""
Input impedance, reflectance and loop gain of a complete instrument.

The calculator converts the geometry to metres once, builds the component
chain from the mouthpiece to the termination, and for every frequency
cascades transfer matrices from the termination back to the mouthpiece.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .bore import BoreSectionCalculator, SimpleBoreSectionCalculator
from .geometry import (
    DEFAULT_BORE_DIAMETER, BoreSection, Hole, Instrument, build_headspace,
    check_hole_positions, gain_factor, instrument_to_metres, interpolated_bore_diameter,
)
from .holes import DefaultHoleCalculator, HoleCalculator
from .mouthpiece import MouthpieceCalculator, get_mouthpiece_calculator
from .physics import PhysicalParameters
from .state_vector import StateVector
from .termination import TerminationCalculator, get_termination_calculator
from .tuning import Fingering

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoreComponent:
    section: BoreSection


@dataclass(frozen=True)
class HoleComponent:
    hole: Hole


Component = Union[BoreComponent, HoleComponent]


class InstrumentCalculator:
    """
    Acoustic model of one instrument at one set of air conditions.

    Args:
        instrument: Instrument geometry in any length unit (not modified)
        params: Air properties; PhysicalParameters() if omitted
        mouthpiece_calculator: Defaults to the one matching the mouthpiece geometry
        termination_calculator: Defaults to flanged/unflanged by flange width
        hole_calculator: Defaults to DefaultHoleCalculator()
        bore_section_calculator: Defaults to SimpleBoreSectionCalculator()
    """

    def __init__(
        self,
        instrument: Instrument,
        params: Optional[PhysicalParameters] = None,
        mouthpiece_calculator: Optional[MouthpieceCalculator] = None,
        termination_calculator: Optional[TerminationCalculator] = None,
        hole_calculator: Optional[HoleCalculator] = None,
        bore_section_calculator: Optional[BoreSectionCalculator] = None,
    ):
        self._instrument = instrument_to_metres(instrument)
        self._params = params if params is not None else PhysicalParameters()

        self._instrument.mouthpiece.headspace = build_headspace(self._instrument)
        self._components = self._build_components()
        check_hole_positions(self._instrument)

        self.mouthpiece_calculator = (mouthpiece_calculator
                                      or get_mouthpiece_calculator(self._instrument.mouthpiece))
        self.termination_calculator = (termination_calculator
                                       or get_termination_calculator(self._instrument.termination))
        self.hole_calculator = hole_calculator or DefaultHoleCalculator()
        self.bore_section_calculator = bore_section_calculator or SimpleBoreSectionCalculator()

        logger.debug("Built %s: %d components, %d headspace sections, %s, %s",
                     self._instrument.name, len(self._components),
                     len(self._instrument.mouthpiece.headspace),
                     type(self.mouthpiece_calculator).__name__,
                     type(self.termination_calculator).__name__)

    @property
    def instrument(self) -> Instrument:
        """Working copy of the instrument, in metres."""
        return self._instrument

    @property
    def params(self) -> PhysicalParameters:
        return self._params

    @property
    def components(self) -> tuple[Component, ...]:
        return self._components

    def with_instrument(self, instrument: Instrument) -> 'InstrumentCalculator':
        """New calculator for ``instrument`` sharing these params and component calculators."""
        return InstrumentCalculator(
            instrument, self._params,
            mouthpiece_calculator=self.mouthpiece_calculator,
            termination_calculator=self.termination_calculator,
            hole_calculator=self.hole_calculator,
            bore_section_calculator=self.bore_section_calculator,
        )

    def _build_components(self) -> tuple[Component, ...]:
        instrument = self._instrument
        bore_points = instrument.sorted_bore_points()
        holes = instrument.sorted_holes()

        # Bore diameters at the termination, mouthpiece and each hole
        if bore_points:
            last = bore_points[-1]
            instrument.termination.bore_diameter = last.diameter
            instrument.termination.bore_position = last.position
            instrument.mouthpiece.bore_diameter = interpolated_bore_diameter(
                bore_points, instrument.mouthpiece.position)
            for hole in holes:
                hole.bore_diameter = interpolated_bore_diameter(bore_points, hole.position)

        # Merge bore points and holes by position; sort is stable so a bore
        # point precedes a hole at the same position
        items = [(bp.position, bp) for bp in bore_points] + [(h.position, h) for h in holes]
        items.sort(key=lambda item: item[0])

        mouthpiece_position = instrument.mouthpiece.position
        current_position = mouthpiece_position
        current_diameter = instrument.mouthpiece.bore_diameter
        if current_diameter is None:
            current_diameter = bore_points[0].diameter if bore_points else DEFAULT_BORE_DIAMETER

        components = []
        for position, item in items:
            # Bore above the mouthpiece is headspace
            if position <= mouthpiece_position:
                continue

            if isinstance(item, Hole):
                next_diameter = item.bore_diameter or current_diameter
            else:
                next_diameter = item.diameter

            if position > current_position:
                components.append(BoreComponent(BoreSection(
                    length=position - current_position,
                    left_radius=current_diameter / 2,
                    right_radius=next_diameter / 2,
                    right_position=position,
                )))
            if isinstance(item, Hole):
                components.append(HoleComponent(item))

            current_position = position
            current_diameter = next_diameter

        return tuple(components)

    def calc_input_state_vector(self, freq: float, fingering: Fingering) -> StateVector:
        """State vector seen by the excitation at ``freq`` for ``fingering``."""
        wave_number = self._params.calc_wave_number(freq)

        is_open_end = fingering.open_end is not False
        sv = self.termination_calculator.calc_state_vector(
            self._instrument.termination, is_open_end, wave_number, self._params)

        # Termination to mouthpiece; fingering flags are ordered top to bottom
        hole_index = len(fingering.open_holes) - 1
        for component in reversed(self._components):
            if isinstance(component, BoreComponent):
                tm = self.bore_section_calculator.calc_transfer_matrix(
                    component.section, wave_number, self._params)
            else:
                is_open = fingering.open_holes[hole_index] if hole_index >= 0 else True
                tm = self.hole_calculator.calc_transfer_matrix(
                    component.hole, is_open, wave_number, self._params)
                hole_index -= 1
            sv = sv.apply(tm)

        return self.mouthpiece_calculator.calc_state_vector(
            sv, self._instrument.mouthpiece, wave_number, self._params)

    def calc_z(self, freq: float, fingering: Fingering) -> complex:
        """Input impedance at the mouthpiece."""
        return self.calc_input_state_vector(freq, fingering).impedance()

    def calc_reflection_coefficient(self, freq: float, fingering: Fingering) -> complex:
        sv = self.calc_input_state_vector(freq, fingering)
        return sv.reflectance(self._params.calc_z0(self._instrument.mouthpiece.radius))

    def calc_gain(self, freq: float, z: complex) -> float:
        """
        Loop gain G0*f*rho/|Z| for a given input impedance.

        Returns 1.0 when the mouthpiece has no gain model.
        """
        g0 = gain_factor(self._instrument.mouthpiece)
        if g0 is None:
            return 1.0
        return g0 * freq * self._params.rho / abs(z)

    def calc_gain_for_fingering(self, freq: float, fingering: Fingering) -> float:
        return self.calc_gain(freq, self.calc_z(freq, fingering))

    def calc_z_array(self, freqs, fingering: Fingering) -> np.ndarray:
        """Impedance at each frequency of ``freqs`` as a complex array."""
        freqs = np.asarray(freqs, dtype=float)
        return np.array([self.calc_z(f, fingering) for f in freqs], dtype=complex)
