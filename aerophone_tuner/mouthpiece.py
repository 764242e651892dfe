"""
Mouthpiece calculators.

The mouthpiece turns the state vector seen looking down the bore into the
state vector seen by the excitation mechanism. Flow-node mouthpieces
(fipples, embouchure holes) add the window impedance in series, after the
headspace above the mouthpiece has been combined in parallel with the bore.
Pressure-node mouthpieces (reeds) see the bore through a closed end.
"""

import math
from abc import ABC, abstractmethod

from .complex_math import ONE, ZERO
from .geometry import BoreSection, Mouthpiece
from .physics import SimplePhysicalParameters
from .state_vector import StateVector
from .transfer_matrix import TransferMatrix
from .tube import calc_cone_matrix, calc_r


class MissingGeometryError(ValueError):
    """A calculator needs mouthpiece geometry that the instrument does not define."""


class MouthpieceCalculator:
    """
    Generic mouthpiece: an ideal open end for flow-node mouthpieces and an
    ideal closed end for pressure-node mouthpieces.
    """

    def calc_transfer_matrix(self, mouthpiece: Mouthpiece, wave_number: float,
                             params) -> TransferMatrix:
        if mouthpiece.is_pressure_node:
            z0 = params.calc_z0(mouthpiece.radius)
            return TransferMatrix(ZERO, complex(z0, 0.0), ONE, ZERO)
        return TransferMatrix.identity()

    def calc_state_vector(self, bore_state: StateVector, mouthpiece: Mouthpiece,
                          wave_number: float, params) -> StateVector:
        tm = self.calc_transfer_matrix(mouthpiece, wave_number, params)
        return bore_state.apply(tm)


class WindowMouthpieceCalculator(MouthpieceCalculator, ABC):
    """
    Flow-node mouthpiece with a window modelled as a short duct.

    The headspace is a closed-end duct in parallel with the bore; the window
    impedance is added in series after that.
    """

    @abstractmethod
    def window_impedance(self, mouthpiece: Mouthpiece, freq: float, params) -> complex:
        ...

    def calc_transfer_matrix(self, mouthpiece: Mouthpiece, wave_number: float,
                             params) -> TransferMatrix:
        if mouthpiece.is_pressure_node:
            return super().calc_transfer_matrix(mouthpiece, wave_number, params)
        freq = params.calc_frequency(wave_number)
        z_window = self.window_impedance(mouthpiece, freq, params)
        return TransferMatrix(ONE, z_window, ZERO, ONE)

    def calc_state_vector(self, bore_state: StateVector, mouthpiece: Mouthpiece,
                          wave_number: float, params) -> StateVector:
        sv = bore_state
        if mouthpiece.headspace:
            headspace_state = headspace_transmission(mouthpiece.headspace, wave_number, params)
            sv = sv.parallel(headspace_state)
        tm = self.calc_transfer_matrix(mouthpiece, wave_number, params)
        return sv.apply(tm)


def headspace_transmission(headspace: list[BoreSection], wave_number: float,
                           params) -> StateVector:
    """State at the mouthpiece looking up a closed-top headspace."""
    state = StateVector.closed_end()
    for section in headspace:
        # Sections run towards the mouthpiece, so the source is the right end
        tm = calc_cone_matrix(wave_number, section.length, section.right_radius,
                              section.left_radius, params)
        state = state.apply(tm)
    return state


def _duct_window_impedance(freq: float, eff_size: float, window_height: float,
                           bore_radius: float, params) -> complex:
    # Reactance of the window as a short duct; resistance from radiation at
    # the bore end plus viscous loss in a tube of the window's area.
    xw = params.rho * freq / eff_size * (4.3 + 2.87 * window_height / eff_size)
    rw = (calc_r(freq, bore_radius, params)
          + params.rho * 0.0184 * math.sqrt(freq) * window_height / eff_size ** 3)
    return complex(rw, xw)


class SimpleFippleMouthpieceCalculator(WindowMouthpieceCalculator):
    """Fipple window impedance from window size and blade height."""

    def window_impedance(self, mouthpiece: Mouthpiece, freq: float, params) -> complex:
        fipple = mouthpiece.fipple
        if fipple is None:
            raise MissingGeometryError("Fipple not defined for mouthpiece")
        eff_size = math.sqrt(fipple.window_length * fipple.window_width)

        # Without a blade height, fall back to the windway height, then 1 mm
        if fipple.window_height is not None:
            window_height = fipple.window_height
        elif fipple.windway_height is not None:
            window_height = fipple.windway_height
        else:
            window_height = 0.001

        return _duct_window_impedance(freq, eff_size, window_height, mouthpiece.radius, params)


class FluteMouthpieceCalculator(WindowMouthpieceCalculator):
    """Transverse-flute embouchure hole, partly covered by the lip."""

    def window_impedance(self, mouthpiece: Mouthpiece, freq: float, params) -> complex:
        emb = mouthpiece.embouchure_hole
        if emb is None:
            raise MissingGeometryError("Embouchure hole not defined for mouthpiece")
        hole_width = min(emb.width, emb.airstream_length)
        eff_size = math.sqrt(hole_width * emb.length)
        return _duct_window_impedance(freq, eff_size, emb.height, mouthpiece.radius, params)


# Windway height the default fipple model was calibrated for (m)
DEFAULT_WINDWAY_HEIGHT = 0.00078740
AIR_GAMMA = 1.4018297351222222


class DefaultFippleMouthpieceCalculator(MouthpieceCalculator):
    """
    Fipple modelled as an end correction k*dl plus a series radiation
    resistance, tuned for Native American flutes.

    The headspace enters as a compliance from the bore cross-section and the
    mouthpiece position, rather than through the bore sections. Air
    properties come from SimplePhysicalParameters, which the model was
    calibrated against; pressure and CO2 are ignored.
    """

    def calc_transfer_matrix(self, mouthpiece: Mouthpiece, wave_number: float,
                             params) -> TransferMatrix:
        if mouthpiece.is_pressure_node:
            return super().calc_transfer_matrix(mouthpiece, wave_number, params)

        simple_params = SimplePhysicalParameters.from_params(params)
        radius = mouthpiece.radius
        z0 = params.calc_z0(radius)
        omega = wave_number * params.speed_of_sound
        k_delta_l = self.calc_k_delta_l(mouthpiece, omega, z0, simple_params)

        # Series resistance for radiation loss
        freq = omega / (2 * math.pi)
        r_rad = calc_r(freq, radius, params)

        cos_kl = math.cos(k_delta_l)
        sin_kl = math.sin(k_delta_l)
        return TransferMatrix(
            complex(cos_kl, r_rad * sin_kl / z0),
            complex(r_rad * cos_kl, sin_kl * z0),
            complex(0.0, sin_kl / z0),
            complex(cos_kl, 0.0),
        )

    def calc_k_delta_l(self, mouthpiece: Mouthpiece, omega: float, z0: float,
                       simple_params: SimplePhysicalParameters) -> float:
        jye = characteristic_length(mouthpiece) / (AIR_GAMMA * omega)
        c = simple_params.speed_of_sound
        volume = 2.0 * position_headspace_volume(mouthpiece)
        jyc = -omega * volume / (AIR_GAMMA * c * c)
        return math.atan(1.0 / (z0 * (jye + jyc)))


def position_headspace_volume(mouthpiece: Mouthpiece) -> float:
    """Headspace volume taken as a cylinder of bore radius up to the mouthpiece, doubled."""
    radius = mouthpiece.radius
    return math.pi * radius * radius * mouthpiece.position * 2.0


def characteristic_length(mouthpiece: Mouthpiece) -> float:
    """Equivalent window diameter scaled by the fipple factor."""
    fipple = mouthpiece.fipple
    if fipple is None:
        raise MissingGeometryError("Fipple not defined for mouthpiece")

    windway_height = fipple.windway_height or DEFAULT_WINDWAY_HEIGHT
    ratio = (DEFAULT_WINDWAY_HEIGHT / windway_height) ** (1.0 / 3.0)
    fipple_factor = ratio if fipple.fipple_factor is None else fipple.fipple_factor * ratio

    area = fipple.window_length * fipple.window_width
    return 2.0 * math.sqrt(area / math.pi) * fipple_factor


def get_mouthpiece_calculator(mouthpiece: Mouthpiece) -> MouthpieceCalculator:
    """Calculator chosen from which excitation geometry ``mouthpiece`` carries."""
    if mouthpiece.fipple is not None:
        return DefaultFippleMouthpieceCalculator()
    if mouthpiece.embouchure_hole is not None:
        return FluteMouthpieceCalculator()
    return MouthpieceCalculator()
