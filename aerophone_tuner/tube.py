"""
Closed-form acoustics of tube segments and open pipe ends.

Radiation impedances follow Silva et al. (2008) and Kergomard, Lefebvre and
Scavone (2015). The conical transfer matrix is Lefebvre and Kergomard's form
with a mean complex wave number that includes viscothermal wall losses.

All lengths are in metres; ``params`` is a PhysicalParameters (or any object
with ``calc_z0``, ``calc_wave_number`` and ``alpha_constant``).
"""

import cmath
import math

from .complex_math import I, cdiv
from .transfer_matrix import TransferMatrix

# Shortest cone handled exactly; shorter cones use this length
MINIMUM_CONE_LENGTH = 0.00001


# =============================================================================
# Radiation impedance
# =============================================================================

def calc_z_load(freq: float, radius: float, params) -> complex:
    """Impedance of an unflanged open pipe end (Silva et al., 2008)."""
    ka = params.calc_wave_number(freq) * radius
    ka2 = ka * ka
    z0_denominator = params.calc_z0(radius) / (1.0 + ka2 * (0.1514 + 0.05221 * ka2))
    return complex(
        ka2 * (0.2499 + 0.05221 * ka2) * z0_denominator,
        ka * (0.6133 + 0.0381 * ka2) * z0_denominator,
    )


def calc_r(freq: float, radius: float, params) -> float:
    """Radiation resistance of an open pipe end in an infinite flange."""
    ka = params.calc_wave_number(freq) * radius
    ka2 = ka * ka
    return (params.calc_z0(radius) * ka2 * (0.5 + 0.1053 * ka2)
            / (1.0 + ka2 * (0.358 + 0.1053 * ka2)))


def calc_z_flanged(freq: float, radius: float, params) -> complex:
    """Impedance of an open pipe end in an infinite flange (Silva et al., 2008)."""
    ka = params.calc_wave_number(freq) * radius
    ka2 = ka * ka
    z0_denominator = params.calc_z0(radius) / (1.0 + ka2 * (0.358 + 0.1053 * ka2))
    return complex(
        ka2 * (0.5 + 0.1053 * ka2) * z0_denominator,
        ka * (0.82159 + 0.059 * ka2) * z0_denominator,
    )


def calc_z_flanged_kergomard(freq: float, radius: float, params) -> complex:
    """Infinite-flange impedance after Kergomard, Lefebvre and Scavone (2015)."""
    ka = params.calc_wave_number(freq) * radius
    ka2 = ka * ka
    numerator = complex(0.3216 * ka2, (0.82159 - 0.0368 * ka2) * ka)
    denominator = complex(1.0 + 0.3701 * ka2, (1.0 - 0.0368 * ka2) * ka)
    return cdiv(numerator, denominator) * params.calc_z0(radius)


def calc_z_thick_flanged(freq: float, radius: float, flange_radius: float, params) -> complex:
    """
    Impedance of an open end in a flange of finite width.

    The reflection coefficient is interpolated between the unflanged
    (a/b = 1) and infinite-flange (a/b -> 0) limits, where a is the pipe
    radius and b the flange radius: its magnitude from rational fits in ka,
    its phase from the end correction of each limit.

    Args:
        freq: Frequency (Hz)
        radius: Pipe radius a (m)
        flange_radius: Outer flange radius b (m); clipped to at least ``radius``
        params: Physical parameters

    Returns:
        Radiation impedance seen by the pipe
    """
    ka = params.calc_wave_number(freq) * radius
    ka2 = ka * ka
    if flange_radius <= radius:
        a_b = 1.0
    else:
        a_b = radius / flange_radius

    # |R| for the unflanged and infinitely flanged limits
    r_unflanged = (1.0 + 0.2 * ka - 0.084 * ka2) / (1.0 + 0.2 * ka + (0.5 - 0.084) * ka2)
    r_flanged = (1.0 + 0.323 * ka - 0.077 * ka2) / (1.0 + 0.323 * ka + (1.0 - 0.077) * ka2)
    magnitude = r_flanged + a_b * (r_unflanged - r_flanged)

    # End correction relative to radius
    delta = 0.8216 + a_b * (0.6133 - 0.8216) + 0.057 * a_b * (1.0 - a_b ** 5)

    reflectance = -magnitude * cmath.exp(complex(0.0, -2.0 * ka * delta))
    return params.calc_z0(radius) * cdiv(1.0 + reflectance, 1.0 - reflectance)


# =============================================================================
# Transfer matrices
# =============================================================================

def calc_cylinder_matrix(wave_number: float, length: float, radius: float,
                         params) -> TransferMatrix:
    """
    Transfer matrix of a lossy cylinder.

    Args:
        wave_number: 2*pi*f/c (rad/m)
        length: Cylinder length (m)
        radius: Cylinder radius (m)
        params: Physical parameters

    Returns:
        [[cosh(gL), Zc sinh(gL)], [sinh(gL)/Zc, cosh(gL)]]
    """
    zc = params.calc_z0(radius)
    epsilon = params.alpha_constant / (radius * math.sqrt(wave_number))
    gamma_l = complex(epsilon, 1.0 + epsilon) * (wave_number * length)
    cosh_l = cmath.cosh(gamma_l)
    sinh_l = cmath.sinh(gamma_l)
    return TransferMatrix(cosh_l, sinh_l * zc, sinh_l / zc, cosh_l)


def calc_cone_matrix(wave_number: float, length: float, source_radius: float,
                     load_radius: float, params) -> TransferMatrix:
    """
    Transfer matrix of a conical frustum (Lefebvre and Kergomard).

    Equal radii return the cylinder matrix exactly. Radii within 1e-5 of
    each other use the limiting loss term, and lengths below
    MINIMUM_CONE_LENGTH are raised to it.
    """
    if source_radius == load_radius:
        return calc_cylinder_matrix(wave_number, length, source_radius, params)

    # Mean complex wave number along the whole cone
    alpha_0 = params.alpha_constant / math.sqrt(wave_number)
    if abs(load_radius - source_radius) <= 0.00001 * source_radius:
        epsilon = alpha_0 / load_radius
    else:
        epsilon = alpha_0 / (load_radius - source_radius) * math.log(load_radius / source_radius)

    mean = complex(1.0 + epsilon, -epsilon)
    k_mean_l = mean * (wave_number * max(length, MINIMUM_CONE_LENGTH))

    # Cotangents of theta_in and theta_out
    cot_in = (load_radius - source_radius) / source_radius / k_mean_l
    cot_out = (load_radius - source_radius) / load_radius / k_mean_l

    sin_kl = cmath.sin(k_mean_l)
    cos_kl = cmath.cos(k_mean_l)

    a = cos_kl * (load_radius / source_radius) - sin_kl * cot_in
    b = I * sin_kl * (params.calc_z0(load_radius) * (load_radius / source_radius))
    c = (I * (load_radius / (source_radius * params.calc_z0(source_radius)))
         * (sin_kl * (cot_out * cot_in + 1.0) + cos_kl * (cot_out - cot_in)))
    d = cos_kl * (source_radius / load_radius) + sin_kl * cot_out
    return TransferMatrix(a, b, c, d)
