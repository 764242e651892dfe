"""
Physical properties of air for acoustic calculations.

Properties derived from temperature, pressure, humidity and CO2 fraction:
- rho: Density (kg/m³)
- eta: Dynamic viscosity (Pa·s)
- gamma: Ratio of specific heats cp/cv
- speed_of_sound: c (m/s)
- alpha_constant: viscothermal loss constant for wall losses

The full model follows the CIPM-2007 formulation for moist air. A simplified
linearised model is kept for the fipple mouthpiece, which was calibrated
against it.
"""

import math
from dataclasses import dataclass, field

# Universal gas constant, J/(mol.K)
R = 8.314472
# Standard molar mass of CO2-free dry air, kg/kmol
MA0 = 28.960745
MCO2 = 44.01
MO2 = 31.9988
# Molar mass of water vapour, kg/kmol
MV = 18.01527

STANDARD_PRESSURE_KPA = 101.325
DEFAULT_HUMIDITY = 45.0
DEFAULT_XCO2 = 0.00039


def fahrenheit_to_celsius(temperature: float) -> float:
    return (temperature + 40.0) * 5.0 / 9.0 - 40.0


@dataclass
class PhysicalParameters:
    """
    Air properties at a given temperature, pressure and humidity.

    Args:
        temperature: Air temperature, in ``temp_unit``
        temp_unit: 'C' or 'F'
        pressure: Air pressure (kPa)
        humidity: Relative humidity (% of saturation)
        x_co2: Molar fraction of CO2 (mol/mol)
    """
    temperature: float = 72.0
    temp_unit: str = 'F'
    pressure: float = STANDARD_PRESSURE_KPA
    humidity: float = DEFAULT_HUMIDITY
    x_co2: float = DEFAULT_XCO2

    # Derived properties
    x_v: float = field(init=False)
    rho: float = field(init=False)
    eta: float = field(init=False)
    specific_heat: float = field(init=False)
    gamma: float = field(init=False)
    kappa: float = field(init=False)
    prandtl: float = field(init=False)
    speed_of_sound: float = field(init=False)
    alpha_constant: float = field(init=False)
    wave_number_1: float = field(init=False)

    def __post_init__(self):
        unit = self.temp_unit.upper()
        if unit == 'F':
            self.temperature = fahrenheit_to_celsius(self.temperature)
        elif unit != 'C':
            raise ValueError(f"Unknown temperature unit '{self.temp_unit}'. Use 'C' or 'F'.")
        self.temp_unit = 'C'
        self._calc_properties()

    def _calc_properties(self):
        t = self.temperature
        kelvin = 273.15 + t
        pascal = 1000.0 * self.pressure

        # Enhancement factor and saturated vapour pressure (kPa), CIPM-2007
        enhancement = 1.00062 + 3.14e-5 * self.pressure + 5.6e-7 * t * t
        psv = 0.001 * math.exp(1.2378847e-5 * kelvin * kelvin
                               - 1.9121316e-2 * kelvin
                               + 33.93711047
                               - 6.3431645e3 / kelvin)

        # Molar fraction of water vapour
        xv = 0.01 * self.humidity * enhancement * psv / self.pressure
        self.x_v = xv

        compressibility = (
            1.0
            - pascal / kelvin * (1.58123e-6 - 2.9331e-8 * t + 1.1043e-10 * t * t
                                 + (5.707e-6 - 2.051e-8 * t) * xv
                                 + (1.9898e-4 - 2.376e-6 * t) * xv * xv)
            + (pascal / kelvin) ** 2 * (1.83e-11 - 0.765e-8 * xv * xv)
        )

        ma = MA0 + (MCO2 - MO2) * self.x_co2
        m = (1.0 - xv) * ma + xv * MV
        ra = R / (0.001 * m)
        qv = xv * MV / m
        qco2 = self.x_co2 * MCO2 / m

        self.rho = pascal / (compressibility * ra * kelvin)

        # Viscosity: Sutherland for dry air, mixed with water vapour
        eta_air = 1.4592e-6 * kelvin ** 1.5 / (kelvin + 109.1)
        eta_vapour = 8.058131868e-6 + t * 4.000549451e-8
        eta_ratio = math.sqrt(eta_air / eta_vapour)
        humidity_ratio = xv / (1.0 - xv)
        phi_av = (0.5 * (1.0 + eta_ratio * (MV / ma) ** 0.25) ** 2
                  / math.sqrt(2.0 * (1.0 + ma / MV)))
        phi_va = (0.5 * (1.0 + (ma / MV) ** 0.25 / eta_ratio) ** 2
                  / math.sqrt(2.0 * (1.0 + MV / ma)))
        self.eta = (eta_air / (1.0 + phi_av * humidity_ratio)
                    + humidity_ratio * eta_vapour / (humidity_ratio + phi_va))

        # Isobaric specific heat, J/(kg.K)
        cp_air = 1032.0 + kelvin * (-0.284887 + kelvin * (0.7816818e-3 + kelvin
                                    * (-0.4970786e-6 + kelvin * 0.1077024e-9)))
        cp_vapour = 1869.10989 + t * (-0.2578421578 + t * 1.941058941e-2)
        cp_co2 = 817.02 + t * (1.0562 - t * 6.67e-4)
        self.specific_heat = cp_air * (1 - qv - qco2) + cp_vapour * qv + cp_co2 * qco2
        self.gamma = self.specific_heat / (self.specific_heat - ra)

        kappa_air = 2.334e-3 * kelvin ** 1.5 / (kelvin + 164.54)
        kappa_vapour = 0.01761758242 + t * (5.558941059e-5 + t * 1.663336663e-7)
        self.kappa = (kappa_air / (1.0 + phi_av * humidity_ratio)
                      + humidity_ratio * kappa_vapour / (humidity_ratio + phi_va))

        self.prandtl = self.eta * self.specific_heat / self.kappa
        self.speed_of_sound = math.sqrt(self.gamma * compressibility * ra * kelvin)
        self.alpha_constant = (math.sqrt(self.eta / (2.0 * self.rho * self.speed_of_sound))
                               * (1.0 + (self.gamma - 1.0) / math.sqrt(self.prandtl)))
        self.wave_number_1 = 2.0 * math.pi / self.speed_of_sound

    def calc_z0(self, radius: float) -> float:
        """Characteristic impedance rho*c/(pi r²) of a tube of given radius."""
        return self.rho * self.speed_of_sound / (math.pi * radius * radius)

    def calc_wave_number(self, freq: float) -> float:
        return freq * self.wave_number_1

    def calc_frequency(self, wave_number: float) -> float:
        return wave_number / self.wave_number_1

    def get_epsilon(self, wave_number: float, radius: float) -> float:
        """Viscothermal loss term, proportional to 1/(radius * sqrt(k))."""
        return self.alpha_constant / (radius * math.sqrt(wave_number))

    def summary(self) -> str:
        return (f"Temperature: {self.temperature:.2f} °C, "
                f"pressure: {self.pressure:.3f} kPa, "
                f"c = {self.speed_of_sound:.3f} m/s, "
                f"ρ = {self.rho:.4f} kg/m³, γ = {self.gamma:.4f}")


def pressure_at(barometric_pressure: float, elevation: float) -> float:
    """Air pressure (kPa) at ``elevation`` metres, given sea-level pressure."""
    ma = MA0 + (MCO2 - MO2) * DEFAULT_XCO2
    g = 9.80665
    return barometric_pressure * math.exp(-g * ma * 0.001 * elevation / (R * 288.15))


def standard_pressure_at(elevation: float) -> float:
    return pressure_at(STANDARD_PRESSURE_KPA, elevation)


# =============================================================================
# Simplified model
# =============================================================================

# Coefficients of the Yang Yili speed of sound formula
_YANG_YILI = (
    331.5024, 0.603055, -0.000528, 51.471935,
    0.1495874, -0.000782, -1.82e-7, 3.73e-8,
    -2.93e-10, -85.20931, -0.228525, 5.91e-5,
    -2.835149, -2.15e-13, 29.179762, 0.000486,
)


def yang_yili_speed_of_sound(temperature: float, relative_humidity: float) -> float:
    """Speed of sound (m/s) at standard pressure; humidity as a fraction 0-1."""
    a = _YANG_YILI
    p = 101000.0
    kelvin = temperature + 273.15
    f = 1.00062 + 0.0000000314 * p + 0.00000056 * temperature * temperature
    psv = math.exp(0.000012811805 * kelvin * kelvin - 0.019509874 * kelvin
                   + 34.04926034 - 6353.6311 / kelvin)
    xw = relative_humidity * f * psv / p

    c = 331.45 - a[0] - p * a[6] - a[13] * p * p
    c = math.sqrt(a[9] * a[9] + 4 * a[14] * c)
    xc = (-a[9] - c) / (2 * a[14])

    t = temperature
    return (a[0] + a[1] * t + a[2] * t * t
            + (a[3] + a[4] * t + a[5] * t * t) * xw
            + (a[6] + a[7] * t + a[8] * t * t) * p
            + (a[9] + a[10] * t + a[11] * t * t) * xc
            + a[12] * xw * xw
            + a[13] * p * p
            + a[14] * xc * xc
            + a[15] * xw * p * xc)


@dataclass
class SimplePhysicalParameters:
    """Linearised air properties, valid near room temperature."""
    temperature: float = field(default_factory=lambda: fahrenheit_to_celsius(72.0))
    relative_humidity: float = 0.45

    REFERENCE_TEMP = 26.85

    def __post_init__(self):
        self.speed_of_sound = yang_yili_speed_of_sound(self.temperature,
                                                       self.relative_humidity)
        kelvin = self.temperature + 273.15
        delta_t = self.temperature - self.REFERENCE_TEMP
        self.eta = 3.648e-6 * (1.0 + 0.0135003 * kelvin)
        self.rho = 1.1769 * (1.0 - 0.00335 * delta_t)
        self.mu = 1.846e-5 * (1.0 + 0.0025 * delta_t)
        self.gamma = 1.4017 * (1.0 - 0.00002 * delta_t)
        self.nu = 0.841 * (1.0 - 0.0002 * delta_t)
        self.wave_number_1 = 2.0 * math.pi / self.speed_of_sound
        self.alpha_constant = (math.sqrt(self.mu / (2.0 * self.rho * self.speed_of_sound))
                               * (1.0 + (self.gamma - 1.0) / self.nu))

    @classmethod
    def from_params(cls, params: PhysicalParameters) -> 'SimplePhysicalParameters':
        return cls(temperature=params.temperature)

    def calc_z0(self, radius: float) -> float:
        return self.rho * self.speed_of_sound / (math.pi * radius * radius)

    def calc_wave_number(self, freq: float) -> float:
        return freq * self.wave_number_1
