"""
Aerophone Tuner

Transmission-line acoustics of woodwind instruments (whistles, flutes,
Native American flutes, reed pipes). Each bore segment, tone hole,
mouthpiece and termination is a 2x2 transfer matrix; cascading them gives
the input impedance, from which the playing frequencies are found.

Quick start:
    from aerophone_tuner import create_whistle, create_calculator
    from aerophone_tuner import PhysicalParameters, PlayingRange, Fingering

    whistle = create_whistle(300, 16, [200, 215, 230, 250, 265, 280])
    calculator = create_calculator(whistle, PhysicalParameters(20, 'C'))

    fingering = Fingering.from_string("XXX XXX_")
    result = PlayingRange(calculator, fingering).find_x_zero(300)
    if result.success:
        print(f"{result.frequency:.1f} Hz")
    else:
        print(result.message)
"""

from .complex_math import cdiv, complex_equals
from .transfer_matrix import TransferMatrix
from .state_vector import StateVector

from .physics import (
    PhysicalParameters,
    SimplePhysicalParameters,
    pressure_at,
    standard_pressure_at,
)

from .geometry import (
    BorePoint, BoreSection, Hole, Key,
    Fipple, EmbouchureHole, Reed, Mouthpiece, Termination, Instrument,
    LENGTH_UNITS,
    instrument_to_metres,
    interpolated_bore_diameter,
    build_headspace,
    gain_factor,
    validate_instrument,
    create_tube,
    create_whistle,
)

from .tuning import (
    Note,
    Fingering,
    Tuning,
    note_to_frequency,
    frequency_to_note,
    cents,
)

from .tube import (
    calc_z_load,
    calc_r,
    calc_z_flanged,
    calc_z_flanged_kergomard,
    calc_z_thick_flanged,
    calc_cylinder_matrix,
    calc_cone_matrix,
)

from .bore import SimpleBoreSectionCalculator, bore_sections_from_points, calc_bore_transfer_matrix
from .holes import DefaultHoleCalculator
from .mouthpiece import (
    MissingGeometryError,
    MouthpieceCalculator,
    SimpleFippleMouthpieceCalculator,
    FluteMouthpieceCalculator,
    DefaultFippleMouthpieceCalculator,
    get_mouthpiece_calculator,
)
from .termination import (
    UnflangedEndCalculator,
    FlangedEndCalculator,
    ThickFlangedEndCalculator,
    get_termination_calculator,
)

from .instrument_calculator import InstrumentCalculator
from .calculator_factory import CalculatorType, create_calculator, detect_calculator_type

from .playing_range import PlayingRange, PlayingRangeResult, SolverConfig

from .spectrum import (
    ImpedanceSpectrum,
    ReflectanceSpectrum,
    calculate_impedance_spectrum,
    calculate_reflectance_spectrum,
)

from .tuner import (
    SimpleInstrumentTuner,
    LinearVInstrumentTuner,
    TuningResult,
    TuningStats,
    compare_tunings,
    tuning_stats,
)

from .evaluator import (
    Evaluator,
    CentDeviationEvaluator,
    FrequencyDeviationEvaluator,
    ReactanceEvaluator,
    FminEvaluator,
    FmaxEvaluator,
    FminmaxEvaluator,
    BellNoteEvaluator,
    ReflectionEvaluator,
    create_evaluator,
)
from .objective import (
    BoreLengthAdjustment,
    Constraint,
    Constraints,
    ObjectiveFunction,
    LengthObjectiveFunction,
    HolePositionObjectiveFunction,
    HoleSizeObjectiveFunction,
    HoleObjectiveFunction,
)
from .optimizer import OptimizationResult, optimize_objective, starting_points

from .logging_config import setup_logging

__version__ = '0.1.0'

__all__ = [
    # Algebra
    'cdiv', 'complex_equals', 'TransferMatrix', 'StateVector',

    # Air properties
    'PhysicalParameters', 'SimplePhysicalParameters', 'pressure_at', 'standard_pressure_at',

    # Geometry
    'BorePoint', 'BoreSection', 'Hole', 'Key',
    'Fipple', 'EmbouchureHole', 'Reed', 'Mouthpiece', 'Termination', 'Instrument',
    'LENGTH_UNITS', 'instrument_to_metres', 'interpolated_bore_diameter',
    'build_headspace', 'gain_factor', 'validate_instrument',
    'create_tube', 'create_whistle',

    # Tuning
    'Note', 'Fingering', 'Tuning', 'note_to_frequency', 'frequency_to_note', 'cents',

    # Tube physics
    'calc_z_load', 'calc_r', 'calc_z_flanged', 'calc_z_flanged_kergomard',
    'calc_z_thick_flanged', 'calc_cylinder_matrix', 'calc_cone_matrix',

    # Component calculators
    'SimpleBoreSectionCalculator', 'bore_sections_from_points', 'calc_bore_transfer_matrix',
    'DefaultHoleCalculator',
    'MissingGeometryError', 'MouthpieceCalculator', 'SimpleFippleMouthpieceCalculator',
    'FluteMouthpieceCalculator', 'DefaultFippleMouthpieceCalculator',
    'get_mouthpiece_calculator',
    'UnflangedEndCalculator', 'FlangedEndCalculator', 'ThickFlangedEndCalculator',
    'get_termination_calculator',

    # Instrument
    'InstrumentCalculator', 'CalculatorType', 'create_calculator', 'detect_calculator_type',

    # Solvers
    'PlayingRange', 'PlayingRangeResult', 'SolverConfig',
    'ImpedanceSpectrum', 'ReflectanceSpectrum',
    'calculate_impedance_spectrum', 'calculate_reflectance_spectrum',
    'SimpleInstrumentTuner', 'LinearVInstrumentTuner', 'TuningResult', 'TuningStats',
    'compare_tunings', 'tuning_stats',

    # Optimization
    'Evaluator', 'CentDeviationEvaluator', 'FrequencyDeviationEvaluator',
    'ReactanceEvaluator', 'FminEvaluator', 'FmaxEvaluator', 'FminmaxEvaluator',
    'BellNoteEvaluator', 'ReflectionEvaluator', 'create_evaluator',
    'BoreLengthAdjustment', 'Constraint', 'Constraints', 'ObjectiveFunction',
    'LengthObjectiveFunction', 'HolePositionObjectiveFunction',
    'HoleSizeObjectiveFunction', 'HoleObjectiveFunction',
    'OptimizationResult', 'optimize_objective', 'starting_points',

    'setup_logging',
]
