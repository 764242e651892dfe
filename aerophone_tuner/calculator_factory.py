"""
Instrument calculators preconfigured per instrument family.

The family is normally detected from the mouthpiece geometry. For fipple
instruments the name decides between a tin whistle and a Native American
flute (NAF): a name containing "whistle" selects the whistle model, anything
else the NAF model. This is a naming convention, not a physical test, so
pass ``calculator_type`` explicitly when the name is not reliable.
"""

import logging
from enum import Enum
from typing import Optional, Union

from .bore import SimpleBoreSectionCalculator
from .geometry import Instrument
from .holes import DefaultHoleCalculator
from .instrument_calculator import InstrumentCalculator
from .mouthpiece import (
    DefaultFippleMouthpieceCalculator, FluteMouthpieceCalculator,
    SimpleFippleMouthpieceCalculator,
)
from .physics import PhysicalParameters
from .termination import ThickFlangedEndCalculator, UnflangedEndCalculator

logger = logging.getLogger(__name__)

# From validation runs against measured NAFs
NAF_HOLE_SIZE_MULT = 0.9605


class CalculatorType(Enum):
    NAF = 'naf'
    WHISTLE = 'whistle'
    FLUTE = 'flute'
    AUTO = 'auto'


def _as_type(calculator_type: Union[str, CalculatorType]) -> CalculatorType:
    if isinstance(calculator_type, CalculatorType):
        return calculator_type
    try:
        return CalculatorType(calculator_type.lower())
    except ValueError:
        available = ", ".join(t.value for t in CalculatorType)
        raise ValueError(f"Unknown calculator type '{calculator_type}'. "
                         f"Available: {available}") from None


def detect_calculator_type(instrument: Instrument) -> CalculatorType:
    mouthpiece = instrument.mouthpiece
    if mouthpiece.embouchure_hole is not None:
        return CalculatorType.FLUTE
    if mouthpiece.fipple is not None:
        if 'whistle' in (instrument.name or '').lower():
            return CalculatorType.WHISTLE
        return CalculatorType.NAF
    return CalculatorType.AUTO


def is_compatible(instrument: Instrument, calculator_type: Union[str, CalculatorType]) -> bool:
    """Whether the instrument has the mouthpiece geometry ``calculator_type`` needs."""
    calculator_type = _as_type(calculator_type)
    mouthpiece = instrument.mouthpiece
    if calculator_type in (CalculatorType.NAF, CalculatorType.WHISTLE):
        return mouthpiece.fipple is not None
    if calculator_type is CalculatorType.FLUTE:
        return mouthpiece.embouchure_hole is not None
    return True


def create_calculator(
    instrument: Instrument,
    params: Optional[PhysicalParameters] = None,
    calculator_type: Union[str, CalculatorType] = CalculatorType.AUTO
) -> InstrumentCalculator:
    """
    Build an InstrumentCalculator for ``instrument``.

    Args:
        instrument: Instrument geometry
        params: Air properties; PhysicalParameters() if omitted
        calculator_type: Family model, or AUTO to detect it

    Returns:
        Configured InstrumentCalculator
    """
    calculator_type = _as_type(calculator_type)
    if calculator_type is CalculatorType.AUTO:
        calculator_type = detect_calculator_type(instrument)
    logger.debug("Creating %s calculator for %s", calculator_type.value, instrument.name)

    if calculator_type is CalculatorType.NAF:
        return InstrumentCalculator(
            instrument, params,
            mouthpiece_calculator=DefaultFippleMouthpieceCalculator(),
            termination_calculator=ThickFlangedEndCalculator(),
            hole_calculator=DefaultHoleCalculator(NAF_HOLE_SIZE_MULT),
            bore_section_calculator=SimpleBoreSectionCalculator(),
        )
    if calculator_type is CalculatorType.WHISTLE:
        return InstrumentCalculator(
            instrument, params,
            mouthpiece_calculator=SimpleFippleMouthpieceCalculator(),
            termination_calculator=UnflangedEndCalculator(),
            hole_calculator=DefaultHoleCalculator(),
            bore_section_calculator=SimpleBoreSectionCalculator(),
        )
    if calculator_type is CalculatorType.FLUTE:
        return InstrumentCalculator(
            instrument, params,
            mouthpiece_calculator=FluteMouthpieceCalculator(),
            termination_calculator=UnflangedEndCalculator(),
            hole_calculator=DefaultHoleCalculator(),
            bore_section_calculator=SimpleBoreSectionCalculator(),
        )
    return InstrumentCalculator(instrument, params)
