"""
Notes, fingerings and tunings.

A fingering lists the open/closed state of every tone hole, ordered from the
mouthpiece towards the termination, plus an optional state for the far end.
The compact string form used throughout is::

    "XXO OOO_"

where ``X`` is a closed hole, ``O`` an open hole, a trailing ``_`` an open
end and a trailing ``]`` a closed end. Spaces are ignored.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

CENTS_IN_OCTAVE = 1200.0

# =============================================================================
# Musical note utilities
# =============================================================================

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']
_NOTE_PATTERN = re.compile(r'^([A-G])([#B]?)(-?\d+)$')


def note_to_frequency(note: str, a4: float = 440.0) -> float:
    """
    Convert note name to frequency (equal temperament).

    Examples: 'A4' = 440 Hz, 'C4' = 261.63 Hz, 'F#3' = 185 Hz, 'Bb3' = 233.08 Hz
    """
    match = _NOTE_PATTERN.match(note.strip().upper())
    if not match:
        raise ValueError(f"Cannot parse note name '{note}'")
    letter, accidental, octave = match.groups()

    note_idx = NOTE_NAMES.index(letter)
    if accidental == '#':
        note_idx += 1
    elif accidental == 'B':
        note_idx -= 1

    semitones = note_idx - NOTE_NAMES.index('A') + (int(octave) - 4) * 12
    return a4 * (2 ** (semitones / 12))


def frequency_to_note(freq: float, a4: float = 440.0) -> tuple[str, float]:
    """
    Convert frequency to nearest note name and cents deviation.

    Returns:
        (note_name, cents_off) - e.g. ('A4', -5.2)
    """
    semitones = 12 * np.log2(freq / a4)
    semitones_rounded = int(round(semitones))
    cents_off = (semitones - semitones_rounded) * 100

    total_idx = NOTE_NAMES.index('A') + semitones_rounded
    octave = 4 + total_idx // 12
    note_name = f"{NOTE_NAMES[total_idx % 12]}{octave}"
    return note_name, float(cents_off)


def cents(f1: float, f2: float) -> float:
    """Interval from ``f1`` up to ``f2`` in cents (positive if f2 > f1)."""
    return math.log2(f2 / f1) * CENTS_IN_OCTAVE


# =============================================================================
# Notes and fingerings
# =============================================================================

@dataclass
class Note:
    """Musical note with an exact target and/or an acceptable range (Hz)."""
    name: Optional[str] = None
    frequency: Optional[float] = None
    frequency_min: Optional[float] = None
    frequency_max: Optional[float] = None

    @classmethod
    def from_name(cls, name: str) -> 'Note':
        return cls(name=name, frequency=note_to_frequency(name))

    @property
    def target_frequency(self) -> Optional[float]:
        """Exact frequency if set, else the middle of the range, else either bound."""
        if self.frequency is not None:
            return self.frequency
        if self.frequency_min is not None and self.frequency_max is not None:
            return 0.5 * (self.frequency_min + self.frequency_max)
        if self.frequency_min is not None:
            return self.frequency_min
        return self.frequency_max


_FINGERING_PATTERN = re.compile(r'^[XOxo][XOxo ]*[_\]]?$')


@dataclass
class Fingering:
    """Open/closed hole states for one note. ``True`` means open."""
    open_holes: list[bool] = field(default_factory=list)
    open_end: Optional[bool] = None
    note: Optional[Note] = None
    optimization_weight: Optional[float] = None

    @classmethod
    def from_string(cls, pattern: str, note: Optional[Note] = None) -> 'Fingering':
        if not _FINGERING_PATTERN.match(pattern):
            raise ValueError(f"'{pattern}' does not represent a fingering pattern")

        open_holes = [ch in 'Oo' for ch in pattern if ch in 'XOxo']
        open_end = None
        if pattern.endswith('_'):
            open_end = True
        elif pattern.endswith(']'):
            open_end = False
        return cls(open_holes=open_holes, open_end=open_end, note=note)

    @classmethod
    def all_open(cls, number_of_holes: int, note: Optional[Note] = None) -> 'Fingering':
        return cls(open_holes=[True] * number_of_holes, note=note)

    @classmethod
    def all_closed(cls, number_of_holes: int, note: Optional[Note] = None) -> 'Fingering':
        return cls(open_holes=[False] * number_of_holes, note=note)

    @property
    def number_of_holes(self) -> int:
        return len(self.open_holes)

    @property
    def weight(self) -> float:
        """Optimisation weight: 1 when unset, never negative."""
        if self.optimization_weight is None:
            return 1.0
        return max(0.0, self.optimization_weight)

    def is_open(self, index: int) -> bool:
        """State of hole ``index``; holes beyond the list are open."""
        if index < len(self.open_holes):
            return self.open_holes[index]
        return True

    def with_hole_count(self, number_of_holes: int) -> 'Fingering':
        """Copy padded with open holes, or truncated, to ``number_of_holes``."""
        holes = [self.is_open(i) for i in range(number_of_holes)]
        return Fingering(holes, self.open_end, self.note, self.optimization_weight)

    def __str__(self) -> str:
        n = len(self.open_holes)
        chars = []
        for i, is_open in enumerate(self.open_holes):
            # Split long patterns in the middle for readability
            if n >= 6 and i == n // 2:
                chars.append(' ')
            chars.append('O' if is_open else 'X')
        if self.open_end is not None:
            chars.append('_' if self.open_end else ']')
        return ''.join(chars)


@dataclass
class Tuning:
    """A named set of fingerings for an instrument with a fixed hole count."""
    name: str
    number_of_holes: int
    fingerings: list[Fingering] = field(default_factory=list)
    comment: str = ""

    def target_frequencies(self) -> np.ndarray:
        """Target frequency of each fingering; NaN where a fingering has none."""
        freqs = []
        for f in self.fingerings:
            target = f.note.target_frequency if f.note is not None else None
            freqs.append(np.nan if target is None else target)
        return np.array(freqs, dtype=float)

    @property
    def has_min_max(self) -> bool:
        return any(f.note is not None and (f.note.frequency_min is not None
                                           or f.note.frequency_max is not None)
                   for f in self.fingerings)

    @property
    def has_closable_end(self) -> bool:
        return any(f.open_end is not None for f in self.fingerings)

    def validate(self) -> list[str]:
        """Return a list of problems with this tuning; empty if it is usable."""
        errors = []
        if not self.name or not self.name.strip():
            errors.append("Enter a name for the tuning.")
        if not self.fingerings:
            errors.append("Enter one or more notes for the tuning.")

        for row, f in enumerate(self.fingerings, start=1):
            if f.note is None:
                errors.append(f"Missing note in row {row}.")
                continue
            note_name = f.note.name or "note"
            if not f.note.name or not f.note.name.strip():
                errors.append(f"Enter a note name for row {row}.")
            if not f.open_holes:
                errors.append(f"Missing fingering for {note_name} in row {row}.")
            elif len(f.open_holes) != self.number_of_holes:
                errors.append(f"Fingering for {note_name} in row {row} has wrong number of holes.")
            values = (f.note.frequency, f.note.frequency_min, f.note.frequency_max)
            if all(v is None for v in values):
                errors.append(f"Enter at least one frequency for {note_name} in row {row}.")
            elif any(v is not None and v <= 0 for v in values):
                errors.append(f"Frequencies for {note_name} in row {row} must be positive.")
        return errors
