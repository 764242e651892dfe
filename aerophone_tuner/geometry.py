"""
Geometry definitions for woodwind instruments.

An instrument is a bore described by (position, diameter) points, a set of
tone holes, a mouthpiece (the excitation point) and a termination at the far
end. Positions are measured from the top of the bore. Dimensions are stored
in the instrument's own length unit; the calculators work on a copy converted
to metres.
"""

import math
import warnings
from dataclasses import dataclass, field, replace
from typing import Optional

import numpy as np

# Multipliers to convert each length unit to metres
LENGTH_UNITS = {
    'MM': 0.001,
    'CM': 0.01,
    'M': 1.0,
    'IN': 0.0254,
    'FT': 0.3048,
}

# Assumed bore diameter (m) when none is known
DEFAULT_BORE_DIAMETER = 0.01


def length_multiplier(length_type: str) -> float:
    """Multiplier from ``length_type`` to metres."""
    key = length_type.upper()
    if key not in LENGTH_UNITS:
        available = ", ".join(LENGTH_UNITS)
        raise ValueError(f"Unknown length unit '{length_type}'. Available: {available}")
    return LENGTH_UNITS[key]


@dataclass
class BorePoint:
    """A bore diameter measurement at a position along the bore."""
    position: float
    diameter: float
    name: Optional[str] = None


@dataclass
class Key:
    """Mechanical key covering a tone hole."""
    diameter: float = 0.0
    hole_diameter: float = 0.0
    height: float = 0.0
    thickness: float = 0.0
    wall_thickness: float = 0.0
    chimney_height: float = 0.0


@dataclass
class Hole:
    """
    A tone hole.

    ``height`` is the chimney length through the wall. ``bore_diameter`` is
    filled in from the bore profile when an instrument calculator is built.
    A hole with a ``key`` is closed by a pad rather than a finger.
    """
    position: float
    diameter: float
    height: float
    name: Optional[str] = None
    key: Optional[Key] = None
    bore_diameter: Optional[float] = None
    inner_curvature_radius: Optional[float] = None

    @property
    def ratio(self) -> float:
        """Hole diameter over bore diameter."""
        if not self.bore_diameter:
            raise ValueError("Bore diameter not set for hole")
        return self.diameter / self.bore_diameter


@dataclass
class BoreSection:
    """A conical (or cylindrical) bore segment between two positions."""
    length: float
    left_radius: float
    right_radius: float
    right_position: float = 0.0

    @property
    def is_cylinder(self) -> bool:
        return self.left_radius == self.right_radius

    @property
    def volume(self) -> float:
        """Frustum volume (m³ when dimensions are in metres)."""
        r1, r2 = self.left_radius, self.right_radius
        return math.pi * self.length / 3.0 * (r1 * r1 + r1 * r2 + r2 * r2)


# =============================================================================
# Mouthpiece
# =============================================================================

@dataclass
class Fipple:
    """Fipple (duct flute) window and windway."""
    window_length: float
    window_width: float
    fipple_factor: Optional[float] = None
    window_height: Optional[float] = None
    windway_length: Optional[float] = None
    windway_height: Optional[float] = None


@dataclass
class EmbouchureHole:
    """Transverse-flute embouchure hole and the player's airstream."""
    length: float
    width: float
    height: float
    airstream_length: float
    airstream_height: float


REED_KINDS = ('single', 'double', 'lip')


@dataclass
class Reed:
    """Reed excitation: a pressure-node mouthpiece."""
    kind: str = 'single'
    alpha: float = 0.0
    crow_freq: Optional[float] = None

    def __post_init__(self):
        if self.kind not in REED_KINDS:
            raise ValueError(f"Unknown reed kind '{self.kind}'. Use one of {REED_KINDS}")


@dataclass
class Mouthpiece:
    """
    Excitation point of the instrument.

    At most one of ``fipple``, ``embouchure_hole`` and ``reed`` is set.
    Fipples and embouchure holes drive the bore at a flow node; reeds at a
    pressure node. ``headspace`` holds the bore above the mouthpiece and is
    filled in by the instrument calculator.
    """
    position: float = 0.0
    beta: Optional[float] = None
    fipple: Optional[Fipple] = None
    embouchure_hole: Optional[EmbouchureHole] = None
    reed: Optional[Reed] = None
    bore_diameter: Optional[float] = None
    headspace: list[BoreSection] = field(default_factory=list)

    def __post_init__(self):
        kinds = [k for k in (self.fipple, self.embouchure_hole, self.reed) if k is not None]
        if len(kinds) > 1:
            raise ValueError("Mouthpiece may have only one of fipple, embouchure_hole or reed")

    @property
    def is_pressure_node(self) -> bool:
        return self.reed is not None

    @property
    def kind(self) -> str:
        if self.embouchure_hole is not None:
            return 'embouchure_hole'
        if self.fipple is not None:
            return 'fipple'
        if self.reed is not None:
            return f'{self.reed.kind}_reed'
        return 'unknown'

    @property
    def radius(self) -> float:
        return 0.5 * (self.bore_diameter or DEFAULT_BORE_DIAMETER)


def gain_factor(mouthpiece: Mouthpiece) -> Optional[float]:
    """
    Loop-gain constant G0 of the mouthpiece, or None if no gain model applies.

    Defined for fipples with a known windway height and for embouchure holes.
    """
    beta = mouthpiece.beta if mouthpiece.beta is not None else 0.35

    fipple = mouthpiece.fipple
    if fipple is not None and fipple.windway_height:
        wh = fipple.windway_height
        return (8.0 * wh * math.sqrt(2.0 * wh / fipple.window_length)
                * math.exp(beta * fipple.window_length / wh)
                / (fipple.window_length * fipple.window_width))

    emb = mouthpiece.embouchure_hole
    if emb is not None:
        return (8.0 * emb.airstream_height
                * math.sqrt(2.0 * emb.airstream_height / emb.airstream_length)
                * math.exp(beta * emb.airstream_length / emb.airstream_height)
                / (emb.length * emb.airstream_length))

    return None


def airstream_length(mouthpiece: Mouthpiece) -> float:
    if mouthpiece.fipple is not None:
        return mouthpiece.fipple.window_length
    if mouthpiece.embouchure_hole is not None:
        return mouthpiece.embouchure_hole.airstream_length
    # Arbitrary length of plausible magnitude
    return mouthpiece.radius


@dataclass
class Termination:
    """Far end of the bore."""
    flange_diameter: float = 0.0
    bore_diameter: Optional[float] = None
    bore_position: Optional[float] = None
    name: Optional[str] = None

    @property
    def radius(self) -> float:
        return 0.5 * (self.bore_diameter or DEFAULT_BORE_DIAMETER)


# =============================================================================
# Instrument
# =============================================================================

@dataclass
class Instrument:
    """Complete instrument geometry in a single length unit."""
    name: str
    bore_points: list[BorePoint]
    mouthpiece: Mouthpiece = field(default_factory=Mouthpiece)
    holes: list[Hole] = field(default_factory=list)
    termination: Termination = field(default_factory=Termination)
    length_type: str = 'M'
    description: str = ""

    def sorted_bore_points(self) -> list[BorePoint]:
        return sorted(self.bore_points, key=lambda bp: bp.position)

    def sorted_holes(self) -> list[Hole]:
        return sorted(self.holes, key=lambda h: h.position)

    @property
    def bore_length(self) -> float:
        points = self.sorted_bore_points()
        return points[-1].position - points[0].position

    def get_profile(self, n_points: int = 100) -> tuple[np.ndarray, np.ndarray]:
        """
        Bore diameter profile along the instrument.

        Returns:
            x: Position array
            d: Diameter array
        """
        points = self.sorted_bore_points()
        x = np.linspace(points[0].position, points[-1].position, n_points)
        d = np.interp(x, [bp.position for bp in points], [bp.diameter for bp in points])
        return x, d


def _scale_optional(value: Optional[float], multiplier: float) -> Optional[float]:
    return None if value is None else value * multiplier


def convert_instrument(instrument: Instrument, target_type: str = 'M') -> Instrument:
    """Copy of ``instrument`` with all lengths expressed in ``target_type``."""
    multiplier = length_multiplier(instrument.length_type) / length_multiplier(target_type)

    mp = instrument.mouthpiece
    fipple = None
    if mp.fipple is not None:
        f = mp.fipple
        fipple = Fipple(
            window_length=f.window_length * multiplier,
            window_width=f.window_width * multiplier,
            fipple_factor=f.fipple_factor,
            window_height=_scale_optional(f.window_height, multiplier),
            windway_length=_scale_optional(f.windway_length, multiplier),
            windway_height=_scale_optional(f.windway_height, multiplier),
        )
    embouchure = None
    if mp.embouchure_hole is not None:
        e = mp.embouchure_hole
        embouchure = EmbouchureHole(
            length=e.length * multiplier,
            width=e.width * multiplier,
            height=e.height * multiplier,
            airstream_length=e.airstream_length * multiplier,
            airstream_height=e.airstream_height * multiplier,
        )
    mouthpiece = Mouthpiece(
        position=mp.position * multiplier,
        beta=mp.beta,
        fipple=fipple,
        embouchure_hole=embouchure,
        reed=replace(mp.reed) if mp.reed is not None else None,
        bore_diameter=_scale_optional(mp.bore_diameter, multiplier),
        headspace=[BoreSection(s.length * multiplier, s.left_radius * multiplier,
                               s.right_radius * multiplier, s.right_position * multiplier)
                   for s in mp.headspace],
    )

    holes = []
    for h in instrument.holes:
        key = None
        if h.key is not None:
            k = h.key
            key = Key(k.diameter * multiplier, k.hole_diameter * multiplier,
                      k.height * multiplier, k.thickness * multiplier,
                      k.wall_thickness * multiplier, k.chimney_height * multiplier)
        holes.append(Hole(
            position=h.position * multiplier,
            diameter=h.diameter * multiplier,
            height=h.height * multiplier,
            name=h.name,
            key=key,
            bore_diameter=_scale_optional(h.bore_diameter, multiplier),
            inner_curvature_radius=_scale_optional(h.inner_curvature_radius, multiplier),
        ))

    t = instrument.termination
    termination = Termination(
        flange_diameter=t.flange_diameter * multiplier,
        bore_diameter=_scale_optional(t.bore_diameter, multiplier),
        bore_position=_scale_optional(t.bore_position, multiplier),
        name=t.name,
    )

    return Instrument(
        name=instrument.name,
        bore_points=[BorePoint(bp.position * multiplier, bp.diameter * multiplier, bp.name)
                     for bp in instrument.bore_points],
        mouthpiece=mouthpiece,
        holes=holes,
        termination=termination,
        length_type=target_type.upper(),
        description=instrument.description,
    )


def instrument_to_metres(instrument: Instrument) -> Instrument:
    return convert_instrument(instrument, 'M')


def interpolated_bore_diameter(bore_points: list[BorePoint], position: float) -> float:
    """
    Bore diameter at ``position``.

    Linear interpolation between neighbouring points; linear extrapolation
    from the two end points beyond either end of the bore.
    """
    if not bore_points:
        raise ValueError("No bore points provided")

    points = sorted(bore_points, key=lambda bp: bp.position)
    if len(points) == 1:
        return points[0].diameter

    before = None
    after = None
    for point in points:
        if point.position < position:
            before = point
        elif point.position > position:
            after = point
            break
        else:
            return point.diameter

    if before is None:
        first, second = points[0], points[1]
        ratio = (second.position - position) / (second.position - first.position)
        return second.diameter - (second.diameter - first.diameter) * ratio

    if after is None:
        second_last, last = points[-2], points[-1]
        ratio = (position - second_last.position) / (last.position - second_last.position)
        return second_last.diameter - (second_last.diameter - last.diameter) * ratio

    fraction = (after.position - position) / (after.position - before.position)
    return after.diameter * (1 - fraction) + before.diameter * fraction


def build_headspace(instrument: Instrument) -> list[BoreSection]:
    """
    Bore sections between the top of the bore and the mouthpiece.

    The last section ends at the mouthpiece with an interpolated diameter.
    Returns an empty list when there are fewer than two bore points or no
    bore above the mouthpiece.
    """
    points = instrument.sorted_bore_points()
    if len(points) < 2:
        return []

    mouthpiece_position = instrument.mouthpiece.position
    sections = []
    left = points[0]
    if left.position >= mouthpiece_position:
        return []

    for right in points[1:]:
        if right.position >= mouthpiece_position:
            right_diameter = interpolated_bore_diameter(points, mouthpiece_position)
            sections.append(BoreSection(
                length=mouthpiece_position - left.position,
                left_radius=left.diameter / 2,
                right_radius=right_diameter / 2,
                right_position=mouthpiece_position,
            ))
            return sections
        sections.append(BoreSection(
            length=right.position - left.position,
            left_radius=left.diameter / 2,
            right_radius=right.diameter / 2,
            right_position=right.position,
        ))
        left = right

    return sections


def headspace_volume(sections: list[BoreSection]) -> float:
    return sum(s.volume for s in sections)


def validate_instrument(instrument: Instrument) -> list[str]:
    """Return a list of problems with ``instrument``; empty if it is usable."""
    errors = []

    if not instrument.name or not instrument.name.strip():
        errors.append("Enter a name for the instrument.")

    if instrument.length_type.upper() not in LENGTH_UNITS:
        errors.append(f"Unknown length unit '{instrument.length_type}'.")

    if len(instrument.bore_points) < 2:
        errors.append("Instrument must have at least two bore points.")

    for bp in instrument.bore_points:
        if math.isnan(bp.position):
            errors.append("Bore point position must be specified.")
        if math.isnan(bp.diameter):
            errors.append("Bore point diameter must be specified.")
        elif bp.diameter <= 0:
            errors.append("Bore point must have a positive diameter.")

    if len(instrument.bore_points) >= 2 and instrument.bore_length <= 0:
        errors.append("Bore length must not be zero.")

    if math.isnan(instrument.mouthpiece.position):
        errors.append("The mouthpiece/splitting-edge position must be specified.")
    if instrument.mouthpiece.kind == 'unknown':
        errors.append("The type of mouthpiece is not specified.")

    for i, hole in enumerate(instrument.holes):
        label = f"Hole {hole.name}" if hole.name else f"Hole {i + 1}"
        if math.isnan(hole.position):
            errors.append(f"{label} position must be specified.")
        if math.isnan(hole.diameter):
            errors.append(f"{label} diameter must be specified.")
        elif hole.diameter <= 0:
            errors.append(f"{label} diameter must be positive.")
        if math.isnan(hole.height):
            errors.append(f"{label} height must be specified.")
        elif hole.height <= 0:
            errors.append(f"{label} height must be positive.")

    flange = instrument.termination.flange_diameter
    if math.isnan(flange):
        errors.append("Termination flange diameter must be specified.")
    elif flange < 0:
        errors.append("Termination flange diameter must be positive.")

    return errors


def check_hole_positions(instrument: Instrument) -> None:
    """Warn about holes that lie outside the bore between mouthpiece and end."""
    points = instrument.sorted_bore_points()
    if not points:
        return
    top = instrument.mouthpiece.position
    bottom = points[-1].position
    for hole in instrument.holes:
        if not top < hole.position < bottom:
            label = hole.name or f"at {hole.position:g}"
            warnings.warn(f"Hole {label} lies outside the bore between mouthpiece "
                          f"({top:g}) and termination ({bottom:g})")


# =============================================================================
# Convenience builders (dimensions in millimetres)
# =============================================================================

def create_tube(
    length_mm: float,
    diameter_mm: float,
    end_diameter_mm: Optional[float] = None,
    name: str = "Tube",
    mouthpiece: Optional[Mouthpiece] = None,
    flange_diameter_mm: float = 0.0
) -> Instrument:
    """
    Create a plain cylindrical or conical tube with dimensions in mm.

    Args:
        length_mm: Bore length (mm)
        diameter_mm: Bore diameter at the top (mm)
        end_diameter_mm: Bore diameter at the bottom (mm); cylinder if omitted
        name: Instrument name
        mouthpiece: Mouthpiece at position 0 (mm units); bare open end if omitted
        flange_diameter_mm: Termination flange diameter (mm)

    Returns:
        Instrument in millimetres
    """
    if end_diameter_mm is None:
        end_diameter_mm = diameter_mm
    return Instrument(
        name=name,
        bore_points=[BorePoint(0.0, diameter_mm), BorePoint(length_mm, end_diameter_mm)],
        mouthpiece=mouthpiece if mouthpiece is not None else Mouthpiece(position=0.0),
        termination=Termination(flange_diameter=flange_diameter_mm),
        length_type='MM',
    )


def create_whistle(
    length_mm: float,
    diameter_mm: float,
    hole_positions_mm: list[float],
    hole_diameter_mm: float = 7.0,
    hole_height_mm: float = 3.0,
    window_length_mm: float = 5.0,
    window_width_mm: float = 9.0,
    windway_height_mm: float = 1.2,
    name: str = "Whistle"
) -> Instrument:
    """
    Create a cylindrical fipple whistle with equal-sized holes (mm units).

    The mouthpiece sits at position 0, the top of the bore.
    """
    fipple = Fipple(
        window_length=window_length_mm,
        window_width=window_width_mm,
        windway_height=windway_height_mm,
    )
    holes = [
        Hole(position=pos, diameter=hole_diameter_mm, height=hole_height_mm, name=str(i + 1))
        for i, pos in enumerate(sorted(hole_positions_mm))
    ]
    return Instrument(
        name=name,
        bore_points=[BorePoint(0.0, diameter_mm), BorePoint(length_mm, diameter_mm)],
        mouthpiece=Mouthpiece(position=0.0, fipple=fipple),
        holes=holes,
        termination=Termination(flange_diameter=diameter_mm),
        length_type='MM',
    )
