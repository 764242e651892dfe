"""
Bore-section transfer matrices.
"""

from typing import Protocol

from .geometry import BorePoint, BoreSection
from .transfer_matrix import TransferMatrix
from .tube import calc_cone_matrix


class BoreSectionCalculator(Protocol):
    def calc_transfer_matrix(self, section: BoreSection, wave_number: float,
                             params) -> TransferMatrix:
        ...


class SimpleBoreSectionCalculator:
    """Every section is a (possibly degenerate) cone."""

    def calc_transfer_matrix(self, section: BoreSection, wave_number: float,
                             params) -> TransferMatrix:
        return calc_cone_matrix(wave_number, section.length, section.left_radius,
                                section.right_radius, params)


def bore_sections_from_points(bore_points: list[BorePoint]) -> list[BoreSection]:
    """One section between each pair of consecutive (sorted) bore points."""
    if len(bore_points) < 2:
        return []
    points = sorted(bore_points, key=lambda bp: bp.position)
    return [
        BoreSection(
            length=right.position - left.position,
            left_radius=left.diameter / 2,
            right_radius=right.diameter / 2,
            right_position=right.position,
        )
        for left, right in zip(points[:-1], points[1:])
    ]


def calc_bore_transfer_matrix(sections: list[BoreSection], wave_number: float, params,
                              calculator: BoreSectionCalculator = None) -> TransferMatrix:
    """Product of the section matrices, top of the bore first."""
    if calculator is None:
        calculator = SimpleBoreSectionCalculator()
    result = TransferMatrix.identity()
    for section in sections:
        result = result.multiply(calculator.calc_transfer_matrix(section, wave_number, params))
    return result
