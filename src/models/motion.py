"""
MotionMeasurement model produced by the frame differ.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MotionMeasurement:
    """
    Result of comparing two frames of the same size.

    Attributes:
        changed_count: Number of pixel positions whose value differs.
        total_pixels: Number of pixel positions compared (width * height).
    """
    changed_count: int
    total_pixels: int

    @property
    def changed_fraction(self) -> float:
        """Fraction of pixels changed, 0.0-1.0."""
        if self.total_pixels == 0:
            return 0.0
        return self.changed_count / self.total_pixels

    @property
    def percent(self) -> float:
        return self.changed_fraction * 100.0
