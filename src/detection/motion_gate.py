"""
Motion gate: decides whether a new frame differs enough from the last one
to warrant a classification.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from models.frame import Frame
from models.motion import MotionMeasurement
from .differ import diff


def evaluate(current: Frame, previous: Optional[Frame], threshold: int) -> bool:
    """
    Return True when more than `threshold` pixels changed.

    The first observation of a session (no previous frame) never triggers.
    May raise DimensionMismatch.
    """
    triggered, _ = measure(current, previous, threshold)
    return triggered


def measure(
    current: Frame, previous: Optional[Frame], threshold: int
) -> Tuple[bool, Optional[MotionMeasurement]]:
    """Like evaluate(), but also return the measurement (None on first frame)."""
    if previous is None:
        return False, None
    measurement = diff(current, previous)
    return measurement.changed_count > threshold, measurement


class MotionGate:
    """
    Motion gate with a fixed pixel-count threshold.

    The changed fraction is only reported in logs; the trigger decision
    uses the absolute count.
    """

    def __init__(self, threshold: int):
        if threshold < 0:
            raise ValueError(f"threshold must be non-negative, got {threshold}")
        self.threshold = threshold

    def check(
        self, current: Frame, previous: Optional[Frame]
    ) -> Tuple[bool, Optional[MotionMeasurement]]:
        triggered, measurement = measure(current, previous, self.threshold)
        if measurement is None:
            logging.debug("No previous frame, skipping motion check")
        elif triggered:
            logging.info(
                f"Motion detected! {measurement.changed_count} pixels changed "
                f"({measurement.percent:.2f}%)"
            )
        else:
            logging.debug(
                f"No motion: {measurement.changed_count} pixels changed "
                f"({measurement.percent:.2f}%), threshold={self.threshold}"
            )
        return triggered, measurement

    def evaluate(self, current: Frame, previous: Optional[Frame]) -> bool:
        triggered, _ = self.check(current, previous)
        return triggered
