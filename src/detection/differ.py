"""
Exact pixel difference between two frames.

A position counts as changed when any channel of its raw value differs.
There is no tolerance: any visible change counts.
"""

from __future__ import annotations

import numpy as np

from models.frame import Frame
from models.motion import MotionMeasurement


class DimensionMismatch(RuntimeError):
    """Raised when two frames of different size are compared."""

    def __init__(self, a: Frame, b: Frame):
        super().__init__(
            f"Cannot compare frames of different size: "
            f"{a.width}x{a.height}x{a.channels} vs {b.width}x{b.height}x{b.channels}"
        )
        self.sizes = (a.size, b.size)


def diff(a: Frame, b: Frame) -> MotionMeasurement:
    """
    Count the pixel positions at which `a` and `b` differ.

    Raises:
        DimensionMismatch: If width, height or channel layout differ.
    """
    if a.width != b.width or a.height != b.height or a.pixels.shape != b.pixels.shape:
        raise DimensionMismatch(a, b)

    changed = a.pixels != b.pixels
    if changed.ndim == 3:
        changed = changed.any(axis=2)

    return MotionMeasurement(
        changed_count=int(np.count_nonzero(changed)),
        total_pixels=a.total_pixels,
    )
