"""
Motion detection between consecutive frames.
"""

from .differ import DimensionMismatch, diff
from .motion_gate import MotionGate, evaluate, measure

__all__ = ["DimensionMismatch", "diff", "MotionGate", "evaluate", "measure"]
