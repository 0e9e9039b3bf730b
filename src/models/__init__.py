"""
Typed models for the bin monitor application.
"""

from .frame import Frame
from .motion import MotionMeasurement
from .classification import ClassificationLabel
from .state import PipelineState
from .config import (
    Config,
    CameraConfig,
    CaptureConfig,
    MotionConfig,
    ClassifierConfig,
    SerialConfig,
)

__all__ = [
    # Frame
    "Frame",
    # Motion
    "MotionMeasurement",
    # Classification
    "ClassificationLabel",
    # Pipeline
    "PipelineState",
    # Config
    "Config",
    "CameraConfig",
    "CaptureConfig",
    "MotionConfig",
    "ClassifierConfig",
    "SerialConfig",
]
