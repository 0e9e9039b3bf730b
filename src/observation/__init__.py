"""
Observation layer for the bin camera.

This layer abstracts where frames come from (USB camera, video file) from the
capture loop. Each source implements the FrameSource interface and returns
Frame objects, or raises CaptureFailure.
"""

from typing import Any, Dict

from .base import CaptureFailure, FrameSource, SourceConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(camera_cfg: Dict[str, Any], source_id: str = "bin-camera") -> FrameSource:
    """Create the frame source selected by camera.backend."""
    backend = camera_cfg.get("backend", "opencv")
    if backend == "opencv":
        return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id))
    raise ValueError(f"Unknown camera backend: {backend}")


__all__ = [
    "CaptureFailure",
    "FrameSource",
    "SourceConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "create_source_from_config",
]
