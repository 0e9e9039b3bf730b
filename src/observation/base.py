"""
FrameSource interface for the bin camera.

The capture loop only needs one thing from a camera: a single frame on
request, or an explicit failure. Sources implementing this contract:
- USB/CSI cameras through OpenCV
- Video files and image sequences (handy for replaying a session)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.frame import Frame


class CaptureFailure(RuntimeError):
    """Raised when a frame cannot be acquired from the camera."""


@dataclass
class SourceConfig:
    """
    Base configuration for frame sources.

    Attributes:
        source_id: Identifier for this source (e.g., "bin-camera").
        resolution: Fixed resolution as (width, height). None = use source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class FrameSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call capture() once per cycle
        4. Call close() to release resources

    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            frame = source.capture()
    """

    def __init__(self, config: SourceConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to capture."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames captured since open."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the frame source.

        Raises:
            CaptureFailure: If the device cannot be opened.
        """

    @abstractmethod
    def capture(self) -> Frame:
        """
        Capture one frame.

        Raises:
            CaptureFailure: If no frame could be acquired.
        """

    @abstractmethod
    def close(self) -> None:
        """
        Release the device. Safe to call multiple times.
        """

    def __enter__(self) -> "FrameSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
