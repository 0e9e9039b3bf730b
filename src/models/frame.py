"""
Frame model for captured camera images.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True, eq=False)
class Frame:
    """
    One captured raster image.

    The pixel buffer is a numpy array of shape (height, width) or
    (height, width, channels). The Frame keeps a read-only private copy, so
    the caller's array stays writable and the Frame can be shared between
    cycles. Frames compare by identity.

    Attributes:
        pixels: Raw pixel data (BGR for OpenCV sources).
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when the frame was captured.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the camera source.
    """
    pixels: np.ndarray = field(repr=False)
    width: int
    height: int
    timestamp: float = field(default_factory=time.time)
    frame_index: int = 0
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Frame dimensions must be positive, got {self.width}x{self.height}")
        if self.pixels.ndim not in (2, 3):
            raise ValueError(f"Frame pixels must be 2D or 3D, got shape {self.pixels.shape}")
        if self.pixels.shape[:2] != (self.height, self.width):
            raise ValueError(
                f"Pixel buffer shape {self.pixels.shape[:2]} does not match "
                f"{self.height}x{self.width}"
            )
        pixels = np.array(self.pixels, copy=True)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_numpy(
        cls,
        pixels: np.ndarray,
        timestamp: Optional[float] = None,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "Frame":
        """Create a Frame from a numpy array, taking width and height from its shape."""
        h, w = pixels.shape[:2]
        return cls(
            pixels=pixels,
            width=w,
            height=h,
            timestamp=timestamp if timestamp is not None else time.time(),
            frame_index=frame_index,
            source=source,
        )

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    @property
    def total_pixels(self) -> int:
        return self.width * self.height

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else self.pixels.shape[2]
