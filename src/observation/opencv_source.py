"""
OpenCV-based frame source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- Video files (device_id as file path), mostly for replaying recorded sessions
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import Frame
from .base import CaptureFailure, FrameSource, SourceConfig


@dataclass
class OpenCVSourceConfig(SourceConfig):
    """
    Configuration for OpenCV-based frame sources.

    Attributes:
        device_id: Camera index (int) or file path (str).
        warmup_frames: Frames grabbed and discarded before each capture.
            The driver buffers frames between slow captures; flushing them
            makes the captured frame current.
        max_retries: Maximum attempts when opening the device.
    """
    device_id: Union[int, str] = 0
    warmup_frames: int = 2
    max_retries: int = 3

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the camera config dict.

        Args:
            camera_cfg: Camera configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        resolution = camera_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)

        return cls(
            source_id=source_id,
            resolution=resolution,
            device_id=camera_cfg.get("device_id", 0),
            warmup_frames=camera_cfg.get("warmup_frames", 2),
            max_retries=camera_cfg.get("max_retries", 3),
        )


class OpenCVSource(FrameSource):
    """
    Frame source wrapping cv2.VideoCapture.

    Every frame is delivered at the configured resolution; frames the
    driver returns at another size are resized, so consecutive frames are
    always comparable.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(640, 480))
        with OpenCVSource(config) as source:
            frame = source.capture()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._camera = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._camera.device_id

    @property
    def is_file(self) -> bool:
        """True when device_id names an existing video file."""
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        """Open the bin camera, retrying with backoff."""
        if self._is_open:
            return

        self._connect()
        self._is_open = True
        self._frame_index = 0

        logging.info(
            f"Bin camera ready: source_id={self.source_id}, "
            f"device={self.device_id}, resolution={self._camera.resolution}"
        )

    def _connect(self) -> None:
        """(Re)create the VideoCapture; raises CaptureFailure when every attempt fails."""
        self._release()
        attempts = max(1, self._camera.max_retries)
        for attempt in range(attempts):
            if attempt:
                backoff = min(2 ** attempt, 10)
                logging.info(f"Camera open attempt {attempt + 1}/{attempts} in {backoff}s")
                time.sleep(backoff)

            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._cap = cap
                self._request_resolution()
                return
            cap.release()
            logging.warning(f"Could not open camera {self.device_id}")

        raise CaptureFailure(f"Failed to open camera {self.device_id} after {attempts} attempts")

    def _request_resolution(self) -> None:
        if not isinstance(self.device_id, int) or not self._camera.resolution:
            return
        width, height = self._camera.resolution
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        logging.info(
            f"Camera reports {self._cap.get(cv2.CAP_PROP_FRAME_WIDTH):.0f}x"
            f"{self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT):.0f} (requested {width}x{height})"
        )

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def capture(self) -> Frame:
        """Capture one frame, reopening the device once if the read fails."""
        if not self._is_open or self._cap is None:
            raise CaptureFailure(f"Source {self.source_id} is not open")

        pixels = self._read()
        if pixels is None:
            if self.is_file:
                raise CaptureFailure("End of video file reached")
            logging.warning("Camera read failed, reconnecting")
            try:
                self._connect()
            except CaptureFailure:
                # closed, so the next cycle goes through open() again
                self._is_open = False
                raise
            pixels = self._read()
            if pixels is None:
                raise CaptureFailure(f"Failed to read frame from device {self.device_id}")

        pixels = self._fit_resolution(pixels)
        self._frame_index += 1
        height, width = pixels.shape[:2]
        return Frame(
            pixels=pixels,
            width=width,
            height=height,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _read(self) -> Optional[np.ndarray]:
        if self._cap is None or not self._cap.isOpened():
            return None
        if not self.is_file:
            # drop frames buffered since the last tick
            for _ in range(self._camera.warmup_frames):
                self._cap.grab()
        ok, pixels = self._cap.read()
        return pixels if ok and pixels is not None else None

    def _fit_resolution(self, pixels: np.ndarray) -> np.ndarray:
        if not self._camera.resolution:
            return pixels
        width, height = self._camera.resolution
        if pixels.shape[1] == width and pixels.shape[0] == height:
            return pixels
        logging.debug(f"Resizing frame from {pixels.shape[1]}x{pixels.shape[0]} to {width}x{height}")
        return cv2.resize(pixels, (width, height), interpolation=cv2.INTER_AREA)

    def close(self) -> None:
        """Release the camera. Safe to call more than once."""
        self._release()
        if self._is_open:
            logging.info(f"Bin camera released: source_id={self.source_id}")
        self._is_open = False
