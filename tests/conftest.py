"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.frame import Frame  # noqa: E402


def _make_frame(width=20, height=10, changed=0, value=0, channels=3, frame_index=0):
    """Build a frame whose first `changed` pixels (row-major) differ from `value`."""
    shape = (height, width, channels) if channels > 1 else (height, width)
    pixels = np.full(shape, value, dtype=np.uint8)
    if changed:
        flat = pixels.reshape(height * width, -1)
        flat[:changed, 0] = (value + 1) % 256
    return Frame.from_numpy(pixels, timestamp=0.0, frame_index=frame_index, source="test")


@pytest.fixture
def make_frame():
    """Factory for synthetic frames."""
    return _make_frame


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]

capture:
  interval_ms: 4000

motion:
  threshold: 2000000

classifier:
  model: "meta-llama/llama-4-scout-17b-16e-instruct"
  timeout_s: 30

serial:
  port: "/dev/ttyUSB0"
  baudrate: 9600

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [640, 480],
        },
        "capture": {
            "interval_ms": 4000,
        },
        "motion": {
            "threshold": 2000000,
        },
        "classifier": {
            "model": "meta-llama/llama-4-scout-17b-16e-instruct",
            "timeout_s": 30,
        },
        "serial": {
            "port": "/dev/ttyUSB0",
            "baudrate": 9600,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
