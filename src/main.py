"""
Bin monitor: motion-triggered material classification for a sorting bin.

Captures a frame of the bin every few seconds, and when enough pixels have
changed since the previous frame, asks a remote vision model whether the new
object is plastic, organic or metal. Telemetry lines from the bin's
microcontroller are logged alongside.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-serial: Do not open the serial telemetry port
    --once: Run a single capture cycle and exit
"""

import os
import sys
import argparse
import logging
import signal
from typing import Any, Dict, Optional, Tuple

import yaml

from classification import GroqClassifier, GroqClassifierConfig, inject_api_credentials
from models.config import Config
from observation import create_source_from_config
from ops.logging import setup_logging
from pipeline import create_loop_from_config
from serial_io import SerialListener, SerialListenerConfig

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `default.yaml` next to config_path (checked in)
    - `config.yaml` next to config_path (local overrides)
    - config_path itself, when it is a different file
    """
    config_dir = os.path.dirname(config_path)
    local_overrides_path = os.path.join(config_dir, "config.yaml")
    try:
        merged = _deep_merge(
            _read_yaml(os.path.join(config_dir, "default.yaml")),
            _read_yaml(local_overrides_path),
        )
        if os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))
        return merged
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ["camera", "capture", "motion", "classifier", "log_path", "log_level"]
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get("camera") or {}
    if camera.get("backend", "opencv") != "opencv":
        return False, "camera.backend must be: opencv"
    device_id = camera.get("device_id", 0)
    if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
        return False, "camera.device_id must be an integer (index) or string (path)"
    if isinstance(device_id, int) and device_id < 0:
        return False, "camera.device_id integer must be non-negative"
    if "resolution" not in camera:
        return False, "Missing camera.resolution"
    resolution = camera["resolution"]
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(_is_positive_int(x) for x in resolution):
        return False, "camera.resolution values must be positive integers"

    # Capture cadence
    capture = config.get("capture") or {}
    if not _is_positive_int(capture.get("interval_ms", 4000)):
        return False, "capture.interval_ms must be a positive integer"

    # Motion gate
    motion = config.get("motion") or {}
    threshold = motion.get("threshold", 2_000_000)
    if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold < 0:
        return False, "motion.threshold must be a non-negative integer (pixel count)"

    # Classifier
    classifier = config.get("classifier") or {}
    timeout_s = classifier.get("timeout_s", 30.0)
    if isinstance(timeout_s, bool) or not isinstance(timeout_s, (int, float)) or timeout_s <= 0:
        return False, "classifier.timeout_s must be a positive number"
    if "model" in classifier and (not isinstance(classifier["model"], str) or not classifier["model"]):
        return False, "classifier.model must be a non-empty string"

    # Serial (optional)
    serial_cfg = config.get("serial") or {}
    if serial_cfg:
        if "port" in serial_cfg and not isinstance(serial_cfg["port"], str):
            return False, "serial.port must be a string"
        if "baudrate" in serial_cfg and not _is_positive_int(serial_cfg["baudrate"]):
            return False, "serial.baudrate must be a positive integer"

    if config["log_level"] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def _install_signal_handlers(loop) -> None:
    def _handle(signum, frame):
        logging.info(f"Received signal {signum}, stopping")
        loop.stop()

    signal.signal(signal.SIGTERM, _handle)


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description="Bin Monitor - motion-triggered material classification")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to configuration file")
    parser.add_argument("--no-serial", action="store_true",
                        help="Do not start the serial telemetry listener")
    parser.add_argument("--once", action="store_true",
                        help="Run a single capture cycle and exit")
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    app_config = Config.from_dict(config)
    setup_logging(app_config.log_path, app_config.log_level)
    logging.info("Starting Bin Monitor")
    logging.debug(f"Effective configuration: {app_config.to_dict()}")

    try:
        inject_api_credentials(config["classifier"])
        classifier = GroqClassifier(GroqClassifierConfig.from_classifier_config(config["classifier"]))
    except (OSError, yaml.YAMLError, ValueError) as e:
        logging.error(f"Classifier setup failed: {e}")
        sys.exit(1)

    source = create_source_from_config(config["camera"])
    loop = create_loop_from_config(config, source, classifier)

    listener = None
    if not args.no_serial and app_config.serial.enabled:
        listener = SerialListener(SerialListenerConfig.from_serial_config(app_config.serial.to_dict()))
        listener.start()
    else:
        logging.info("Serial listener disabled")

    _install_signal_handlers(loop)

    try:
        loop.run(max_cycles=1 if args.once else None)
    finally:
        if listener is not None:
            listener.stop()
        classifier.close()
        logging.info("Bin Monitor stopped")


if __name__ == "__main__":
    main()
