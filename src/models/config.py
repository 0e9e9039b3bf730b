"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

DEFAULT_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"
DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    warmup_frames: int = 2

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            warmup_frames=d.get("warmup_frames", 2),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "warmup_frames": self.warmup_frames,
        }


@dataclass
class CaptureConfig:
    """Capture loop cadence and snapshot options."""
    interval_ms: int = 4000
    stats_log_interval: float = 60.0
    save_snapshots: bool = False
    snapshot_dir: str = "data/snapshots"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CaptureConfig":
        return cls(
            interval_ms=d.get("interval_ms", 4000),
            stats_log_interval=d.get("stats_log_interval", 60.0),
            save_snapshots=d.get("save_snapshots", False),
            snapshot_dir=d.get("snapshot_dir", "data/snapshots"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval_ms": self.interval_ms,
            "stats_log_interval": self.stats_log_interval,
            "save_snapshots": self.save_snapshots,
            "snapshot_dir": self.snapshot_dir,
        }


@dataclass
class MotionConfig:
    """Motion gate configuration. Threshold is an absolute pixel count."""
    threshold: int = 2_000_000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MotionConfig":
        return cls(threshold=d.get("threshold", 2_000_000))

    def to_dict(self) -> Dict[str, Any]:
        return {"threshold": self.threshold}


@dataclass
class ClassifierConfig:
    """Remote material classifier configuration."""
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    temperature: float = 0.0
    timeout_s: float = 30.0
    api_key: Optional[str] = None
    api_key_env: str = "GROQ_API"
    secrets_file: Optional[str] = None
    fresh_capture: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ClassifierConfig":
        return cls(
            endpoint=d.get("endpoint", DEFAULT_ENDPOINT),
            model=d.get("model", DEFAULT_MODEL),
            temperature=d.get("temperature", 0.0),
            timeout_s=d.get("timeout_s", 30.0),
            api_key=d.get("api_key"),
            api_key_env=d.get("api_key_env", "GROQ_API"),
            secrets_file=d.get("secrets_file"),
            fresh_capture=d.get("fresh_capture", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        # api_key is never serialized
        return {
            "endpoint": self.endpoint,
            "model": self.model,
            "temperature": self.temperature,
            "timeout_s": self.timeout_s,
            "api_key_env": self.api_key_env,
            "secrets_file": self.secrets_file,
            "fresh_capture": self.fresh_capture,
        }


@dataclass
class SerialConfig:
    """Serial telemetry configuration."""
    enabled: bool = True
    port: str = "/dev/ttyUSB0"
    baudrate: int = 9600
    delimiter: str = "\r\n"
    encoding: str = "utf-8"
    read_timeout: float = 1.0
    reconnect_delay: float = 5.0
    max_line_bytes: int = 4096

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SerialConfig":
        return cls(
            enabled=d.get("enabled", True),
            port=d.get("port", "/dev/ttyUSB0"),
            baudrate=d.get("baudrate", 9600),
            delimiter=d.get("delimiter", "\r\n"),
            encoding=d.get("encoding", "utf-8"),
            read_timeout=d.get("read_timeout", 1.0),
            reconnect_delay=d.get("reconnect_delay", 5.0),
            max_line_bytes=d.get("max_line_bytes", 4096),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "port": self.port,
            "baudrate": self.baudrate,
            "delimiter": self.delimiter,
            "encoding": self.encoding,
            "read_timeout": self.read_timeout,
            "reconnect_delay": self.reconnect_delay,
            "max_line_bytes": self.max_line_bytes,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    motion: MotionConfig = field(default_factory=MotionConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    serial: SerialConfig = field(default_factory=SerialConfig)
    log_path: str = "logs/bin_monitor.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            capture=CaptureConfig.from_dict(d.get("capture", {}) or {}),
            motion=MotionConfig.from_dict(d.get("motion", {}) or {}),
            classifier=ClassifierConfig.from_dict(d.get("classifier", {}) or {}),
            serial=SerialConfig.from_dict(d.get("serial", {}) or {}),
            log_path=d.get("log_path", "logs/bin_monitor.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "camera": self.camera.to_dict(),
            "capture": self.capture.to_dict(),
            "motion": self.motion.to_dict(),
            "classifier": self.classifier.to_dict(),
            "serial": self.serial.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
