"""
Capture loop for the bin monitor.

One cycle is: capture a frame, compare it with the previous one, classify
the bin contents if enough pixels changed, remember the frame. Cycles never
overlap: the wait for the next tick starts only after the current cycle,
including any classification request, has returned.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import cv2

from classification.base import Classifier
from detection.differ import DimensionMismatch
from detection.motion_gate import MotionGate
from models.classification import ClassificationLabel
from models.frame import Frame
from models.motion import MotionMeasurement
from models.state import PipelineState
from observation.base import CaptureFailure, FrameSource


class CycleStage(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    COMPARING = "comparing"
    CLASSIFYING = "classifying"


@dataclass
class CaptureLoopConfig:
    """
    Configuration for the capture loop.

    Attributes:
        interval_s: Pause between the end of one cycle and the start of the next.
        stats_log_interval: Seconds between stats log messages.
        fresh_capture: On motion, classify a newly captured frame instead of
            the one that was compared.
        save_snapshots: Write every frame sent for classification to snapshot_dir.
        snapshot_dir: Directory for snapshots.
    """
    interval_s: float = 4.0
    stats_log_interval: float = 60.0
    fresh_capture: bool = False
    save_snapshots: bool = False
    snapshot_dir: str = "data/snapshots"


@dataclass
class CycleResult:
    """What happened during one cycle."""
    stages: List[CycleStage] = field(default_factory=lambda: [CycleStage.IDLE])
    frame: Optional[Frame] = None
    measurement: Optional[MotionMeasurement] = None
    triggered: bool = False
    label: Optional[ClassificationLabel] = None
    dimension_mismatch: bool = False
    unexpected_error: bool = False
    error: Optional[str] = None

    def enter(self, stage: CycleStage) -> None:
        self.stages.append(stage)

    @property
    def captured(self) -> bool:
        return self.frame is not None


@dataclass
class PipelineStats:
    """Runtime statistics for the capture loop."""
    cycle_count: int = 0
    capture_failures: int = 0
    unexpected_errors: int = 0
    dimension_mismatches: int = 0
    motion_events: int = 0
    label_counts: Dict[str, int] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def record(self, result: CycleResult) -> None:
        self.cycle_count += 1
        if result.unexpected_error:
            self.unexpected_errors += 1
        elif not result.captured:
            self.capture_failures += 1
        if result.dimension_mismatch:
            self.dimension_mismatches += 1
        if result.triggered:
            self.motion_events += 1
        if result.label is not None:
            self.label_counts[result.label.value] = self.label_counts.get(result.label.value, 0) + 1


def save_snapshot(frame: Frame, snapshot_dir: str) -> Optional[str]:
    """Write a frame as PNG; returns the path, or None if writing failed."""
    if not os.path.exists(snapshot_dir):
        os.makedirs(snapshot_dir)
    timestamp = datetime.fromtimestamp(frame.timestamp).strftime("%Y%m%d_%H%M%S_%f")
    path = os.path.join(snapshot_dir, f"bin_{timestamp}.png")
    if not cv2.imwrite(path, frame.pixels):
        logging.warning(f"Failed to write snapshot: {path}")
        return None
    logging.debug(f"Snapshot saved: {path}")
    return path


def _capture(source: FrameSource) -> Frame:
    if not source.is_open:
        source.open()
    return source.capture()


def run_cycle(
    state: PipelineState,
    source: FrameSource,
    gate: MotionGate,
    classifier: Classifier,
    config: Optional[CaptureLoopConfig] = None,
) -> Tuple[PipelineState, CycleResult]:
    """
    Run one capture cycle and return the updated state.

    - Capture failure: the previous frame is kept, nothing else happens.
    - Frame size change: the comparison is skipped and the new frame becomes
      the reference for the next cycle.
    - Motion: the classifier is called and its label recorded before the
      new frame is remembered.
    """
    config = config or CaptureLoopConfig()
    state = state.begin_cycle()
    result = CycleResult()

    result.enter(CycleStage.CAPTURING)
    logging.debug("Capturing image from webcam...")
    try:
        frame = _capture(source)
    except CaptureFailure as e:
        logging.error(f"Error capturing webcam: {e}")
        result.error = str(e)
        result.enter(CycleStage.IDLE)
        return state.end_cycle(), result
    result.frame = frame

    result.enter(CycleStage.COMPARING)
    try:
        triggered, measurement = gate.check(frame, state.previous_frame)
    except DimensionMismatch as e:
        logging.error(f"Skipping comparison: {e}")
        result.dimension_mismatch = True
        result.error = str(e)
        result.enter(CycleStage.IDLE)
        return state.end_cycle(frame), result
    result.measurement = measurement
    result.triggered = triggered

    if triggered:
        result.enter(CycleStage.CLASSIFYING)
        result.label = _classify(frame, source, classifier, config)

    result.enter(CycleStage.IDLE)
    return state.end_cycle(frame), result


def _classify(
    frame: Frame,
    source: FrameSource,
    classifier: Classifier,
    config: CaptureLoopConfig,
) -> Optional[ClassificationLabel]:
    target = frame
    if config.fresh_capture:
        try:
            target = _capture(source)
        except CaptureFailure as e:
            logging.error(f"No image captured for classification: {e}")
            return None

    if config.save_snapshots:
        try:
            save_snapshot(target, config.snapshot_dir)
        except (OSError, cv2.error) as e:
            logging.warning(f"Failed to save snapshot: {e}")

    label = classifier.classify(target)
    if label is ClassificationLabel.UNKNOWN:
        logging.warning("Classification failed, label is unknown")
    elif label is ClassificationLabel.NONE:
        logging.info("Bin is empty (classified as none)")
    return label


class CaptureLoop:
    """
    Periodic capture loop owning the PipelineState.

    Example:
        loop = CaptureLoop(source, MotionGate(2_000_000), classifier, CaptureLoopConfig())
        loop.run()        # blocks until stop() or Ctrl-C
    """

    def __init__(
        self,
        source: FrameSource,
        gate: MotionGate,
        classifier: Classifier,
        config: CaptureLoopConfig,
    ):
        self.source = source
        self.gate = gate
        self.classifier = classifier
        self.config = config
        self.state = PipelineState()
        self.stats = PipelineStats()
        self._stop_event = threading.Event()
        self._callbacks: List[Callable[[CycleResult], None]] = []

    def add_callback(self, callback: Callable[[CycleResult], None]) -> None:
        """
        Add a callback to be called after each cycle.

        Args:
            callback: Function taking the CycleResult.
        """
        self._callbacks.append(callback)

    def tick(self) -> CycleResult:
        """Run exactly one cycle and update the owned state."""
        try:
            self.state, result = run_cycle(
                self.state, self.source, self.gate, self.classifier, self.config
            )
        except Exception as e:
            logging.error(f"Error in capture cycle: {e}")
            self.state = self.state.end_cycle()
            result = CycleResult(error=str(e), unexpected_error=True)

        self.stats.record(result)

        for callback in self._callbacks:
            try:
                callback(result)
            except Exception as e:
                logging.warning(f"Callback error: {e}")
        return result

    def run(self, max_cycles: Optional[int] = None) -> None:
        """
        Run cycles until stop() is called, Ctrl-C, or max_cycles is reached.

        The source is opened lazily by the first cycle and closed on exit.
        """
        self._stop_event.clear()
        self.stats = PipelineStats()
        logging.info(
            f"Capture loop started: source={self.source.source_id}, "
            f"interval={self.config.interval_s}s, threshold={self.gate.threshold}"
        )

        try:
            while not self._stop_event.is_set():
                self.tick()
                if max_cycles is not None and self.stats.cycle_count >= max_cycles:
                    break
                self._handle_periodic_tasks()
                self._stop_event.wait(self.config.interval_s)
        except KeyboardInterrupt:
            logging.info("Capture loop interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the loop to stop; an in-flight cycle is allowed to finish."""
        self._stop_event.set()

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Capture stats: cycles={self.stats.cycle_count}, "
                f"capture_failures={self.stats.capture_failures}, "
                f"unexpected_errors={self.stats.unexpected_errors}, "
                f"motion_events={self.stats.motion_events}, "
                f"labels={self.stats.label_counts}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
        logging.info("Capture loop stopped")


def create_loop_from_config(
    config: Dict[str, Any],
    source: FrameSource,
    classifier: Classifier,
) -> CaptureLoop:
    """
    Factory function to create a CaptureLoop from the config dict.

    Args:
        config: Full application config dict.
        source: Frame source for the bin camera.
        classifier: Material classifier.
    """
    capture_cfg = config.get("capture", {}) or {}
    motion_cfg = config.get("motion", {}) or {}
    classifier_cfg = config.get("classifier", {}) or {}

    loop_config = CaptureLoopConfig(
        interval_s=capture_cfg.get("interval_ms", 4000) / 1000.0,
        stats_log_interval=capture_cfg.get("stats_log_interval", 60.0),
        fresh_capture=classifier_cfg.get("fresh_capture", False),
        save_snapshots=capture_cfg.get("save_snapshots", False),
        snapshot_dir=capture_cfg.get("snapshot_dir", "data/snapshots"),
    )
    gate = MotionGate(motion_cfg.get("threshold", 2_000_000))

    resolution = (config.get("camera", {}) or {}).get("resolution")
    if resolution and gate.threshold >= resolution[0] * resolution[1]:
        logging.warning(
            f"motion.threshold={gate.threshold} is not below the frame size "
            f"{resolution[0]}x{resolution[1]}; motion will never be detected"
        )
    return CaptureLoop(source, gate, classifier, loop_config)
