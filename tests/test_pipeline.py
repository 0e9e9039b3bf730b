"""
Tests for the capture loop.
"""

import threading
import time

import pytest

from detection.motion_gate import MotionGate
from models.classification import ClassificationLabel
from models.frame import Frame
from models.state import PipelineState
from observation.base import CaptureFailure, FrameSource, SourceConfig
from pipeline.engine import (
    CaptureLoop,
    CaptureLoopConfig,
    CycleStage,
    create_loop_from_config,
    run_cycle,
    save_snapshot,
)


class ScriptedSource(FrameSource):
    """Source returning scripted frames; a CaptureFailure entry is raised instead."""

    def __init__(self, frames, events=None):
        super().__init__(SourceConfig(source_id="scripted"))
        self._frames = list(frames)
        self.events = events if events is not None else []
        self.open_count = 0

    def open(self) -> None:
        self._is_open = True
        self.open_count += 1

    def capture(self) -> Frame:
        self.events.append("capture")
        if not self._frames:
            raise CaptureFailure("script exhausted")
        item = self._frames.pop(0)
        if isinstance(item, Exception):
            raise item
        self._frame_index += 1
        return item

    def close(self) -> None:
        self._is_open = False


class RecordingClassifier:
    """Classifier returning a fixed label and recording call order."""

    def __init__(self, label=ClassificationLabel.PLASTIC, events=None, delay=0.0):
        self.label = label
        self.events = events if events is not None else []
        self.frames = []
        self.delay = delay

    def classify(self, frame):
        self.events.append("classify:start")
        self.frames.append(frame)
        if self.delay:
            time.sleep(self.delay)
        self.events.append("classify:end")
        return self.label


THRESHOLD = 100


@pytest.fixture
def frames(make_frame):
    """Three ticks: 1->2 changes 50 pixels, 2->3 changes 150 pixels."""
    f1 = make_frame(width=40, height=20, frame_index=1)
    f2 = make_frame(width=40, height=20, changed=50, frame_index=2)
    pixels = f2.pixels.copy()
    pixels.reshape(-1, 3)[200:350, 1] = 9
    f3 = Frame.from_numpy(pixels, frame_index=3)
    return f1, f2, f3


class TestRunCycle:
    def test_first_cycle_only_remembers_frame(self, frames):
        source = ScriptedSource([frames[0]])
        classifier = RecordingClassifier()

        state, result = run_cycle(PipelineState(), source, MotionGate(THRESHOLD), classifier)

        assert state.previous_frame is frames[0]
        assert state.cycle_in_progress is False
        assert result.measurement is None
        assert result.triggered is False
        assert classifier.frames == []
        assert result.stages == [
            CycleStage.IDLE, CycleStage.CAPTURING, CycleStage.COMPARING, CycleStage.IDLE,
        ]

    def test_opens_source_lazily(self, frames):
        source = ScriptedSource([frames[0]])
        run_cycle(PipelineState(), source, MotionGate(THRESHOLD), RecordingClassifier())
        assert source.open_count == 1

    def test_no_motion_updates_previous(self, frames):
        source = ScriptedSource([frames[1]])
        state, result = run_cycle(
            PipelineState(previous_frame=frames[0]), source, MotionGate(THRESHOLD), RecordingClassifier()
        )
        assert result.measurement.changed_count == 50
        assert result.triggered is False
        assert result.label is None
        assert state.previous_frame is frames[1]

    def test_motion_classifies_then_updates_previous(self, frames):
        source = ScriptedSource([frames[2]])
        classifier = RecordingClassifier(ClassificationLabel.METAL)

        state, result = run_cycle(
            PipelineState(previous_frame=frames[1]), source, MotionGate(THRESHOLD), classifier
        )

        assert result.measurement.changed_count == 150
        assert result.triggered is True
        assert result.label is ClassificationLabel.METAL
        assert classifier.frames == [frames[2]]
        assert state.previous_frame is frames[2]
        assert CycleStage.CLASSIFYING in result.stages

    def test_unknown_label_still_updates_previous(self, frames):
        source = ScriptedSource([frames[2]])
        classifier = RecordingClassifier(ClassificationLabel.UNKNOWN)

        state, result = run_cycle(
            PipelineState(previous_frame=frames[1]), source, MotionGate(THRESHOLD), classifier
        )

        assert result.label is ClassificationLabel.UNKNOWN
        assert state.previous_frame is frames[2]

    def test_capture_failure_keeps_previous(self, frames, caplog):
        source = ScriptedSource([CaptureFailure("camera unplugged")])
        classifier = RecordingClassifier()

        state, result = run_cycle(
            PipelineState(previous_frame=frames[0]), source, MotionGate(THRESHOLD), classifier
        )

        assert state.previous_frame is frames[0]
        assert state.cycle_in_progress is False
        assert result.captured is False
        assert "camera unplugged" in result.error
        assert classifier.frames == []
        assert "Error capturing webcam" in caplog.text
        assert CycleStage.COMPARING not in result.stages

    def test_dimension_mismatch_skips_comparison(self, frames, make_frame, caplog):
        resized = make_frame(width=10, height=10, changed=90)
        source = ScriptedSource([resized])
        classifier = RecordingClassifier()

        state, result = run_cycle(
            PipelineState(previous_frame=frames[0]), source, MotionGate(0), classifier
        )

        assert result.dimension_mismatch is True
        assert result.triggered is False
        assert classifier.frames == []
        assert state.previous_frame is resized
        assert "Skipping comparison" in caplog.text

    def test_fresh_capture_classifies_new_frame(self, frames, make_frame):
        fresh = make_frame(width=40, height=20, changed=400)
        source = ScriptedSource([frames[2], fresh])
        classifier = RecordingClassifier()

        state, _ = run_cycle(
            PipelineState(previous_frame=frames[1]), source, MotionGate(THRESHOLD), classifier,
            CaptureLoopConfig(fresh_capture=True),
        )

        assert classifier.frames == [fresh]
        assert state.previous_frame is frames[2]

    def test_fresh_capture_failure_skips_classification(self, frames):
        source = ScriptedSource([frames[2], CaptureFailure("busy")])
        classifier = RecordingClassifier()

        state, result = run_cycle(
            PipelineState(previous_frame=frames[1]), source, MotionGate(THRESHOLD), classifier,
            CaptureLoopConfig(fresh_capture=True),
        )

        assert classifier.frames == []
        assert result.triggered is True
        assert result.label is None
        assert state.previous_frame is frames[2]

    def test_saves_snapshot_of_classified_frame(self, frames, tmp_path):
        source = ScriptedSource([frames[2]])
        snapshot_dir = tmp_path / "snaps"

        run_cycle(
            PipelineState(previous_frame=frames[1]), source, MotionGate(THRESHOLD), RecordingClassifier(),
            CaptureLoopConfig(save_snapshots=True, snapshot_dir=str(snapshot_dir)),
        )

        assert len(list(snapshot_dir.glob("bin_*.png"))) == 1


class TestCaptureLoop:
    def test_three_ticks_classify_once_and_wait_for_result(self, frames):
        events = []
        source = ScriptedSource(list(frames) + [frames[2]], events)
        classifier = RecordingClassifier(events=events, delay=0.05)
        loop = CaptureLoop(source, MotionGate(THRESHOLD), classifier, CaptureLoopConfig(interval_s=0))

        loop.run(max_cycles=4)

        assert classifier.frames == [frames[2]]
        assert events == [
            "capture",
            "capture",
            "capture",
            "classify:start",
            "classify:end",
            "capture",
        ]
        assert loop.stats.cycle_count == 4
        assert loop.stats.motion_events == 1
        assert loop.stats.label_counts == {"plastic": 1}

    def test_next_tick_waits_for_interval_after_cycle(self, frames):
        ends = []
        source = ScriptedSource(list(frames))
        classifier = RecordingClassifier(delay=0.1)
        loop = CaptureLoop(source, MotionGate(THRESHOLD), classifier, CaptureLoopConfig(interval_s=0.05))
        loop.add_callback(lambda result: ends.append(time.monotonic()))

        loop.run(max_cycles=3)

        assert len(ends) == 3
        assert ends[1] - ends[0] >= 0.05
        # cycle 3 classifies, so it ends at least interval + classification time later
        assert ends[2] - ends[1] >= 0.05 + 0.1

    def test_capture_failures_do_not_stop_loop(self, frames):
        source = ScriptedSource([CaptureFailure("x"), frames[0], CaptureFailure("y"), frames[1]])
        loop = CaptureLoop(source, MotionGate(THRESHOLD), RecordingClassifier(), CaptureLoopConfig(interval_s=0))

        loop.run(max_cycles=4)

        assert loop.stats.cycle_count == 4
        assert loop.stats.capture_failures == 2
        assert loop.state.previous_frame is frames[1]

    def test_unexpected_error_is_logged_and_loop_continues(self, frames, caplog):
        class ExplodingClassifier:
            def classify(self, frame):
                raise RuntimeError("boom")

        source = ScriptedSource([frames[1], frames[2], frames[2]])
        loop = CaptureLoop(source, MotionGate(THRESHOLD), ExplodingClassifier(), CaptureLoopConfig(interval_s=0))

        loop.run(max_cycles=3)

        assert loop.stats.cycle_count == 3
        assert "Error in capture cycle: boom" in caplog.text
        assert loop.state.cycle_in_progress is False
        assert loop.stats.unexpected_errors == 2
        assert loop.stats.capture_failures == 0

    def test_stop_from_another_thread(self, frames, make_frame):
        source = ScriptedSource([make_frame(width=40, height=20)] * 1000)
        loop = CaptureLoop(source, MotionGate(THRESHOLD), RecordingClassifier(), CaptureLoopConfig(interval_s=0.01))

        worker = threading.Thread(target=loop.run)
        worker.start()
        time.sleep(0.1)
        loop.stop()
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert loop.stats.cycle_count >= 1
        assert not source.is_open

    def test_stop_interrupts_long_interval(self, frames):
        source = ScriptedSource([frames[0]])
        loop = CaptureLoop(source, MotionGate(THRESHOLD), RecordingClassifier(), CaptureLoopConfig(interval_s=60))

        worker = threading.Thread(target=loop.run)
        worker.start()
        time.sleep(0.1)
        started = time.monotonic()
        loop.stop()
        worker.join(timeout=2)

        assert not worker.is_alive()
        assert time.monotonic() - started < 2

    def test_callback_errors_are_contained(self, frames):
        def bad_callback(result):
            raise ValueError("bad")

        source = ScriptedSource([frames[0], frames[1]])
        loop = CaptureLoop(source, MotionGate(THRESHOLD), RecordingClassifier(), CaptureLoopConfig(interval_s=0))
        loop.add_callback(bad_callback)

        loop.run(max_cycles=2)

        assert loop.stats.cycle_count == 2

    def test_dimension_mismatch_counted(self, frames, make_frame):
        source = ScriptedSource([frames[0], make_frame(width=5, height=5)])
        loop = CaptureLoop(source, MotionGate(THRESHOLD), RecordingClassifier(), CaptureLoopConfig(interval_s=0))

        loop.run(max_cycles=2)

        assert loop.stats.dimension_mismatches == 1


class TestSaveSnapshot:
    def test_writes_png(self, make_frame, tmp_path):
        path = save_snapshot(make_frame(), str(tmp_path / "out"))
        assert path is not None
        assert path.endswith(".png")


class TestCreateLoopFromConfig:
    def test_builds_loop(self, valid_config):
        valid_config["capture"]["interval_ms"] = 1500
        valid_config["motion"]["threshold"] = 1234
        valid_config["classifier"]["fresh_capture"] = True

        loop = create_loop_from_config(valid_config, ScriptedSource([]), RecordingClassifier())

        assert loop.config.interval_s == 1.5
        assert loop.config.fresh_capture is True
        assert loop.gate.threshold == 1234

    def test_warns_when_threshold_exceeds_frame(self, valid_config, caplog):
        create_loop_from_config(valid_config, ScriptedSource([]), RecordingClassifier())
        assert "motion will never be detected" in caplog.text
