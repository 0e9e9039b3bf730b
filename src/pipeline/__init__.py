"""
Pipeline module for the bin monitor.

The pipeline runs the capture loop:
- Frame acquisition from the bin camera
- Motion gating against the previous frame
- Material classification when the bin contents change
"""

from .engine import (
    CaptureLoop,
    CaptureLoopConfig,
    CycleResult,
    CycleStage,
    PipelineStats,
    create_loop_from_config,
    run_cycle,
)

__all__ = [
    "CaptureLoop",
    "CaptureLoopConfig",
    "CycleResult",
    "CycleStage",
    "PipelineStats",
    "create_loop_from_config",
    "run_cycle",
]
