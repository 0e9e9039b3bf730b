"""
Pipeline state owned by the capture loop.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .frame import Frame


@dataclass(frozen=True)
class PipelineState:
    """
    In-memory state carried from one capture cycle to the next.

    A cycle receives the current state and returns a new one; nothing
    else reads or writes it.
    """
    previous_frame: Optional[Frame] = None
    cycle_in_progress: bool = False

    def begin_cycle(self) -> "PipelineState":
        return replace(self, cycle_in_progress=True)

    def end_cycle(self, frame: Optional[Frame] = None) -> "PipelineState":
        """Finish the cycle, remembering `frame` if one was captured."""
        previous = frame if frame is not None else self.previous_frame
        return PipelineState(previous_frame=previous, cycle_in_progress=False)
