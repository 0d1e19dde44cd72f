from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
from typing import Optional

@dataclass(frozen=True)
class EffectiveDTRange:
    """
    A run of frames over which TimeActive grows by a constant quantized delta.

    The last frame of a bounded range is its transition frame: the step from it
    into the next range crosses a float32 exponent boundary and grows TimeActive
    by `transition_dt` instead of `effective_dt`.
    """
    start_frame: int
    end_frame: Optional[int]  # exclusive, None = unbounded (frozen range)
    start_time_active: float  # float32 value
    time_active_exponent: int  # biased float32 exponent
    effective_dt: Optional[float]  # None if the range is only its transition frame
    transition_dt: Optional[Fraction]  # None for the frozen range

    @property
    def num_frames(self) -> Optional[int]:
        if self.end_frame is None:
            return None
        return self.end_frame - self.start_frame

    @property
    def is_frozen(self) -> bool:
        return self.end_frame is None

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame and (self.end_frame is None or frame < self.end_frame)
