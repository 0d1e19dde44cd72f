"""
spinpa.engines.dt_range_predictor
---------------------------------
Interval check predictor for a single range of constant effective delta time.

Frame t of the range sees TimeActive - offset = t*effective_dt - offset (mod the
interval), with `offset` already re-anchored at the range start. The check
fires when that value mod the interval is below the nominal delta time.
"""

from __future__ import annotations

from fractions import Fraction
from typing import List

from ..core.constants import DELTA_TIME
from . import cycle_math as cm
from ._rational import RationalLike, as_rational, rmod
from .recursive_cycle import RecursiveCycle


class DTRangePredictor:
    def __init__(self, offset: RationalLike, interval: RationalLike, effective_dt: RationalLike, *, delta_time: RationalLike = DELTA_TIME):
        offset, interval, effective_dt = as_rational(offset), as_rational(interval), as_rational(effective_dt)
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if effective_dt < 0:
            raise ValueError(f"effective delta time must not be negative, got {effective_dt}")

        self.offset = offset
        self.interval = interval
        self.effective_dt = effective_dt
        self.threshold = as_rational(delta_time)

        # Build the recursive cycle chain, one level per descent step. Whole
        # intervals per frame do not move the check, so only the remainder ticks.
        cycles: List[RecursiveCycle] = []
        threshold = self.threshold
        for c_interval, c_delta, c_offset in cm.iter_descent(interval, rmod(effective_dt, interval), offset):
            cycles.append(RecursiveCycle(cycles, len(cycles), c_offset, c_interval, c_delta, threshold))
            threshold = cm.length_offset(threshold, c_delta)
        self.recursive_cycles = cycles

        self._cur_frame = 0
        self.reset()

    def __repr__(self) -> str:
        return (
            f"DTRangePredictor(offset={self.offset}, interval={self.interval}, "
            f"effective_dt={self.effective_dt}, levels={len(self.recursive_cycles)})"
        )

    def reset(self) -> None:
        if self.recursive_cycles:
            self.recursive_cycles[0].reset()
        self._cur_frame = 0

    def advance_frames(self, frames: int) -> None:
        if frames < 0:
            raise ValueError(f"cannot advance by a negative frame count: {frames}")
        if frames == 0:
            return
        if self.recursive_cycles:
            self.recursive_cycles[0].advance_ticks(frames)
        self._cur_frame += frames

    @property
    def current_frame(self) -> int:
        return self._cur_frame

    @current_frame.setter
    def current_frame(self, frame: int) -> None:
        if frame < 0:
            raise ValueError(f"frame must not be negative, got {frame}")
        # No backwards ticks: rewind to frame 0 and replay forwards
        if frame < self._cur_frame:
            self.reset()
        if frame != self._cur_frame:
            self.advance_frames(frame - self._cur_frame)

    @property
    def check_result(self) -> bool:
        if self.recursive_cycles:
            return self.recursive_cycles[0].cur_range_check_result
        # The checked value never moves: TimeActive froze, or it steps whole intervals
        return rmod(-self.offset, self.interval) < self.threshold

    @property
    def carried_offset(self) -> Fraction:
        return self.offset
