"""
spinpa.engines.interval_check
-----------------------------
Top-level interval check predictor.

Splits the frame timeline into ranges of constant effective delta time (each
exponent block's constant run plus its transition frame), merges neighbours
with identical deltas, and gives every range its own DTRangePredictor with the
check offset carried over exactly from the ranges before it.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterator, List, Optional, Tuple

import numpy as np

from ..core.constants import DELTA_TIME
from ..core.errors import InvariantError
from . import cycle_math as cm
from ._rational import RationalLike, as_rational
from .dt_range_predictor import DTRangePredictor
from .dt_ranges import enumerate_effective_dt_ranges

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DTRange:
    start_frame: int
    end_frame: Optional[int]  # exclusive, None = unbounded
    predictor: DTRangePredictor

    @property
    def num_frames(self) -> Optional[int]:
        if self.end_frame is None:
            return None
        return self.end_frame - self.start_frame

    @property
    def carried_offset(self) -> Fraction:
        return self.predictor.offset

    def contains(self, frame: int) -> bool:
        return self.start_frame <= frame and (self.end_frame is None or frame < self.end_frame)


class IntervalCheckPredictor:
    def __init__(self, offset: RationalLike, interval: RationalLike, *, delta_time: RationalLike = DELTA_TIME):
        self.offset = as_rational(offset)
        self.interval = as_rational(interval)
        if self.interval <= 0:
            raise ValueError(f"interval must be positive, got {self.interval}")
        # One float32 step for the accumulator, the threshold and the first frame's drift
        step = np.float32(delta_time)
        self.delta_time = as_rational(step)

        self.ranges: Tuple[DTRange, ...] = tuple(self._build_ranges(step))
        self._range_starts = [r.start_frame for r in self.ranges]
        self._cur_range_idx = 0

        logger.debug(
            "built %d DT range(s) for offset=%s interval=%s (%d recursive cycle(s) total)",
            len(self.ranges), self.offset, self.interval,
            sum(len(r.predictor.recursive_cycles) for r in self.ranges),
        )

    def _build_ranges(self, delta_time: RationalLike) -> List[DTRange]:
        ranges: List[DTRange] = []
        interval = self.interval

        # TimeActive is one frame ahead of the check time, so start one step of drift in
        r_off = self.offset + cm.offset_drift(interval, self.delta_time, 1)
        r_dt: Optional[Fraction] = None
        r_start = r_end = -1

        def emit() -> None:
            nonlocal r_off
            ranges.append(DTRange(r_start, r_end, DTRangePredictor(r_off, interval, r_dt, delta_time=self.delta_time)))
            if r_end is not None:
                r_off += cm.offset_drift(interval, r_dt, r_end - r_start)

        def add_range(start_frame: int, end_frame: Optional[int], eff_dt: Fraction) -> None:
            nonlocal r_dt, r_start, r_end
            if r_dt != eff_dt:
                if r_dt is not None:
                    emit()
                r_dt, r_start, r_end = eff_dt, start_frame, end_frame
            else:
                # Extend the current range
                if start_frame != r_end:
                    raise InvariantError(f"DT range starting at frame {start_frame} does not continue range ending at {r_end}")
                r_end = end_frame

        for eff_range in enumerate_effective_dt_ranges(delta_time):
            if eff_range.effective_dt is not None:
                end = eff_range.end_frame - 1 if eff_range.end_frame is not None else None
                if end is None or end > eff_range.start_frame:
                    add_range(eff_range.start_frame, end, Fraction(eff_range.effective_dt))
            if eff_range.transition_dt is not None:
                add_range(eff_range.end_frame - 1, eff_range.end_frame, eff_range.transition_dt)

        if r_dt is not None:
            emit()
        return ranges

    def get_range_index(self, frame: int) -> int:
        if frame < 0:
            raise ValueError(f"frame must not be negative, got {frame}")

        idx = bisect_right(self._range_starts, frame) - 1
        if idx < 0 or not self.ranges[idx].contains(frame):
            raise InvariantError(f"frame {frame} is not covered by DT range {idx} of {len(self.ranges)}")
        return idx

    def predict_check_results(self, start_frame: int = 0, end_frame: Optional[int] = None) -> Iterator[bool]:
        """Yield the check result of every frame in [start_frame, end_frame), forever if end_frame is None."""
        self.current_frame = start_frame
        while end_frame is None or self.current_frame < end_frame:
            yield self.check_result
            self.current_frame += 1

    def seek(self, frame: int) -> bool:
        self.current_frame = frame
        return self.check_result

    @property
    def current_frame(self) -> int:
        cur = self.current_range
        return cur.start_frame + cur.predictor.current_frame

    @current_frame.setter
    def current_frame(self, frame: int) -> None:
        if frame < 0:
            raise ValueError(f"frame must not be negative, got {frame}")
        if not self.current_range.contains(frame):
            self._cur_range_idx = self.get_range_index(frame)
        cur = self.current_range
        cur.predictor.current_frame = frame - cur.start_frame

    @property
    def current_range(self) -> DTRange:
        return self.ranges[self._cur_range_idx]

    @property
    def current_range_index(self) -> int:
        return self._cur_range_idx

    @property
    def current_dt_range_predictor(self) -> DTRangePredictor:
        return self.current_range.predictor

    @property
    def check_result(self) -> bool:
        return self.current_range.predictor.check_result
