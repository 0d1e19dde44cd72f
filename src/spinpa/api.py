from __future__ import annotations

import itertools
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterator, List, Optional

from .core.constants import DELTA_TIME, HAZARD_LOAD_INTERVAL
from .engines import cycle_math as cm
from .engines._rational import RationalLike, as_rational
from .engines.dt_ranges import enumerate_effective_dt_ranges
from .engines.interval_check import IntervalCheckPredictor


@dataclass(frozen=True)
class CycleLevel:
    """One level of the raw interval/delta descent."""
    delta: Fraction
    interval: Fraction
    drift: Fraction
    length: int


def make_predictor(
    offset: RationalLike,
    interval: RationalLike = HAZARD_LOAD_INTERVAL,
    *,
    delta_time: RationalLike = DELTA_TIME,
) -> IntervalCheckPredictor:
    return IntervalCheckPredictor(offset, interval, delta_time=delta_time)


def check_result(
    frame: int,
    offset: RationalLike,
    interval: RationalLike = HAZARD_LOAD_INTERVAL,
    *,
    delta_time: RationalLike = DELTA_TIME,
) -> bool:
    """Whether the OnInterval check with the given offset fires on `frame`."""
    return make_predictor(offset, interval, delta_time=delta_time).seek(frame)


def predict_check_results(
    offset: RationalLike,
    interval: RationalLike = HAZARD_LOAD_INTERVAL,
    *,
    start_frame: int = 0,
    num_frames: Optional[int] = None,
    delta_time: RationalLike = DELTA_TIME,
) -> Iterator[bool]:
    if num_frames is not None and num_frames < 0:
        raise ValueError(f"num_frames must not be negative, got {num_frames}")
    pred = make_predictor(offset, interval, delta_time=delta_time)
    end_frame = None if num_frames is None else start_frame + num_frames
    return pred.predict_check_results(start_frame, end_frame)


def describe_cycles(interval: RationalLike, delta: RationalLike, *, depth: int) -> List[CycleLevel]:
    """
    The first `depth` levels of the descent of (interval, delta), offsets
    ignored. Stops early once the delta reaches 0.
    """
    levels = cm.iter_descent(as_rational(interval), as_rational(delta))
    return [
        CycleLevel(delta=d, interval=i, drift=cm.residual_drift(i, d), length=cm.cycle_length(i, d))
        for i, d, _ in itertools.islice(levels, max(depth, 0))
    ]


__all__ = [
    "CycleLevel",
    "enumerate_effective_dt_ranges",
    "make_predictor",
    "check_result",
    "predict_check_results",
    "describe_cycles",
]
