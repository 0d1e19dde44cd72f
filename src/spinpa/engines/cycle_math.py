"""
spinpa.engines.cycle_math
-------------------------
Stateless exact-rational cycle calculations.

An interval check with interval I hit by a value growing by `delta` per tick
fires roughly every I/|delta| ticks. The cycle length L is that ratio rounded;
the residual drift I - L*|delta| is how far the hit position slides per cycle.
The slides themselves form a periodic check one level down (interval |delta|,
delta = drift), which gives a signed Euclidean descent that ends once the
drift is exactly 0.
"""

from __future__ import annotations

import math
from fractions import Fraction
from typing import Iterator, Tuple

from ..core.errors import InvariantError
from ._rational import rmod, sign

# Non-termination guard for descents; exact descents end long before this.
MAX_DESCENT_DEPTH = 4096


def cycle_length(interval: Fraction, delta: Fraction) -> int:
    f = interval / abs(delta)
    if 1 < f < 2:
        return 2
    # Ties round to even; either neighbour keeps |drift| <= |delta|/2
    return round(f)


def residual_drift(interval: Fraction, delta: Fraction) -> Fraction:
    return interval - cycle_length(interval, delta) * abs(delta)


def offset_drift(interval: Fraction, delta: Fraction, num_frames: int) -> Fraction:
    """Offset correction that re-anchors a check offset `num_frames` frames later."""
    return -rmod(delta * num_frames, interval)


def bounded_offset(interval: Fraction, delta: Fraction, offset: Fraction) -> Fraction:
    """
    Representative of `offset` modulo `interval` used for hit counting.

    delta > 0: in (-|delta|, interval - |delta|]
    delta < 0: in (-interval, 0]
    """
    off = rmod(offset, interval)
    if delta > 0 and off - interval > -abs(delta):
        off -= interval
    if delta < 0 and off > 0:
        off -= interval
    return off


def cycle_group(interval: Fraction, delta: Fraction, offset: Fraction) -> int:
    """Number of ticks before the first hit of the cycle."""
    off = bounded_offset(interval, delta, offset)
    group = abs(math.ceil(off / abs(delta)))
    length = cycle_length(interval, delta)
    if not 0 <= group <= length:
        raise InvariantError(
            f"cycle group {group} outside [0, {length}] (interval={interval} delta={delta} offset={offset})"
        )
    return group


def base_length(threshold: Fraction, delta: Fraction) -> int:
    return math.floor(threshold / abs(delta))


def length_offset(threshold: Fraction, delta: Fraction) -> Fraction:
    return threshold % abs(delta)


def descend(interval: Fraction, delta: Fraction, offset: Fraction) -> Tuple[Fraction, Fraction, Fraction]:
    """
    One level down: (interval, delta, offset) -> (|delta|, -sign(delta)*drift, offset').

    Raw checks of this level are numbered from the first one at a tick >= 0
    (raw check 0). Tick j of the next level stands for the cycle that starts
    at raw check j-1: its raw check fires exactly when that cycle is
    `cycle_length + sign(drift)` ticks long, and its value at tick j is where
    raw check j-1 landed inside this level's raw check window.
    """
    drift = residual_drift(interval, delta)
    next_delta = -sign(delta) * drift
    offset = bounded_offset(interval, delta, offset)
    if sign(delta) == sign(drift):
        offset += next_delta
    return abs(delta), next_delta, offset


def descend_levels(
    interval: Fraction, delta: Fraction, offset: Fraction = Fraction(0), levels: int = 1
) -> Tuple[Fraction, Fraction, Fraction]:
    for _ in range(levels):
        interval, delta, offset = descend(interval, delta, offset)
    return interval, delta, offset


def iter_descent(interval: Fraction, delta: Fraction, offset: Fraction = Fraction(0)) -> Iterator[Tuple[Fraction, Fraction, Fraction]]:
    """Yield (interval, delta, offset) for every level whose delta is non-zero."""
    depth = 0
    while delta != 0:
        if depth >= MAX_DESCENT_DEPTH:
            raise InvariantError(
                f"descent did not terminate after {depth} levels (interval={interval} delta={delta} offset={offset})"
            )
        yield interval, delta, offset
        interval, delta, offset = descend(interval, delta, offset)
        depth += 1
