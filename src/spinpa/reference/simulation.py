"""
spinpa.reference.simulation
---------------------------
Brute-force reference: direct float32 accumulation of TimeActive and the
OnInterval check evaluated on it.

    OnInterval(interval, offset) =
        floor((TimeActive - offset - dt) / interval) < floor((TimeActive - offset) / interval)

`on_interval` evaluates that formula in float32, like the simulation does.
`on_interval_exact` evaluates it on the exact values of the same float32
inputs, which is the quantity the cycle predictors model exactly.
"""

from __future__ import annotations

import math
from typing import Iterator

import numpy as np

from ..core.constants import DELTA_TIME
from ..engines._rational import as_rational


def enumerate_time_active_values(delta_time=DELTA_TIME) -> Iterator[np.float32]:
    """TimeActive for frames 0, 1, 2, ... (it starts one step in)."""
    dt = np.float32(delta_time)
    time_active = dt
    while True:
        yield time_active
        time_active = time_active + dt


def on_interval(time_active, interval, offset, delta_time=DELTA_TIME) -> bool:
    ta, intv, off, dt = np.float32(time_active), np.float32(interval), np.float32(offset), np.float32(delta_time)
    return math.floor((ta - off - dt) / intv) < math.floor((ta - off) / intv)


def on_interval_exact(time_active, interval, offset, delta_time=DELTA_TIME) -> bool:
    ta, intv, off, dt = (as_rational(x) for x in (time_active, interval, offset, delta_time))
    return math.floor((ta - off - dt) / intv) < math.floor((ta - off) / intv)
