"""
spinpa.engines.dt_ranges
------------------------
Enumerates the effective delta time ranges of a float32 TimeActive accumulator.

Starting at TimeActive = dt, each frame computes TimeActive += dt in float32.
While TimeActive stays inside one binary exponent block, every addition moves
its mantissa by the same number of ulps, so the effective per-frame delta is
constant. The addition that overflows into the next block (the transition
frame) follows a different rounding and is computed exactly instead. Once an
addition no longer changes the mantissa at all, TimeActive is frozen forever.
"""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Iterator

import numpy as np

from ..core.constants import DELTA_TIME
from ..core.errors import InvariantError
from ..core.types import EffectiveDTRange
from . import _float32 as f32

logger = logging.getLogger(__name__)


def enumerate_effective_dt_ranges(nominal_step=DELTA_TIME) -> Iterator[EffectiveDTRange]:
    """
    Lazily yield the contiguous effective DT ranges, starting at frame 0 and
    ending with the unbounded frozen range. Each call starts from scratch.
    """
    dt = np.float32(nominal_step)
    if not (dt > 0 and f32.is_normalized(dt)):
        raise ValueError(f"nominal step must be a positive normalized float32, got {nominal_step!r}")

    dt_exp = f32.get_exponent(dt)

    start_frame = 0
    time_active = dt
    while True:
        if not f32.is_normalized(time_active):
            raise InvariantError(f"TimeActive {float(time_active)!r} at frame {start_frame} is not normalized")
        ta_exp, ta_mant = f32.get_exponent(time_active), f32.get_mantissa(time_active)
        if ta_exp < dt_exp:
            raise InvariantError(f"TimeActive exponent {ta_exp} below delta time exponent {dt_exp}")

        eff_dt = None
        last_range_ta = time_active
        num_frames = 1

        stepped = time_active + dt
        if f32.get_exponent(stepped) == ta_exp:
            # mantissa ulps gained per frame inside this exponent block
            ta_mant_delta = f32.get_mantissa(stepped) - ta_mant
            if ta_mant_delta == 0:
                logger.debug("TimeActive freezes at frame %d (value %r)", start_frame, float(time_active))
                yield EffectiveDTRange(start_frame, None, float(time_active), ta_exp, 0.0, None)
                return

            eff_dt = float(f32.build_floaty_norm_float(0, dt_exp, ta_mant_delta << (ta_exp - dt_exp)))

            num_frames = (f32.NORMALIZED_MANTISSA_BIT - ta_mant + ta_mant_delta - 1) // ta_mant_delta
            if num_frames <= 0:
                raise InvariantError(f"empty DT range at frame {start_frame} (mantissa {ta_mant:#x}, delta {ta_mant_delta})")

            last_range_ta = f32.build_float(0, ta_exp, ta_mant + (num_frames - 1) * ta_mant_delta)

        # Step through the exponent transition with a real float32 addition
        next_ta = last_range_ta + dt
        trans_dt = Fraction(float(next_ta)) - Fraction(float(last_range_ta))

        yield EffectiveDTRange(start_frame, start_frame + num_frames, float(time_active), ta_exp, eff_dt, trans_dt)
        time_active = next_ta
        start_frame += num_frames
