# tests/test_dt_ranges.py

from fractions import Fraction

import numpy as np
import pytest

from spinpa.core.constants import DELTA_TIME
from spinpa.engines.dt_ranges import enumerate_effective_dt_ranges
from spinpa.reference.simulation import enumerate_time_active_values

NUM_WALK_FRAMES = 130_000  # past the start of the [2048, 4096) block at 1/60


def _accumulate(delta_time, n):
    values = []
    for ta in enumerate_time_active_values(delta_time):
        values.append(ta)
        if len(values) >= n:
            break
    return values


def test_ranges_are_contiguous_and_end_frozen():
    ranges = list(enumerate_effective_dt_ranges())
    assert ranges[0].start_frame == 0
    assert ranges[0].start_time_active == float(DELTA_TIME)

    for a, b in zip(ranges, ranges[1:]):
        assert a.end_frame == b.start_frame
        assert a.num_frames >= 1
        assert b.time_active_exponent == a.time_active_exponent + 1
        assert a.transition_dt is not None

    last = ranges[-1]
    assert last.is_frozen
    assert last.end_frame is None
    assert last.effective_dt == 0.0
    assert last.transition_dt is None
    assert [r for r in ranges if r.is_frozen] == [last]


def test_default_step_freezes_at_two_to_the_19():
    last = list(enumerate_effective_dt_ranges())[-1]
    assert last.start_time_active == 524288.0


def test_enumeration_restarts():
    assert list(enumerate_effective_dt_ranges()) == list(enumerate_effective_dt_ranges())


@pytest.mark.parametrize("step", [DELTA_TIME, np.float32(1 / 60), np.float32(0.1)])
def test_increments_match_direct_accumulation(step):
    values = _accumulate(step, NUM_WALK_FRAMES)

    for r in enumerate_effective_dt_ranges(step):
        if r.start_frame >= len(values) - 1:
            break
        assert r.start_time_active == float(values[r.start_frame])

        last = len(values) - 1 if r.end_frame is None else min(r.end_frame, len(values) - 1)
        for f in range(r.start_frame, last):
            inc = Fraction(float(values[f + 1])) - Fraction(float(values[f]))
            if r.end_frame is not None and f == r.end_frame - 1:
                assert inc == r.transition_dt
            else:
                assert inc == Fraction(r.effective_dt)


def test_transition_exactness_late_blocks():
    # Check the transition frames directly, well past the walk above
    step = np.float32(1 / 60)
    values = _accumulate(step, 600_000)
    seen = 0
    for r in enumerate_effective_dt_ranges(step):
        if r.end_frame is None or r.end_frame >= len(values):
            break
        f = r.end_frame - 1
        assert Fraction(float(values[f + 1])) - Fraction(float(values[f])) == r.transition_dt
        seen += 1
    assert seen >= 18


@pytest.mark.parametrize("step", [0.0, -0.5, np.float32(np.inf)])
def test_bad_steps(step):
    with pytest.raises(ValueError):
        next(enumerate_effective_dt_ranges(step))
