# tests/test_recursive_cycle.py

import random
from fractions import Fraction

import numpy as np
import pytest

from spinpa.engines._rational import as_rational, rmod
from spinpa.engines.dt_range_predictor import DTRangePredictor

INTERVAL = as_rational(np.float32(0.05))
STEP = as_rational(np.float32(1 / 60))

# (offset, interval, effective dt, threshold)
CASES = [
    (Fraction(0), INTERVAL, STEP, STEP),
    (as_rational(0.013), INTERVAL, STEP, STEP),
    (as_rational(-0.031), INTERVAL, STEP, STEP),
    (as_rational(0.049), INTERVAL, as_rational(2.0 ** -5), STEP),
    (as_rational(0.02), INTERVAL, as_rational(0.0166666), STEP),
    (Fraction(1, 7), Fraction(1), Fraction(7, 25), Fraction(3, 10)),
    (Fraction(-2, 9), Fraction(1), Fraction(3, 11), Fraction(1, 5)),
    (Fraction(0), Fraction(1), Fraction(13, 31), Fraction(1, 9)),
    # offset right on a check boundary
    (-STEP, INTERVAL, STEP, STEP),
    # single level whose windows are all one tick longer than the base length
    (Fraction(0), Fraction(1), Fraction(1, 2), Fraction(3, 4)),
    (Fraction(1, 4), Fraction(1), Fraction(1, 2), Fraction(3, 4)),
    # more than a whole interval per frame
    (Fraction(1, 10), Fraction(1), Fraction(13, 5), Fraction(1, 3)),
]


def _raw(cycle, tick):
    return rmod(tick * cycle.delta - cycle.offset, cycle.interval) < abs(cycle.delta)


def _in_range(cycle, tick):
    return rmod(tick * cycle.delta - cycle.offset, cycle.interval) < cycle.threshold


def _counters(pred):
    return [(c.tick_index, c.cycle_offset, c.cycle_target) for c in pred.recursive_cycles]


@pytest.mark.parametrize("offset, interval, eff_dt, threshold", CASES)
def test_every_level_matches_closed_form(offset, interval, eff_dt, threshold):
    pred = DTRangePredictor(offset, interval, eff_dt, delta_time=threshold)
    assert pred.recursive_cycles

    for _ in range(1500):
        for c in pred.recursive_cycles:
            t = c.tick_index
            assert c.cur_raw_check_result == _raw(c, t)
            assert c.next_raw_check_result == _raw(c, t + 1)
            assert c.prev_raw_check_result == _raw(c, t - 1)
            assert c.cur_range_check_result == _in_range(c, t)
            assert c.next_range_check_result == _in_range(c, t + 1)
        pred.advance_frames(1)


@pytest.mark.parametrize("offset, interval, eff_dt, threshold", CASES)
def test_check_result_is_head_window(offset, interval, eff_dt, threshold):
    pred = DTRangePredictor(offset, interval, eff_dt, delta_time=threshold)
    for frame in range(2000):
        expected = rmod(frame * eff_dt - offset, interval) < threshold
        assert pred.check_result == expected
        pred.advance_frames(1)


@pytest.mark.parametrize("offset, interval, eff_dt, threshold", CASES)
def test_raw_check_distances(offset, interval, eff_dt, threshold):
    pred = DTRangePredictor(offset, interval, eff_dt, delta_time=threshold)
    head = pred.recursive_cycles[0]

    n = 4000
    states = []
    for _ in range(n):
        states.append((head.cur_raw_check_result, head.ticks_since_last_raw_check, head.ticks_till_next_raw_check))
        pred.advance_frames(1)

    hits = [f for f, (res, _, _) in enumerate(states) if res]
    assert len(hits) > 10
    for f, (res, since, till) in enumerate(states):
        later = [h for h in hits if h > f]
        if later and later[0] < n:
            assert till == later[0] - f
        earlier = [h for h in hits if h <= f]
        if earlier:
            assert since == f - earlier[-1]


@pytest.mark.parametrize("offset, interval, eff_dt, threshold", CASES)
def test_jump_equals_single_steps(offset, interval, eff_dt, threshold):
    rng = random.Random(421234)
    stepped = DTRangePredictor(offset, interval, eff_dt, delta_time=threshold)
    jumped = DTRangePredictor(offset, interval, eff_dt, delta_time=threshold)

    frame = 0
    for _ in range(60):
        k = rng.randint(1, 300)
        for _ in range(k):
            stepped.advance_frames(1)
        jumped.current_frame = frame + k
        frame += k
        assert _counters(stepped) == _counters(jumped)
        assert stepped.check_result == jumped.check_result


def test_replay_is_deterministic():
    pred = DTRangePredictor(as_rational(0.013), INTERVAL, STEP, delta_time=STEP)
    pred.reset()
    pred.advance_frames(123_457)
    first = _counters(pred)

    pred.reset()
    pred.advance_frames(123_457)
    assert _counters(pred) == first

    # seeking backwards replays from the start
    pred.current_frame = 1000
    pred.current_frame = 123_457
    assert _counters(pred) == first


def test_tick_zero_after_reset():
    pred = DTRangePredictor(Fraction(0), INTERVAL, STEP, delta_time=STEP)
    cycles = pred.recursive_cycles
    assert pred.current_frame == 0
    assert cycles[0].tick_index == 0
    for c in cycles:
        assert c.ticks_since_last_raw_check >= 0
        assert c.ticks_till_next_raw_check > 0
        assert c.cycle_offset < c.cycle_target <= c.cycle_offset + c.cycle_length + 1
    # a raw check on tick 0 already ticked the next level once
    for a, b in zip(cycles, cycles[1:]):
        assert b.tick_index == (1 if a.cur_raw_check_result else 0)


@pytest.mark.parametrize("offset", [Fraction(0), as_rational(0.013), -STEP])
def test_next_level_ticks_once_per_raw_check(offset):
    pred = DTRangePredictor(offset, INTERVAL, STEP, delta_time=STEP)
    cycles = pred.recursive_cycles
    assert len(cycles) > 1

    hits = [1 if c.cur_raw_check_result else 0 for c in cycles]
    for _ in range(1500):
        before = [c.tick_index for c in cycles]
        pred.advance_frames(1)
        for i, c in enumerate(cycles):
            assert c.tick_index - before[i] in (0, 1)
            if c.tick_index != before[i] and c.cur_raw_check_result:
                hits[i] += 1
        for a_hits, b in zip(hits, cycles[1:]):
            assert b.tick_index == a_hits


def test_chain_navigation():
    pred = DTRangePredictor(Fraction(0), INTERVAL, STEP, delta_time=STEP)
    cycles = pred.recursive_cycles
    assert cycles[0].prev_cycle is None
    assert cycles[-1].next_cycle is None
    for a, b in zip(cycles, cycles[1:]):
        assert a.next_cycle is b
        assert b.prev_cycle is a
        assert b.interval == abs(a.delta)
        assert abs(b.delta) < abs(a.delta)


def test_negative_advances_rejected():
    pred = DTRangePredictor(Fraction(0), INTERVAL, STEP, delta_time=STEP)
    with pytest.raises(ValueError):
        pred.advance_frames(-1)
    with pytest.raises(ValueError):
        pred.current_frame = -1
    with pytest.raises(ValueError):
        pred.recursive_cycles[0].advance_ticks(-3)


def test_bad_predictor_arguments():
    with pytest.raises(ValueError):
        DTRangePredictor(Fraction(0), Fraction(0), STEP)
    with pytest.raises(ValueError):
        DTRangePredictor(Fraction(0), INTERVAL, Fraction(-1, 60))


def test_frozen_range_predictor():
    pred = DTRangePredictor(Fraction(0), Fraction(1, 20), Fraction(0), delta_time=Fraction(1, 60))
    assert pred.recursive_cycles == []
    assert pred.check_result
    pred.advance_frames(1000)
    assert pred.check_result

    pred = DTRangePredictor(Fraction(1, 40), Fraction(1, 20), Fraction(0), delta_time=Fraction(1, 60))
    assert not pred.check_result
