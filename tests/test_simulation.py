# tests/test_simulation.py

import math
import random
from fractions import Fraction

import numpy as np

from spinpa.engines._rational import rmod
from spinpa.reference.simulation import enumerate_time_active_values, on_interval, on_interval_exact


def test_time_active_starts_one_step_in():
    dt = np.float32(1 / 60)
    values = enumerate_time_active_values(dt)
    assert next(values) == dt
    assert next(values) == dt + dt
    assert isinstance(next(values), np.float32)


def test_exact_check_is_remainder_below_step():
    rng = random.Random(42)
    dt = np.float32(1 / 60)
    interval = np.float32(0.05)
    for _ in range(2000):
        ta = np.float32(rng.uniform(0.0, 5000.0))
        offset = np.float32(rng.uniform(-0.05, 0.05))
        expected = rmod(Fraction(float(ta)) - Fraction(float(offset)), Fraction(float(interval))) < Fraction(float(dt))
        assert on_interval_exact(ta, interval, offset, dt) == expected


def test_float32_check_formula():
    dt = np.float32(1 / 60)
    interval = np.float32(0.05)
    ta = np.float32(0.05)
    assert on_interval(ta, interval, 0.0, dt) == (
        math.floor((ta - dt) / interval) < math.floor(ta / interval)
    )
    # A value just above an interval boundary fires, one in the middle does not
    assert on_interval(np.float32(1.001), interval, 0.0, dt)
    assert not on_interval(np.float32(1.025), interval, 0.0, dt)
    assert on_interval_exact(np.float32(1.001), interval, 0.0, dt)
    assert not on_interval_exact(np.float32(1.025), interval, 0.0, dt)
