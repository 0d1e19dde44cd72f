"""
spinpa.engines._rational
------------------------
Exact rational helpers on top of fractions.Fraction.

Floating point values only ever enter through `as_rational`; every comparison
inside the cycle machinery happens on exact rationals.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Union

import numpy as np

RationalLike = Union[Fraction, int, float, np.floating]


def as_rational(x: RationalLike) -> Fraction:
    """
    Exact rational value of x.

    Fractions and ints are taken as-is. Floats are rounded to float32 first,
    since that is the precision the simulated values live in.
    """
    if isinstance(x, Fraction):
        return x
    if isinstance(x, (int, np.integer)) and not isinstance(x, bool):
        return Fraction(int(x))
    return Fraction(float(np.float32(x)))


def sign(x: Fraction) -> int:
    return (x > 0) - (x < 0)


def rmod(x: Fraction, m: Fraction) -> Fraction:
    """Remainder of x modulo m with the sign of m ([0, m) for m > 0)."""
    return x - (x // m) * m
