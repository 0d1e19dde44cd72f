"""
spinpa.engines._float32
-----------------------
Bit-level access to IEEE 754 binary32 values (sign, biased exponent, mantissa).
"""

from __future__ import annotations

import numpy as np

from ..core.errors import InvariantError

EXPONENT_BITS = 8
MANTISSA_BITS = 23
NORMALIZED_MANTISSA_BIT = 1 << MANTISSA_BITS
EXPONENT_BIAS = 127

_MANTISSA_MASK = NORMALIZED_MANTISSA_BIT - 1
_EXPONENT_MASK = (1 << EXPONENT_BITS) - 1


def to_bits(v) -> int:
    return int(np.array(v, dtype=np.float32).view(np.uint32))


def from_bits(bits: int) -> np.float32:
    return np.array(bits, dtype=np.uint32).view(np.float32)[()]


def get_mantissa(v) -> int:
    return to_bits(v) & _MANTISSA_MASK


def get_exponent(v) -> int:
    return (to_bits(v) >> MANTISSA_BITS) & _EXPONENT_MASK


def get_sign_bit(v) -> int:
    return to_bits(v) >> (MANTISSA_BITS + EXPONENT_BITS)


def is_normalized(v) -> bool:
    return 0 < get_exponent(v) < _EXPONENT_MASK


def build_float(sign: int, exp: int, mant: int) -> np.float32:
    if not 0 <= sign <= 1:
        raise ValueError(f"sign bit out of range: {sign}")
    if not 0 <= exp <= _EXPONENT_MASK:
        raise ValueError(f"exponent out of range: {exp}")
    if not 0 <= mant <= _MANTISSA_MASK:
        raise ValueError(f"mantissa out of range: {mant}")
    return from_bits((sign << (MANTISSA_BITS + EXPONENT_BITS)) | (exp << MANTISSA_BITS) | mant)


def build_floaty_norm_float(sign: int, exp: int, mant: int) -> np.float32:
    """
    Build a float from a mantissa that is not normalized yet.

    `mant` is read with its implicit leading bit expected at bit 23; it is shifted
    into place and the exponent adjusted accordingly. The value is
    mant * 2^(exp - EXPONENT_BIAS - MANTISSA_BITS).
    """
    if mant <= 0:
        raise ValueError(f"mantissa must be positive: {mant}")

    mant_off = (mant.bit_length() - 1) - MANTISSA_BITS
    if mant_off <= 0:
        return build_float(sign, exp + mant_off, (mant << -mant_off) & _MANTISSA_MASK)

    if mant & (1 << (mant_off - 1)):
        raise InvariantError(f"mantissa {mant:#x} loses precision when shifted by {mant_off} bits")
    return build_float(sign, exp + mant_off, (mant >> mant_off) & _MANTISSA_MASK)
