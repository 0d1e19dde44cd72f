# tests/test_float32.py

import numpy as np
import pytest

from spinpa.core.errors import InvariantError
from spinpa.engines import _float32 as f32


def test_bit_fields_of_known_values():
    assert f32.to_bits(1.0) == 0x3F800000
    assert f32.get_exponent(1.0) == f32.EXPONENT_BIAS
    assert f32.get_mantissa(1.0) == 0
    assert f32.get_mantissa(1.5) == 1 << 22
    assert f32.get_sign_bit(-2.0) == 1
    assert f32.get_sign_bit(2.0) == 0


def test_bits_roundtrip():
    for v in (np.float32(1 / 60), np.float32(0.05), np.float32(-3.25), np.float32(524288.0)):
        assert f32.from_bits(f32.to_bits(v)) == v


def test_is_normalized():
    assert f32.is_normalized(1.0)
    assert not f32.is_normalized(0.0)
    assert not f32.is_normalized(f32.from_bits(1))  # smallest denormal
    assert not f32.is_normalized(np.float32(np.inf))


def test_build_float():
    assert f32.build_float(0, 127, 0) == 1.0
    assert f32.build_float(1, 128, 1 << 22) == -3.0
    with pytest.raises(ValueError):
        f32.build_float(2, 127, 0)
    with pytest.raises(ValueError):
        f32.build_float(0, 256, 0)
    with pytest.raises(ValueError):
        f32.build_float(0, 127, 1 << 23)


def test_build_floaty_norm_float():
    # implicit bit already at bit 23
    assert f32.build_floaty_norm_float(0, 127, 1 << 23) == 1.0
    assert f32.build_floaty_norm_float(0, 127, 3 << 22) == 1.5
    # implicit bit above / below bit 23
    assert f32.build_floaty_norm_float(0, 127, 1 << 24) == 2.0
    assert f32.build_floaty_norm_float(0, 127, 1 << 22) == 0.5
    assert f32.build_floaty_norm_float(0, 127, 3) == np.float32(3 * 2.0 ** -23)


def test_build_floaty_norm_float_errors():
    with pytest.raises(ValueError):
        f32.build_floaty_norm_float(0, 127, 0)
    # shifting right by one bit would drop a set bit
    with pytest.raises(InvariantError):
        f32.build_floaty_norm_float(0, 127, (1 << 24) | 1)
