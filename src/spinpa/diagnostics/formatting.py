from __future__ import annotations

from fractions import Fraction
from typing import Optional


def format_fixed(v, digits: int = 30, *, signed: bool = False) -> str:
    """Exact fixed-point rendering of a float32 / Fraction value."""
    v = Fraction(float(v)) if not isinstance(v, (Fraction, int)) else Fraction(v)
    scale = 10 ** digits
    q = round(abs(v) * scale)
    body = f"{q // scale}.{q % scale:0{digits}d}"
    if v < 0:
        return "-" + body
    return ("+" if signed else "") + body


def format_end_frame(end_frame: Optional[int]) -> str:
    return "..." if end_frame is None else str(end_frame)
