"""spinpa public API.

Exact prediction of float32 TimeActive OnInterval checks. Most users only need
the functions re-exported here.
"""

from .api import (
    CycleLevel,
    enumerate_effective_dt_ranges,
    make_predictor,
    check_result,
    predict_check_results,
    describe_cycles,
)
from .core.constants import DELTA_TIME, HAZARD_LOAD_INTERVAL
from .core.errors import SpinpaError, InvariantError, ValidationError
from .core.types import EffectiveDTRange
from .engines.interval_check import DTRange, IntervalCheckPredictor

__all__ = [
    "CycleLevel",
    "enumerate_effective_dt_ranges",
    "make_predictor",
    "check_result",
    "predict_check_results",
    "describe_cycles",
    "DELTA_TIME",
    "HAZARD_LOAD_INTERVAL",
    "SpinpaError",
    "InvariantError",
    "ValidationError",
    "EffectiveDTRange",
    "DTRange",
    "IntervalCheckPredictor",
]
