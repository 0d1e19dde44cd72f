"""
spinpa.core.constants
---------------------
Simulation constants. All float values are float32, the precision of the
simulated TimeActive accumulator.
"""

from __future__ import annotations

import numpy as np

# 166667 ticks of 100ns, converted through float64 seconds to float32
DELTA_TIME = np.float32(166667 / 10_000_000)

# Default OnInterval check interval (hazard load checks)
HAZARD_LOAD_INTERVAL = np.float32(0.05)

# Validator progress reporting
PROGRESS_PRECISION = 10000
MIN_REPORTING_GAP = 50
SKIP_VALIDATION_SEED = 421234
