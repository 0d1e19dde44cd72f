"""
spinpa.engines.recursive_cycle
------------------------------
One level of the recursive cycle decomposition of a periodic check.

A level ticks with a signed `delta` against an `interval`. Its raw check fires
on the tick where (tick*delta - offset) mod interval < |delta|, which happens
once every `cycle_length` ticks, give or take one tick. Whether a cycle is one
tick longer or shorter (a "group drift") is decided by the raw check of the
next level, which ticks once per raw check of this level. The range (window)
check widens the raw check to (tick*delta - offset) mod interval < threshold;
its window is `base_length` ticks, one more when the next level's range check
says so (a "length drift").

State is the pair (cycle offset, cycle target): ticks are counted modulo the
cycle length, and the target is where the next raw check lands, relative to
the current cycle start. Everything else is derived from that pair and the
next level's state in `_update_check_results`.
"""

from __future__ import annotations

from fractions import Fraction
from typing import List, Optional

from ..core.errors import InvariantError
from . import cycle_math as cm
from ._rational import rmod, sign


class RecursiveCycle:
    def __init__(
        self,
        chain: List["RecursiveCycle"],
        index: int,
        offset: Fraction,
        interval: Fraction,
        delta: Fraction,
        threshold: Fraction,
    ):
        if interval <= 0:
            raise ValueError(f"cycle interval must be positive, got {interval}")
        if delta == 0:
            raise ValueError("cycle delta must be non-zero")

        self._chain = chain
        self.index = index

        self.offset = cm.bounded_offset(interval, delta, offset)
        self.interval = interval
        self.delta = delta
        self.delta_sign = sign(delta)
        self.residual_drift = cm.residual_drift(interval, delta)
        self.drift_sign = sign(self.residual_drift)

        self.cycle_length = cm.cycle_length(interval, delta)
        if self.cycle_length <= 0:
            raise ValueError(f"delta {delta} is too large for interval {interval} (cycle length {self.cycle_length})")
        self.initial_cycle_target = cm.cycle_group(interval, delta, offset)

        self.threshold = threshold
        self.length_offset = cm.length_offset(threshold, delta)
        self.base_length = cm.base_length(threshold, delta)
        if self.residual_drift == 0 and rmod(-self.offset, abs(delta)) < self.length_offset:
            # Last level: every raw check lands at the same spot, so every window is one longer
            self.base_length += 1

        self._tick_index = -1
        self._cycle_offset = 0
        self._cycle_target = 0

        self._ticks_since_last_raw_check = -1
        self._ticks_till_next_raw_check = -1
        self._prev_raw_check_result = False

        self._ticks_since_last_range_check = -1
        self._ticks_till_next_range_check = -1
        self._prev_ticks_since_last_range_check = -1
        self._prev_range_check_result = False
        self._cur_range_check_result = False
        self._next_range_check_result = False

        self._ticks_till_next_group_drift = -1

        self._last_check_range_did_length_drift = False
        self._next_check_range_did_length_drift = False
        self._ticks_till_next_length_drift: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"RecursiveCycle(index={self.index}, interval={self.interval}, delta={self.delta}, "
            f"offset={self.offset}, cycle_length={self.cycle_length}, base_length={self.base_length})"
        )

    @property
    def prev_cycle(self) -> Optional["RecursiveCycle"]:
        return self._chain[self.index - 1] if self.index > 0 else None

    @property
    def next_cycle(self) -> Optional["RecursiveCycle"]:
        return self._chain[self.index + 1] if self.index + 1 < len(self._chain) else None

    # ---------------------------------------------------------
    # Closed-form helpers (no state mutation)
    # ---------------------------------------------------------
    def calc_num_target_hits(self, ticks: int) -> int:
        """
        Number of raw check hits within the next `ticks` ticks, or within the
        last `-ticks` ticks if negative.
        """
        if ticks == 0:
            return 0
        rem_ticks: List[Optional[int]] = [None] * (len(self._chain) - self.index)
        return self._simulate_advance(rem_ticks, 0, ticks)

    def _simulate_advance(self, rem_ticks: List[Optional[int]], idx: int, ticks: int) -> int:
        nxt = self.next_cycle
        rem = rem_ticks[idx]

        # The direction is fixed by the first call reaching this level
        if rem is None:
            if ticks > 0:
                rem = self.cycle_length - self._ticks_till_next_raw_check
            else:
                rem = self.cycle_length - (self._ticks_since_last_raw_check + 1)

                # The next level's current result belongs to our *next* raw check;
                # walking backwards, rewind it by one so it matches our last one
                if nxt is not None:
                    nxt._simulate_advance(rem_ticks, idx + 1, -1)

        rem += abs(ticks)

        hit_count = 0
        while True:
            # Conservative estimate of the hits we can reach
            hc = rem // self.cycle_length
            if hc <= 0:
                break
            if self.drift_sign > 0:
                hc = (rem - (hc - 1)) // self.cycle_length

            hit_count += hc
            rem -= hc * self.cycle_length

            if nxt is not None:
                rem -= self.drift_sign * nxt._simulate_advance(rem_ticks, idx + 1, hc)

        rem_ticks[idx] = rem
        return hit_count

    def calc_drift(self, target_hits: int) -> int:
        """Net tick correction the next level applies over `target_hits` raw checks (signed)."""
        nxt = self.next_cycle
        if nxt is None or target_hits == 0:
            return 0
        if target_hits > 0:
            return self.drift_sign * nxt.calc_num_target_hits(target_hits)

        # The next level's current raw check tells whether our *next* raw check
        # drifts, so retreat one extra hit and cancel the hit it lands on
        num_hits = nxt.calc_num_target_hits(-(-target_hits + 1))
        if nxt._ticks_since_last_raw_check == 0:
            num_hits -= 1
        return self.drift_sign * num_hits

    def calc_ticks_from_propagated_ticks(self, prop_ticks: int) -> int:
        """Signed tick distance to the `prop_ticks`-th raw check ahead (or behind, if negative)."""
        if prop_ticks > 0:
            return (
                self._ticks_till_next_raw_check
                + self.cycle_length * (prop_ticks - 1)
                + self.calc_drift(prop_ticks - 1)
            )
        if prop_ticks < 0:
            return -(
                self._ticks_since_last_raw_check
                + self.cycle_length * (-prop_ticks - 1)
                + self.calc_drift(-(-prop_ticks - 1))
                + 1
            )
        return 0

    # ---------------------------------------------------------
    # State updates
    # ---------------------------------------------------------
    def reset(self) -> None:
        """Rewind to tick 0. The next level is reset first so this one can read it."""
        nxt = self.next_cycle
        if nxt is not None:
            nxt.reset()

        # Bootstrap at tick -1
        self._tick_index = -1
        self._cycle_offset = self.cycle_length - 1
        self._cycle_target = self.cycle_length + self.initial_cycle_target

        self._ticks_since_last_raw_check = self._ticks_till_next_raw_check = -1
        self._prev_raw_check_result = False
        self._ticks_since_last_range_check = -1
        self._prev_range_check_result = self._cur_range_check_result = self._next_range_check_result = False
        self._last_check_range_did_length_drift = self._next_check_range_did_length_drift = False

        self._update_check_results()

        self.advance_ticks(1)

        if not (self._ticks_since_last_raw_check >= 0 and self._ticks_till_next_raw_check > 0):
            raise InvariantError(f"bad raw check distances after reset: {self._describe_state()}")

    def advance_ticks(self, ticks: int, *, _will_update_prev: bool = False) -> int:
        """Advance by `ticks` ticks and return the number of raw check hits passed."""
        if ticks < 0:
            raise ValueError(f"cannot advance by a negative tick count: {ticks}")
        if ticks == 0:
            return 0

        # Apply the last tick on its own so the prev* results describe the preceding tick
        if ticks >= 2 and not _will_update_prev:
            return self.advance_ticks(ticks - 1, _will_update_prev=True) + self.advance_ticks(1, _will_update_prev=True)

        nxt = self.next_cycle
        length = self.cycle_length

        hit_count = next_hit_count = 0
        rem = (length - self._ticks_till_next_raw_check) + ticks
        while True:
            # Conservative estimate of the hits we can reach
            hc = rem // length
            if hc <= 0:
                break
            if self.drift_sign > 0:
                hc = (rem - (hc - 1)) // length

            hit_count += hc
            rem -= hc * length

            # Advance the next level once per hit and apply its drift
            nhc = nxt.advance_ticks(hc) if nxt is not None else 0
            next_hit_count += nhc
            rem -= self.drift_sign * nhc

        # Advance the offset, wrapping at the cycle length
        self._cycle_offset += ticks
        num_wraps = self._cycle_offset // length
        self._cycle_offset -= num_wraps * length
        self._cycle_target -= num_wraps * length

        self._cycle_target += hit_count * length + next_hit_count * self.drift_sign
        if not (self._cycle_offset < self._cycle_target <= self._cycle_offset + length + 1):
            raise InvariantError(f"cycle counters out of bounds after advancing {ticks} tick(s): {self._describe_state()}")

        self._update_check_results()

        self._tick_index += ticks
        return hit_count

    def _describe_state(self) -> str:
        return (
            f"level={self.index} tick={self._tick_index} cycle_offset={self._cycle_offset} "
            f"cycle_target={self._cycle_target} cycle_length={self.cycle_length} base_length={self.base_length} "
            f"interval={self.interval} delta={self.delta} offset={self.offset}"
        )

    # ---------------------------------------------------------
    # Derived results
    # ---------------------------------------------------------
    def _update_check_results(self) -> None:
        nxt = self.next_cycle

        self._prev_raw_check_result = self.cur_raw_check_result
        self._prev_range_check_result = self._cur_range_check_result
        # needed for ticks_since_last_range_check of the previous level when base_length == 0
        self._prev_ticks_since_last_range_check = self._ticks_since_last_range_check

        # Raw checks
        if not self._cycle_target > self._cycle_offset:
            raise InvariantError(f"cycle target not ahead of cycle offset: {self._describe_state()}")
        group_drift = self.drift_sign if (nxt is not None and nxt.cur_raw_check_result) else 0
        self._ticks_since_last_raw_check = self._cycle_offset - (self._cycle_target - group_drift - self.cycle_length)
        self._ticks_till_next_raw_check = self._cycle_target - self._cycle_offset

        # Check range lengths: A for the last raw check, B for the next one
        len_a = len_b = self.base_length
        len_a_drift = len_b_drift = False
        if nxt is not None:
            if self.drift_sign == self.delta_sign:
                len_a_drift = nxt.cur_range_check_result
                len_b_drift = nxt.next_range_check_result
            else:
                len_a_drift = nxt.prev_range_check_result
                len_b_drift = nxt.cur_range_check_result

            if len_a_drift:
                len_a += 1
            if len_b_drift:
                len_b += 1

        # Group drift prediction
        if nxt is not None:
            self._ticks_till_next_group_drift = self._ticks_till_next_raw_check + self.cycle_length * nxt.ticks_till_any_raw_check
            if not self.next_raw_check_did_group_drift:
                self._ticks_till_next_group_drift += self.drift_sign
        else:
            self._ticks_till_next_group_drift = -1

        # Range checks. The edge cases follow from when the next level is ticked
        # relative to this one.
        if self.delta_sign > 0 or self.cur_raw_check_result:
            self._cur_range_check_result = self._ticks_since_last_raw_check < len_a
        else:
            self._cur_range_check_result = self._ticks_till_next_raw_check < len_b

        if self.delta_sign > 0 and not self.next_raw_check_result:
            self._next_range_check_result = self._ticks_since_last_raw_check + 1 < len_a
        else:
            self._next_range_check_result = self._ticks_till_next_raw_check - 1 < len_b

        self._last_check_range_did_length_drift = len_a_drift
        self._next_check_range_did_length_drift = len_b_drift

        # Range check and length drift predictions; the length drift one is lazy
        self._ticks_till_next_length_drift = None
        if self.base_length == 0:
            self._ticks_since_last_range_check = self._calc_ticks_since_last_length_drift()
            self._ticks_till_next_length_drift = self._calc_ticks_till_next_length_drift()
            self._ticks_till_next_range_check = self._ticks_till_next_length_drift
        elif self.delta_sign > 0:
            if self._cur_range_check_result:
                self._ticks_since_last_range_check = 0
            else:
                self._ticks_since_last_range_check = self._ticks_since_last_raw_check - (len_a - 1)
            self._ticks_till_next_range_check = 1 if self._ticks_since_last_raw_check < len_a - 1 else self._ticks_till_next_raw_check
        else:
            self._ticks_since_last_range_check = 0 if self._cur_range_check_result else self._ticks_since_last_raw_check
            self._ticks_till_next_range_check = max(1, self._ticks_till_next_raw_check - (len_b - 1))

    def _calc_ticks_since_last_length_drift(self) -> int:
        if not self.has_length_drifts:
            return -1
        nxt = self.next_cycle

        if self.drift_sign == self.delta_sign:
            # -1: go to the raw check before the one where the range check turned false
            return -(self.calc_ticks_from_propagated_ticks(-nxt._ticks_since_last_range_check - 1) + 1)

        # The previous value lags one tick behind, which cancels the extra tick
        # needed for the *previous* range check to be true
        return -(self.calc_ticks_from_propagated_ticks(-nxt._prev_ticks_since_last_range_check - 1) + 1)

    def _calc_ticks_till_next_length_drift(self) -> int:
        if not self.has_length_drifts:
            return -1
        nxt = self.next_cycle

        if self.drift_sign == self.delta_sign:
            return self.calc_ticks_from_propagated_ticks(nxt.ticks_till_next_range_check)

        # +1: the *previous* range check has to be true
        return self.calc_ticks_from_propagated_ticks(nxt.ticks_till_any_range_check + 1)

    # ---------------------------------------------------------
    # Cycle state
    # ---------------------------------------------------------
    @property
    def tick_index(self) -> int:
        return self._tick_index

    @property
    def cycle_offset(self) -> int:
        return self._cycle_offset

    @property
    def cycle_target(self) -> int:
        return self._cycle_target

    # ---------------------------------------------------------
    # Raw checks
    # ---------------------------------------------------------
    @property
    def ticks_since_last_raw_check(self) -> int:
        return self._ticks_since_last_raw_check

    @property
    def ticks_till_next_raw_check(self) -> int:
        return self._ticks_till_next_raw_check

    @property
    def ticks_till_any_raw_check(self) -> int:
        return 0 if self._ticks_since_last_raw_check == 0 else self._ticks_till_next_raw_check

    @property
    def prev_raw_check_result(self) -> bool:
        return self._prev_raw_check_result

    @property
    def cur_raw_check_result(self) -> bool:
        return self._ticks_since_last_raw_check == 0

    @property
    def next_raw_check_result(self) -> bool:
        return self._ticks_till_next_raw_check == 1

    # ---------------------------------------------------------
    # Range checks
    # ---------------------------------------------------------
    @property
    def has_range_checks(self) -> bool:
        return self.base_length > 0 or self.has_length_drifts

    @property
    def ticks_since_last_range_check(self) -> int:
        return self._ticks_since_last_range_check

    @property
    def ticks_till_next_range_check(self) -> int:
        return self._ticks_till_next_range_check

    @property
    def ticks_till_any_range_check(self) -> int:
        return 0 if self._cur_range_check_result else self._ticks_till_next_range_check

    @property
    def prev_range_check_result(self) -> bool:
        return self._prev_range_check_result

    @property
    def cur_range_check_result(self) -> bool:
        return self._cur_range_check_result

    @property
    def next_range_check_result(self) -> bool:
        return self._next_range_check_result

    # ---------------------------------------------------------
    # Group drifts
    # ---------------------------------------------------------
    @property
    def has_group_drifts(self) -> bool:
        return self.next_cycle is not None

    @property
    def last_raw_check_did_group_drift(self) -> bool:
        nxt = self.next_cycle
        return nxt.prev_raw_check_result if nxt is not None else False

    @property
    def next_raw_check_did_group_drift(self) -> bool:
        nxt = self.next_cycle
        return nxt.cur_raw_check_result if nxt is not None else False

    @property
    def ticks_till_next_group_drift(self) -> int:
        return self._ticks_till_next_group_drift

    @property
    def ticks_till_any_group_drift(self) -> int:
        if self._ticks_since_last_raw_check == 0 and self.last_raw_check_did_group_drift:
            return 0
        return self._ticks_till_next_group_drift

    # ---------------------------------------------------------
    # Length drifts
    # ---------------------------------------------------------
    @property
    def has_length_drifts(self) -> bool:
        nxt = self.next_cycle
        return nxt.has_range_checks if nxt is not None else False

    @property
    def last_check_range_did_length_drift(self) -> bool:
        return self._last_check_range_did_length_drift

    @property
    def next_check_range_did_length_drift(self) -> bool:
        return self._next_check_range_did_length_drift

    @property
    def ticks_till_next_length_drift(self) -> int:
        """Ticks till the next raw check whose check range's length drifts."""
        if self._ticks_till_next_length_drift is None:
            self._ticks_till_next_length_drift = self._calc_ticks_till_next_length_drift()
        return self._ticks_till_next_length_drift

    @property
    def ticks_till_any_length_drift(self) -> int:
        if self._ticks_since_last_raw_check == 0 and self._last_check_range_did_length_drift:
            return 0
        return self.ticks_till_next_length_drift
