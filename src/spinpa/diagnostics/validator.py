"""
spinpa.diagnostics.validator
----------------------------
Validates the predictors against direct float32 accumulation of TimeActive.

- validate_dt_ranges: every per-frame increment matches its effective DT range
- validate_interval_checks: every (deep) or randomly sampled (skip) frame's
  check result matches the OnInterval formula, and every recursive cycle's raw
  and range check matches its exact closed form
- validate_cycle_predictions: every recursive cycle's "ticks since / till"
  and drift predictions match what is observed while walking frame by frame
"""

from __future__ import annotations

import itertools
import logging
import random
from fractions import Fraction
from typing import Iterator, List, Optional

import numpy as np

from ..core.constants import DELTA_TIME, MIN_REPORTING_GAP, PROGRESS_PRECISION, SKIP_VALIDATION_SEED
from ..core.errors import SpinpaError, ValidationError
from ..core.types import EffectiveDTRange
from ..engines._rational import rmod
from ..engines.dt_range_predictor import DTRangePredictor
from ..engines.dt_ranges import enumerate_effective_dt_ranges
from ..engines.interval_check import IntervalCheckPredictor
from ..engines.recursive_cycle import RecursiveCycle
from ..reference.simulation import enumerate_time_active_values, on_interval, on_interval_exact
from .formatting import format_end_frame, format_fixed

logger = logging.getLogger(__name__)


def _expect(cond: bool, msg: str) -> None:
    if not cond:
        raise ValidationError(msg)


def format_dt_range(r: EffectiveDTRange) -> str:
    eff_dt = "n/a" if r.effective_dt is None else format_fixed(r.effective_dt)
    return (
        f"exp={r.time_active_exponent} frames={r.start_frame}-{format_end_frame(r.end_frame)} "
        f"startTA={format_fixed(r.start_time_active)} effDT={eff_dt}"
    )


def expected_cycle_check(cycle: RecursiveCycle, tick: int, raw: bool) -> bool:
    """Closed form of a cycle's raw / range check at an arbitrary tick."""
    rem = rmod(tick * cycle.delta - cycle.offset, cycle.interval)
    return rem < (abs(cycle.delta) if raw else cycle.threshold)


def check_cycle_results(pred: DTRangePredictor) -> None:
    for cycle in pred.recursive_cycles:
        tick = cycle.tick_index
        _expect(
            expected_cycle_check(cycle, tick, True) == cycle.cur_raw_check_result,
            f"raw check mismatch on cycle {cycle.index} tick {tick} (predicted {cycle.cur_raw_check_result})",
        )
        _expect(
            expected_cycle_check(cycle, tick, False) == cycle.cur_range_check_result,
            f"range check mismatch on cycle {cycle.index} tick {tick} (predicted {cycle.cur_range_check_result})",
        )


class Validator:
    def __init__(self, delta_time=DELTA_TIME, *, exact: bool = True, max_frames: Optional[int] = None):
        self.delta_time = np.float32(delta_time)
        self.exact = exact
        self.max_frames = max_frames

    def time_active_values(self) -> Iterator[np.float32]:
        values = enumerate_time_active_values(self.delta_time)
        if self.max_frames is not None:
            values = itertools.islice(values, self.max_frames)
        return values

    def on_interval(self, time_active, interval, offset) -> bool:
        check = on_interval_exact if self.exact else on_interval
        return check(time_active, interval, offset, self.delta_time)

    def _progress(self, timer: int, label: str, done: int, total: Optional[int]) -> int:
        timer -= 1
        if timer < 0:
            if total:
                timer = max(total // PROGRESS_PRECISION, MIN_REPORTING_GAP)
                logger.debug("%s: %.2f%%", label, 100.0 * done / total)
            else:
                timer = MIN_REPORTING_GAP
                logger.debug("%s: frame %d", label, done)
        return timer

    # ---------------------------------------------------------
    # Effective DT ranges
    # ---------------------------------------------------------
    def validate_dt_ranges(self) -> int:
        """Returns the number of validated frame steps."""
        ranges = enumerate_effective_dt_ranges(self.delta_time)
        dt_range = next(ranges)
        range_idx = 0
        logger.info("Starting effective DT range validation, initial range: %s", format_dt_range(dt_range))

        time_active = None
        frame = progress_timer = 0
        for next_time_active in self.time_active_values():
            if time_active is None:
                time_active = next_time_active
                continue

            eff_dt: Optional[Fraction] = None
            try:
                # This frame has to be within the expected range
                _expect(dt_range.contains(frame), f"frame outside of range {format_dt_range(dt_range)}")
                if frame == dt_range.start_frame:
                    _expect(dt_range.start_time_active == float(time_active), f"range starts at TimeActive={dt_range.start_time_active!r}")

                eff_dt = Fraction(float(next_time_active)) - Fraction(float(time_active))
                if dt_range.end_frame is not None and dt_range.end_frame <= frame + 1:
                    logger.info(
                        "Validating range transition: exp=%d->%d frame=%d transEffDT=%.30f",
                        dt_range.time_active_exponent, dt_range.time_active_exponent + 1, frame, float(dt_range.transition_dt),
                    )
                    _expect(dt_range.transition_dt == eff_dt, f"transition delta {dt_range.transition_dt} != {eff_dt}")

                    nxt = next(ranges, None)
                    _expect(nxt is not None, "range enumeration ended early")
                    dt_range = nxt
                    range_idx += 1
                    progress_timer = 0
                    logger.info("Entering new effective DT range: %s", format_dt_range(dt_range))
                else:
                    _expect(Fraction(dt_range.effective_dt) == eff_dt, f"effective delta {dt_range.effective_dt!r} != {eff_dt}")

                # Reached the freeze range?
                if eff_dt <= 0:
                    _expect(dt_range.is_frozen, "TimeActive froze outside of the frozen range")
                    break
            except SpinpaError as e:
                raise ValidationError(
                    f"Error during validation of frame {frame} [TimeActive={float(time_active):.30f} effDt={eff_dt}]"
                ) from e

            time_active = next_time_active
            frame += 1

            progress_timer = self._progress(
                progress_timer, f"Validating DT range {range_idx} [frames {dt_range.start_frame}-{dt_range.end_frame}]",
                frame - dt_range.start_frame, dt_range.num_frames,
            )
        else:
            logger.info("Stopped DT range validation after %d frame(s)", frame)
            return frame

        _expect(next(ranges, None) is None, "range enumeration continues past the frozen range")
        return frame

    # ---------------------------------------------------------
    # Interval checks
    # ---------------------------------------------------------
    def validate_interval_checks(self, offset, interval, *, deep: bool = True, skip: bool = True, seed: int = SKIP_VALIDATION_SEED) -> None:
        pred = IntervalCheckPredictor(offset, interval, delta_time=self.delta_time)
        if deep:
            self._validate_deep(pred, offset, interval)
        if skip:
            self._validate_skip(pred, offset, interval, seed)

    def _log_range_change(self, pred: IntervalCheckPredictor, frame: int) -> None:
        cur = pred.current_range
        logger.info(
            "Advancing to DT range %d on frame %d: frames %d-%s effDt=%.30f",
            pred.current_range_index, frame, cur.start_frame,
            format_end_frame(cur.end_frame), float(cur.predictor.effective_dt),
        )

    def _validate_deep(self, pred: IntervalCheckPredictor, offset, interval) -> None:
        logger.info("Starting deep interval check validation for offset %.30f interval %.30f", float(offset), float(interval))

        last_time_active = None
        progress_timer = 0
        for time_active in self.time_active_values():
            frame = pred.current_frame
            expected = self.on_interval(time_active, interval, offset)
            try:
                check_cycle_results(pred.current_dt_range_predictor)
                _expect(pred.check_result == expected, "check result mismatch")
            except SpinpaError as e:
                raise ValidationError(
                    f"Error during validation of frame {frame} "
                    f"[TimeActive={float(time_active):.30f} OnInterval={expected} CheckResult={pred.check_result}]"
                ) from e

            # TimeActive froze, nothing changes from here on
            if time_active == last_time_active:
                break
            last_time_active = time_active

            last_range_idx = pred.current_range_index
            pred.current_frame += 1
            if last_range_idx != pred.current_range_index:
                self._log_range_change(pred, frame)
                progress_timer = 0

            cur = pred.current_range
            progress_timer = self._progress(
                progress_timer, f"Deep-validating DT range {1 + pred.current_range_index}/{len(pred.ranges)}",
                cur.predictor.current_frame, cur.num_frames,
            )

    def _validate_skip(self, pred: IntervalCheckPredictor, offset, interval, seed: int) -> None:
        logger.info("Starting skip interval check validation for offset %.30f interval %.30f", float(offset), float(interval))
        pred.current_frame = 0

        rng = random.Random(seed)
        last_time_active = None
        progress_timer = 0
        for frame, time_active in enumerate(self.time_active_values()):
            # Jump to a random subset of frames
            num_frames = pred.current_range.num_frames
            span = num_frames // 40 if num_frames is not None else 0
            if span <= 1 or rng.randrange(span) < 1:
                last_range_idx = pred.current_range_index
                prev_frame = pred.current_frame
                pred.current_frame = frame
                if last_range_idx != pred.current_range_index:
                    self._log_range_change(pred, frame)
                    progress_timer = 0

                expected = self.on_interval(time_active, interval, offset)
                try:
                    check_cycle_results(pred.current_dt_range_predictor)
                    _expect(pred.check_result == expected, "check result mismatch")
                except SpinpaError as e:
                    raise ValidationError(
                        f"Error during validation of frame skip {prev_frame}->{frame} "
                        f"[TimeActive={float(time_active):.30f} OnInterval={expected} CheckResult={pred.check_result}]"
                    ) from e

            if time_active == last_time_active:
                break
            last_time_active = time_active

            cur = pred.current_range
            progress_timer = self._progress(
                progress_timer, f"Skip-validating DT range {1 + pred.current_range_index}/{len(pred.ranges)}",
                cur.predictor.current_frame, cur.num_frames,
            )

    # ---------------------------------------------------------
    # Recursive cycle predictions
    # ---------------------------------------------------------
    def validate_cycle_predictions(self, offset, interval) -> None:
        pred = IntervalCheckPredictor(offset, interval, delta_time=self.delta_time)
        logger.info("Starting cycle prediction validation for offset %.30f interval %.30f", float(offset), float(interval))

        tracker = _CycleTracker(pred.current_dt_range_predictor)
        last_time_active = None
        for time_active in self.time_active_values():
            frame = pred.current_frame
            try:
                tracker.validate()
            except SpinpaError as e:
                raise ValidationError(f"Error during cycle prediction validation of frame {frame}") from e

            if time_active == last_time_active:
                break
            last_time_active = time_active

            last_range_idx = pred.current_range_index
            pred.current_frame += 1
            if last_range_idx != pred.current_range_index:
                self._log_range_change(pred, frame)
                tracker = _CycleTracker(pred.current_dt_range_predictor)


class _CycleTracker:
    """Observed history of every cycle of one range predictor, checked tick by tick."""

    def __init__(self, pred: DTRangePredictor):
        self.pred = pred
        cycles = pred.recursive_cycles

        self.next_validate_tick: List[int] = [c.tick_index for c in cycles]

        self.last_raw_tick: List[int] = []
        self.next_raw_tick: List[int] = []
        self.last_range_tick: List[int] = []
        self.next_range_tick: List[int] = []
        self.group_drift_indicator: List[bool] = []
        self.next_group_drift_tick: List[int] = []
        self.length_drift_indicator: List[bool] = []
        self.next_length_drift_tick: List[int] = []

        for c in cycles:
            tick = c.tick_index
            _expect(expected_cycle_check(c, tick - 1, True) == c.prev_raw_check_result, f"previous raw check mismatch on cycle {c.index}")
            self.last_raw_tick.append(tick - (1 if c.prev_raw_check_result else c.ticks_since_last_raw_check))
            self.next_raw_tick.append(tick + c.ticks_till_any_raw_check)

            _expect(expected_cycle_check(c, tick - 1, False) == c.prev_range_check_result, f"previous range check mismatch on cycle {c.index}")
            self.last_range_tick.append(tick - (1 if c.prev_range_check_result else c.ticks_since_last_range_check))
            self.next_range_tick.append(tick + c.ticks_till_any_range_check)

            self.group_drift_indicator.append(c.last_raw_check_did_group_drift)
            self.next_group_drift_tick.append(tick + c.ticks_till_any_group_drift)
            self.length_drift_indicator.append(c.last_check_range_did_length_drift)
            self.next_length_drift_tick.append(tick + c.ticks_till_any_length_drift)

    def validate(self) -> None:
        for cycle in self.pred.recursive_cycles:
            try:
                self._validate_cycle(cycle)
            except SpinpaError as e:
                raise ValidationError(
                    f"Error during validation of recursive cycle {cycle.index} "
                    f"[cycle_offset={cycle.cycle_offset} cycle_target={cycle.cycle_target} "
                    f"cycle_length={cycle.cycle_length} base_length={cycle.base_length}]"
                ) from e

    @staticmethod
    def _last_tick(cycle: RecursiveCycle, predicted: int, cur_result: bool, last: int) -> int:
        if cur_result:
            last = cycle.tick_index
        _expect(predicted == cycle.tick_index - last, f"predicted {predicted} tick(s) since last, observed {cycle.tick_index - last}")
        return last

    @staticmethod
    def _next_tick(cycle: RecursiveCycle, predicted: int, cur_result: bool, nxt: int) -> int:
        tick = cycle.tick_index
        if cur_result:
            _expect(nxt == tick, f"event expected on tick {nxt}, happened on tick {tick}")
            return tick + predicted
        _expect(nxt > tick, f"missed event expected on tick {nxt}")
        _expect(nxt == tick + predicted, f"predicted {predicted} tick(s) till next, expected {nxt - tick}")
        return nxt

    def _validate_cycle(self, c: RecursiveCycle) -> None:
        i, tick = c.index, c.tick_index

        # Only validate once per tick of this cycle
        _expect(self.next_validate_tick[i] >= tick, f"cycle skipped tick {self.next_validate_tick[i]}")
        if self.next_validate_tick[i] > tick:
            return
        self.next_validate_tick[i] += 1

        # Raw and range check results
        _expect(c.prev_raw_check_result == (self.last_raw_tick[i] == tick - 1), "previous raw check result")
        _expect(expected_cycle_check(c, tick, True) == c.cur_raw_check_result, "current raw check result")
        _expect(expected_cycle_check(c, tick + 1, True) == c.next_raw_check_result, "next raw check result")
        _expect(c.prev_range_check_result == (self.last_range_tick[i] == tick - 1), "previous range check result")
        _expect(expected_cycle_check(c, tick, False) == c.cur_range_check_result, "current range check result")
        _expect(expected_cycle_check(c, tick + 1, False) == c.next_range_check_result, "next range check result")

        # Raw and range check predictions
        self.last_raw_tick[i] = self._last_tick(c, c.ticks_since_last_raw_check, c.cur_raw_check_result, self.last_raw_tick[i])
        self.next_raw_tick[i] = self._next_tick(c, c.ticks_till_next_raw_check, c.cur_raw_check_result, self.next_raw_tick[i])

        if c.has_range_checks:
            self.last_range_tick[i] = self._last_tick(c, c.ticks_since_last_range_check, c.cur_range_check_result, self.last_range_tick[i])
            self.next_range_tick[i] = self._next_tick(c, c.ticks_till_next_range_check, c.cur_range_check_result, self.next_range_tick[i])
        else:
            _expect(not (c.prev_range_check_result or c.cur_range_check_result or c.next_range_check_result), "range check without range checks")
            _expect(c.ticks_since_last_range_check == -1 and c.ticks_till_next_range_check == -1, "range check prediction without range checks")

        # Group drifts
        if c.has_group_drifts:
            drift = c.drift_sign if c.next_raw_check_did_group_drift else 0
            _expect(c.ticks_till_next_raw_check + c.ticks_since_last_raw_check == c.cycle_length + drift, "raw check distance")
            _expect(c.last_raw_check_did_group_drift == self.group_drift_indicator[i], "group drift indicator")
            if c.next_raw_check_result:
                self.group_drift_indicator[i] = c.next_raw_check_did_group_drift
            self.next_group_drift_tick[i] = self._next_tick(
                c, c.ticks_till_next_group_drift, c.cur_raw_check_result and c.last_raw_check_did_group_drift, self.next_group_drift_tick[i]
            )
        else:
            _expect(not (c.last_raw_check_did_group_drift or c.next_raw_check_did_group_drift), "group drift without next cycle")
            _expect(c.ticks_till_next_group_drift == -1 and c.ticks_till_any_group_drift == -1, "group drift prediction without next cycle")

        # Length drifts
        if c.has_length_drifts:
            if c.delta > 0 or c.cur_raw_check_result:
                length = c.base_length + (1 if c.last_check_range_did_length_drift else 0)
                _expect(c.cur_range_check_result == (c.ticks_since_last_raw_check < length), "range check vs last check range length")
            else:
                length = c.base_length + (1 if c.next_check_range_did_length_drift else 0)
                _expect(c.cur_range_check_result == (c.ticks_till_any_raw_check < length), "range check vs next check range length")
            _expect(c.last_check_range_did_length_drift == self.length_drift_indicator[i], "length drift indicator")
            if c.next_raw_check_result:
                self.length_drift_indicator[i] = c.next_check_range_did_length_drift
            self.next_length_drift_tick[i] = self._next_tick(
                c, c.ticks_till_next_length_drift, c.cur_raw_check_result and c.last_check_range_did_length_drift, self.next_length_drift_tick[i]
            )
        else:
            _expect(not (c.last_check_range_did_length_drift or c.next_check_range_did_length_drift), "length drift without range checks")
            _expect(c.ticks_till_next_length_drift == -1 and c.ticks_till_any_length_drift == -1, "length drift prediction without range checks")
