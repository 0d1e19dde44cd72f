from __future__ import annotations

import argparse
from typing import List, Optional

import spinpa
from spinpa.core.constants import DELTA_TIME, HAZARD_LOAD_INTERVAL
from spinpa.engines.dt_range_predictor import DTRangePredictor
from spinpa.engines.interval_check import DTRange

from .formatting import format_end_frame, format_fixed


def print_cycle_states(pred: DTRangePredictor, *, raw_check_info: bool = True, range_check_info: bool = True) -> None:
    for i, c in enumerate(pred.recursive_cycles):
        print(f"    << CYCLE {i} >>")
        print(f"        -> delta:  {format_fixed(c.delta, signed=True)}")
        print(f"        -> interv: {format_fixed(c.interval)}")
        print(f"        -> thresh: {format_fixed(c.threshold)}")
        print(f"        -> offset: {format_fixed(c.offset, signed=True)}")
        print(f"        -> cycle state: {c.cycle_offset}/{c.cycle_length} target={c.cycle_target}")

        if raw_check_info:
            print("        -> raw check info:")
            print(f"            - prev/cur/next raw check: {c.prev_raw_check_result} / {c.cur_raw_check_result} / {c.next_raw_check_result}")
            if c.has_group_drifts:
                print(f"            - last raw check: before {c.ticks_since_last_raw_check} tick(s), group drift: {c.last_raw_check_did_group_drift}")
                print(f"            - next raw check: in {c.ticks_till_next_raw_check} tick(s), group drift: {c.next_raw_check_did_group_drift}")
            else:
                print(f"            - last raw check: before {c.ticks_since_last_raw_check} tick(s)")
                print(f"            - next raw check: in {c.ticks_till_next_raw_check} tick(s)")
            print(f"            - next group drift: in {c.ticks_till_next_group_drift} tick(s)")

        if range_check_info and c.has_range_checks:
            print("        -> range check info:")
            if c.has_length_drifts:
                print(f"            - range length: base: {c.base_length}, for drifts: {c.base_length + 1}")
                print(f"            - prev/cur/next range check: {c.prev_range_check_result} / {c.cur_range_check_result} / {c.next_range_check_result}")
                print(f"            - last range check: before {c.ticks_since_last_range_check} tick(s), length drift: {c.last_check_range_did_length_drift}")
                print(f"            - next range check: in {c.ticks_till_next_range_check} tick(s), length drift: {c.next_check_range_did_length_drift}")
                print(f"            - next length drift: in {c.ticks_till_next_length_drift} tick(s)")
            else:
                print(f"            - range length: {c.base_length}")
                print(f"            - prev/cur/next range check: {c.prev_range_check_result} / {c.cur_range_check_result} / {c.next_range_check_result}")
                print(f"            - last range check: before {c.ticks_since_last_range_check} tick(s)")
                print(f"            - next range check: in {c.ticks_till_next_range_check} tick(s)")


def _print_range_header(r: DTRange) -> None:
    print(f"-> frames: {r.start_frame}-{format_end_frame(r.end_frame)}")
    print(f"-> DT: {format_fixed(r.predictor.effective_dt)}")
    print(f"-> offset: {format_fixed(r.carried_offset, signed=True)}")


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="spinpa info",
        description="Print the load check cycles of a hazard with a given offset, for all ranges or one frame.",
    )
    p.add_argument("offset", type=float, help="OnInterval offset of the hazard")
    p.add_argument("frame", type=int, nargs="?", default=None, help="If given, print the cycle states on this frame")
    p.add_argument("--check-interval", type=float, default=float(HAZARD_LOAD_INTERVAL), help="OnInterval check interval")
    p.add_argument("--delta-time", type=float, default=float(DELTA_TIME), help="Nominal per-frame step (float32)")
    p.add_argument("--no-cycle-info", action="store_true", help="Omit the recursive cycle states")
    p.add_argument("--no-raw-check-info", action="store_true", help="Omit raw check details")
    p.add_argument("--no-range-check-info", action="store_true", help="Omit range check details")
    args = p.parse_args(argv)

    if args.frame is not None and args.frame < 0:
        raise SystemExit("frame must be >= 0")

    pred = spinpa.make_predictor(args.offset, args.check_interval, delta_time=args.delta_time)
    detail = dict(raw_check_info=not args.no_raw_check_info, range_check_info=not args.no_range_check_info)

    if args.frame is not None:
        pred.current_frame = args.frame
        r = pred.current_range

        print(f"-> range index: {pred.current_range_index}")
        _print_range_header(r)
        print(f"-> current check result: {pred.check_result}")
        if not args.no_cycle_info and r.predictor.recursive_cycles:
            print("-> current cycle states:")
            print_cycle_states(r.predictor, **detail)
        return 0

    for idx, r in enumerate(pred.ranges):
        if idx > 0:
            print()
        print(f">>>> RANGE {idx} <<<<")
        _print_range_header(r)
        if not args.no_cycle_info and r.predictor.recursive_cycles:
            print("-> initial cycle states:")
            print_cycle_states(r.predictor, **detail)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
