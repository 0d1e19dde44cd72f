from __future__ import annotations

import argparse
from typing import List, Optional

import spinpa
from spinpa.core.constants import DELTA_TIME, HAZARD_LOAD_INTERVAL

from .formatting import format_end_frame, format_fixed


def print_dt_ranges(
    *,
    delta_time=DELTA_TIME,
    check_interval=HAZARD_LOAD_INTERVAL,
    cycle_depth: int = 8,
    frame_range: bool = True,
    start_ta: bool = True,
    effective_dts: bool = True,
    cycle_deltas: bool = True,
    cycle_intervals: bool = True,
    cycle_drifts: bool = True,
    cycle_lengths: bool = True,
) -> None:
    show_cycles = cycle_depth > 0 and (cycle_deltas or cycle_intervals or cycle_drifts or cycle_lengths)

    for idx, r in enumerate(spinpa.enumerate_effective_dt_ranges(delta_time)):
        if idx > 0:
            print()
        print(f">>>> {idx}: EXPONENT {r.time_active_exponent} <<<<")

        if frame_range:
            print(f"-> frames: {r.start_frame}-{format_end_frame(r.end_frame)}")
        if start_ta:
            print(f"-> startTA={format_fixed(r.start_time_active)}")
        if effective_dts:
            eff_dt = "n/a" if r.effective_dt is None else format_fixed(r.effective_dt)
            trans_dt = "n/a" if r.transition_dt is None else format_fixed(r.transition_dt)
            print(f"-> effDT={eff_dt} transEffDT={trans_dt}")

        # Ranges made of only their transition frame have no cycles to show
        if show_cycles and r.effective_dt:
            print("-> recursive cycles:")
            for i, lvl in enumerate(spinpa.describe_cycles(check_interval, r.effective_dt, depth=cycle_depth)):
                line = f"    {i}:"
                if cycle_deltas:
                    line += f" dt={format_fixed(lvl.delta, signed=True)}"
                if cycle_intervals:
                    line += f" intv={format_fixed(lvl.interval)}"
                if cycle_drifts:
                    line += f" drift={format_fixed(lvl.drift, signed=True)}"
                if cycle_lengths:
                    line += f" len={lvl.length:>8}"
                print(line)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="spinpa dt-ranges", description="Print the effective delta time ranges of TimeActive.")
    p.add_argument("--delta-time", type=float, default=float(DELTA_TIME), help="Nominal per-frame step (float32)")
    p.add_argument("--check-interval", type=float, default=float(HAZARD_LOAD_INTERVAL), help="Interval the recursive cycles are computed for")
    p.add_argument("--cycle-depth", type=int, default=8, help="Number of recursive cycles to print per range (default: 8)")
    p.add_argument("--no-frame-range", action="store_true", help="Omit the frame index range")
    p.add_argument("--no-start-ta", action="store_true", help="Omit the starting TimeActive value")
    p.add_argument("--no-effective-dts", action="store_true", help="Omit the effective / transition delta times")
    p.add_argument("--no-cycle-deltas", action="store_true")
    p.add_argument("--no-cycle-intervals", action="store_true")
    p.add_argument("--no-cycle-drifts", action="store_true")
    p.add_argument("--no-cycle-lengths", action="store_true")
    args = p.parse_args(argv)

    print_dt_ranges(
        delta_time=args.delta_time,
        check_interval=args.check_interval,
        cycle_depth=args.cycle_depth,
        frame_range=not args.no_frame_range,
        start_ta=not args.no_start_ta,
        effective_dts=not args.no_effective_dts,
        cycle_deltas=not args.no_cycle_deltas,
        cycle_intervals=not args.no_cycle_intervals,
        cycle_drifts=not args.no_cycle_drifts,
        cycle_lengths=not args.no_cycle_lengths,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
