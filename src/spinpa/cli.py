from __future__ import annotations

import argparse
import importlib
import inspect
import logging
import sys

from spinpa.core.constants import DELTA_TIME, HAZARD_LOAD_INTERVAL

DEFAULT_NUM_CHECK_FRAMES = 1000

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _run_module_main(modpath: str, argv: list[str]) -> int:
    """
    Import module and run its main().

    Supports:
      - main(argv: list[str] | None = None) -> int|None
      - main() -> int|None
    """
    mod = importlib.import_module(modpath)
    if not hasattr(mod, "main"):
        raise SystemExit(f"Module {modpath} has no main()")
    fn = getattr(mod, "main")

    sig = inspect.signature(fn)
    if len(sig.parameters) == 0:
        rv = fn()
    else:
        rv = fn(argv)
    return int(rv or 0)


def cmd_checks(argv: list[str]) -> int:
    import spinpa

    p = argparse.ArgumentParser(prog="spinpa checks", description="Print the sequence of load checks of a hazard (C = check, X = no check)")
    p.add_argument("offset", type=float, help="OnInterval offset of the hazard")
    p.add_argument("--start-frame", type=int, default=0)
    p.add_argument("--num-frames", type=int, default=DEFAULT_NUM_CHECK_FRAMES, help=f"default: {DEFAULT_NUM_CHECK_FRAMES}")
    p.add_argument("--check-interval", type=float, default=float(HAZARD_LOAD_INTERVAL))
    p.add_argument("--delta-time", type=float, default=float(DELTA_TIME))
    args = p.parse_args(argv)

    if args.start_frame < 0 or args.num_frames < 0:
        raise SystemExit("--start-frame and --num-frames must be >= 0")

    results = spinpa.predict_check_results(
        args.offset, args.check_interval,
        start_frame=args.start_frame, num_frames=args.num_frames, delta_time=args.delta_time,
    )
    print("".join("C" if r else "X" for r in results))
    return 0


def cmd_validate(argv: list[str]) -> int:
    from spinpa.core.errors import SpinpaError
    from spinpa.diagnostics.validator import Validator

    p = argparse.ArgumentParser(prog="spinpa validate", description="Validate the predictors against direct float32 accumulation of TimeActive")
    p.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    p.add_argument("--debug", action="store_true", help="Also log progress")
    p.add_argument("--max-frames", type=int, default=None, help="Stop after this many frames (default: until TimeActive freezes)")
    p.add_argument("--float32", action="store_true", help="Evaluate OnInterval in float32 instead of on the exact values of its inputs")
    p.add_argument("--delta-time", type=float, default=float(DELTA_TIME))
    sub = p.add_subparsers(dest="target", required=True)

    sub.add_parser("dt-ranges", help="Validate the effective DT ranges")

    p_checks = sub.add_parser("checks", help="Validate interval check results of one offset")
    p_checks.add_argument("offset", type=float)
    p_checks.add_argument("--check-interval", type=float, default=float(HAZARD_LOAD_INTERVAL))
    p_checks.add_argument("--no-deep", action="store_true", help="Skip the frame-by-frame pass")
    p_checks.add_argument("--no-skip", action="store_true", help="Skip the random seek pass")

    p_pred = sub.add_parser("predictions", help="Validate recursive cycle predictions of one offset")
    p_pred.add_argument("offset", type=float)
    p_pred.add_argument("--check-interval", type=float, default=float(HAZARD_LOAD_INTERVAL))

    args = p.parse_args(argv)

    level = logging.WARNING if args.quiet else (logging.DEBUG if args.debug else logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    validator = Validator(args.delta_time, exact=not args.float32, max_frames=args.max_frames)
    try:
        if args.target == "dt-ranges":
            validator.validate_dt_ranges()
        elif args.target == "checks":
            validator.validate_interval_checks(args.offset, args.check_interval, deep=not args.no_deep, skip=not args.no_skip)
        else:
            validator.validate_cycle_predictions(args.offset, args.check_interval)
    except SpinpaError as e:
        print(f"Validation FAILED: {e}", file=sys.stderr)
        cause = e.__cause__
        while cause is not None:
            print(f"  caused by {type(cause).__name__}: {cause}", file=sys.stderr)
            cause = cause.__cause__
        return 1

    print("Validation OK")
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    p = argparse.ArgumentParser(prog="spinpa", description="Float32 TimeActive interval check predictor CLI.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("dt-ranges", help="Print the effective delta time ranges", add_help=False)
    sub.add_parser("checks", help="Print the load check sequence of a hazard", add_help=False)
    sub.add_parser("info", help="Print the load check cycles of a hazard", add_help=False)
    sub.add_parser("validate", help="Validate the predictors against direct accumulation", add_help=False)
    sub.add_parser("plot-ranges", help="Plot effective delta time against frame index (diagnostics)", add_help=False)

    args, rest = p.parse_known_args(argv)

    if args.cmd == "validate":
        return cmd_validate(rest)

    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)

    if args.cmd == "checks":
        return cmd_checks(rest)

    tool_map = {
        "dt-ranges": "spinpa.diagnostics.dt_ranges_table",
        "info": "spinpa.diagnostics.check_info",
        "plot-ranges": "spinpa.diagnostics.plot_ranges",
    }
    if args.cmd in tool_map:
        return _run_module_main(tool_map[args.cmd], rest)

    raise RuntimeError("unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
