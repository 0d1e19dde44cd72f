#!/usr/bin/env python3
from __future__ import annotations

import argparse
from typing import List, Optional

import numpy as np

import spinpa
from spinpa.core.constants import DELTA_TIME


def _need_matplotlib():
    try:
        import matplotlib.pyplot as plt
        return plt
    except ImportError as e:
        raise RuntimeError('Need matplotlib. Install: pip install "spinpa[diagnostics]"') from e


def build_series(delta_time=DELTA_TIME):
    """(start frame, effective delta / nominal delta) per range, frozen range excluded."""
    starts, ratios = [], []
    for r in spinpa.enumerate_effective_dt_ranges(delta_time):
        if r.is_frozen or r.effective_dt is None:
            continue
        starts.append(r.start_frame)
        ratios.append(r.effective_dt / float(np.float32(delta_time)))
    return np.asarray(starts, dtype=float), np.asarray(ratios, dtype=float)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="spinpa plot-ranges", description="Plot effective delta time against frame index.")
    p.add_argument("--delta-time", type=float, default=float(DELTA_TIME), help="Nominal per-frame step (float32)")
    p.add_argument("--out-png", default=None, help="Write the plot to this PNG instead of showing it")
    args = p.parse_args(argv)

    plt = _need_matplotlib()

    x, y = build_series(args.delta_time)
    frozen = next(r for r in spinpa.enumerate_effective_dt_ranges(args.delta_time) if r.is_frozen)

    fig, ax = plt.subplots(figsize=(9.2, 4.8), constrained_layout=True)
    ax.set_axisbelow(True)
    ax.grid(True, which="major", color="0.88", linewidth=0.7)

    ax.step(np.maximum(x, 1.0), y, where="post", color="tab:blue", linewidth=1.4)
    ax.axhline(1.0, color="0.45", linewidth=0.8, linestyle="--")
    ax.axvline(frozen.start_frame, color="tab:red", linewidth=0.8, label=f"frozen at frame {frozen.start_frame}")

    ax.set_xscale("log")
    ax.set_yscale("log", base=2)
    ax.set_xlabel("Frame")
    ax.set_ylabel("Effective DT / nominal DT")
    ax.set_title("Effective delta time ranges of float32 TimeActive")
    ax.legend(loc="upper left", frameon=False)

    if args.out_png:
        fig.savefig(args.out_png, dpi=300)
        print(f"Saved: {args.out_png}")
    else:
        plt.show()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
