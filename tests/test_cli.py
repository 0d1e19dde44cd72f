# tests/test_cli.py

import pytest

import spinpa
from spinpa.cli import main
from spinpa.diagnostics import plot_ranges
from spinpa.diagnostics.formatting import format_fixed


def test_checks(capsys):
    assert main(["checks", "0.013", "--start-frame", "5", "--num-frames", "40"]) == 0
    out = capsys.readouterr().out.strip()
    expected = "".join("C" if r else "X" for r in spinpa.predict_check_results(0.013, start_frame=5, num_frames=40))
    assert out == expected
    assert len(out) == 40


def test_checks_negative_offset(capsys):
    assert main(["checks", "-0.02", "--num-frames", "12"]) == 0
    assert len(capsys.readouterr().out.strip()) == 12


def test_dt_ranges(capsys):
    assert main(["dt-ranges", "--cycle-depth", "2"]) == 0
    out = capsys.readouterr().out
    assert ">>>> 0: EXPONENT" in out
    assert "-> recursive cycles:" in out
    assert "-> frames: 0-" in out


def test_dt_ranges_without_cycles(capsys):
    assert main(["dt-ranges", "--cycle-depth", "0", "--no-start-ta"]) == 0
    out = capsys.readouterr().out
    assert "recursive cycles" not in out
    assert "startTA" not in out


def test_info_for_frame(capsys):
    assert main(["info", "0.013", "500"]) == 0
    out = capsys.readouterr().out
    assert "-> range index:" in out
    assert "<< CYCLE 0 >>" in out
    assert "-> current check result:" in out


def test_info_all_ranges(capsys):
    assert main(["info", "0.0", "--no-cycle-info"]) == 0
    out = capsys.readouterr().out
    assert ">>>> RANGE 0 <<<<" in out
    assert "CYCLE" not in out


def test_validate_ok(capsys):
    assert main(["validate", "--quiet", "--max-frames", "2000", "dt-ranges"]) == 0
    assert "Validation OK" in capsys.readouterr().out

    assert main(["validate", "--quiet", "--max-frames", "1500", "checks", "0.013"]) == 0
    assert "Validation OK" in capsys.readouterr().out


def test_validate_defaults_to_exact_check(capsys):
    argv = ["validate", "--quiet", "--max-frames", "200", "--delta-time", str(1 / 60)]
    assert main(argv + ["checks", "0", "--check-interval", "0.05"]) == 0
    assert "Validation OK" in capsys.readouterr().out

    # float32 rounding flips the check on frame 6 of this hazard
    assert main(argv[:2] + ["--float32"] + argv[2:] + ["checks", "0", "--check-interval", "0.05", "--no-skip"]) == 1
    captured = capsys.readouterr()
    assert "Validation FAILED" in captured.err
    assert "Validation OK" not in captured.out


def test_format_fixed():
    assert format_fixed(0.5, 3) == "0.500"
    assert format_fixed(-0.25, 2, signed=True) == "-0.25"
    assert format_fixed(0.25, 2, signed=True) == "+0.25"
    assert format_fixed(spinpa.HAZARD_LOAD_INTERVAL) == "0.050000000745058059692382812500"


def test_plot_series_and_png(tmp_path, capsys):
    import numpy as np

    x, y = plot_ranges.build_series()
    assert len(x) == len(y) > 0
    assert np.all(np.diff(x) > 0)

    pytest.importorskip("matplotlib")
    import matplotlib
    matplotlib.use("Agg")
    out = tmp_path / "ranges.png"
    assert main(["plot-ranges", "--out-png", str(out)]) == 0
    assert out.exists()
