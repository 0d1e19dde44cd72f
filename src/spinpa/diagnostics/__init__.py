"""Diagnostics package.

- validator: predictor vs direct float32 accumulation
- dt_ranges_table, check_info: text reports
- plot_ranges: optional (requires the diagnostics extras)
"""

__all__ = ["validator", "formatting", "dt_ranges_table", "check_info", "plot_ranges"]
