#!/usr/bin/env python3
from __future__ import annotations
import argparse
import logging
import sys

from weeklywheel.backtest_core import BacktestConfig, run_wheel_backtest
from weeklywheel.config import TIME_RANGE_WEEKS, get_settings
from weeklywheel.errors import WheelError
from weeklywheel.logging_setup import init_logging, timed
from weeklywheel.paths import backtest_export_file
from weeklywheel.prices import load_daily_series
from weeklywheel.report import (
    export_backtest_csv,
    filter_time_range,
    print_backtest_report,
    print_daily_table,
    print_weekly_table,
    summarize_backtest,
)
from weeklywheel.weekly import aggregate_weekly

logger = logging.getLogger("run_backtest")

_AUTO = "auto"
_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _pct_to_fraction(val: float | None) -> float | None:
    # Users type percents ("1.0" means 1%); the engine takes fractions
    return None if val is None else val / 100.0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    s = get_settings()
    p = argparse.ArgumentParser(
        description="Aggregate a daily close CSV into weeks and backtest the wheel against buy-and-hold."
    )
    p.add_argument("-c", "--csv", required=True, help="CSV with a header row and date,price columns (YYYY-MM-DD)")
    p.add_argument("-t", "--ticker", default="series", help="Label used in titles and output file names")
    p.add_argument("--initial-capital", type=float, default=None,
                   help=f"Starting capital (default: {s.initial_capital:g})")
    p.add_argument("--call-premium-pct", type=float, default=None,
                   help=f"Covered call premium in percent of close (default: {s.call_premium_pct * 100:g})")
    p.add_argument("--put-premium-pct", type=float, default=None,
                   help=f"Cash-secured put premium in percent of close (default: {s.put_premium_pct * 100:g})")
    p.add_argument("--range", dest="time_range", default=s.default_time_range, choices=list(TIME_RANGE_WEEKS),
                   help=f"Backtest horizon (default: {s.default_time_range})")
    p.add_argument("--show-all", action="store_true", help="Print every backtest week instead of the newest rows")
    p.add_argument("--daily", action="store_true", help="Also print the daily close table")
    p.add_argument("--weekly", action="store_true", help="Also print the weekly comparison table")
    p.add_argument("--no-color", action="store_true", help="Disable ANSI colors in tables")
    p.add_argument("--export-csv", nargs="?", const=_AUTO, default=None,
                   help="Write the backtest ledger to this CSV path (timestamped file under the data dir if no path)")
    p.add_argument("--plot", action="store_true", help="Display the value/close chart")
    p.add_argument("--save-plot", help="If provided, save the chart image to this path")
    p.add_argument("--log-level", type=str.upper, default=s.log_level, choices=_LOG_LEVELS)
    p.add_argument("--log-dir", default=None, help="Directory for the rotating log file (default: data dir)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    a = parse_args(argv)
    init_logging(a.log_level, log_dir=a.log_dir)
    color = not a.no_color

    config = BacktestConfig.from_settings(
        initial_capital=a.initial_capital,
        call_premium_pct=_pct_to_fraction(a.call_premium_pct),
        put_premium_pct=_pct_to_fraction(a.put_premium_pct),
    )

    try:
        with timed("load + aggregate", logger=logger):
            daily = load_daily_series(a.csv)
            weekly = aggregate_weekly(daily)
        window = filter_time_range(weekly, a.time_range)
        with timed("wheel backtest", logger=logger):
            steps = run_wheel_backtest(window, config)
        summary = summarize_backtest(steps, config.initial_capital)
    except WheelError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if a.daily:
        print_daily_table(daily, color=color)
        print()
    if a.weekly:
        print_weekly_table(weekly, color=color)
        print()
    print_backtest_report(steps, summary, show_all=a.show_all, color=color)

    if a.export_csv:
        path = backtest_export_file(a.ticker, a.time_range) if a.export_csv == _AUTO else a.export_csv
        export_backtest_csv(steps, path)
    if (a.plot or a.save_plot) and steps:
        from weeklywheel.plot_results import plot_backtest_results
        plot_backtest_results(steps, ticker=a.ticker, show=a.plot, save_path=a.save_plot)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
