from __future__ import annotations
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
import logging

import numpy as np
import pandas as pd

from .backtest_core import BacktestStep
from .config import TIME_RANGE_WEEKS, get_settings
from .errors import ValidationError
from .prices import DailyObservation
from .strategies import ASSIGNED, HOLDING_STOCK
from .weekly import WeeklyObservation, recent_weeks

logger = logging.getLogger(__name__)

RESET = "\033[0m"; BOLD = "\033[1m"; DIM = "\033[2m"
GREEN = "\033[92m"; RED = "\033[91m"; YELLOW = "\033[93m"; CYAN = "\033[96m"
# 256-color "orange" (approx). Falls back gracefully on terminals without 256-color support.
ORANGE = "\033[38;5;208m"


# ---------------------------------------------------------
# Horizon filtering
# ---------------------------------------------------------

def filter_time_range(weekly: Sequence[WeeklyObservation], time_range: str) -> List[WeeklyObservation]:
    """Keep the newest weeks for a horizon key ("3M", "6M", "1Y", "2Y", "3Y", "ALL")."""
    key = time_range.strip().upper()
    if key not in TIME_RANGE_WEEKS:
        raise ValidationError(f"Unknown time range {time_range!r}; choose from {', '.join(TIME_RANGE_WEEKS)}")
    n = TIME_RANGE_WEEKS[key]
    return list(weekly) if n is None else list(weekly[:n])


# ---------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------

@dataclass(frozen=True)
class BacktestSummary:
    weeks: int
    first_week: str
    last_week: str
    initial_capital: float

    final_value: float
    strategy_return_pct: float
    strategy_max_drawdown_pct: float

    buy_and_hold_value: float
    buy_and_hold_return_pct: float
    buy_and_hold_max_drawdown_pct: float

    current_state: str
    calls_assigned: int
    puts_assigned: int
    total_premium: float

    @property
    def outperformed(self) -> bool:
        return self.strategy_return_pct >= self.buy_and_hold_return_pct

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def max_drawdown_pct(values: Sequence[float]) -> float:
    """Largest peak-to-trough decline in percent (0.0 or negative) of a chronological series."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    peaks = np.maximum.accumulate(arr)
    drawdowns = (arr / peaks - 1.0) * 100.0
    return float(drawdowns.min())


def summarize_backtest(steps: Sequence[BacktestStep], initial_capital: Optional[float] = None) -> Optional[BacktestSummary]:
    """Roll a newest-first step list into headline numbers. Returns None for an empty run."""
    if not steps:
        return None
    capital = get_settings().initial_capital if initial_capital is None else initial_capital
    if capital <= 0:
        raise ValidationError(f"initial_capital must be positive, got {capital!r}")

    latest, oldest = steps[0], steps[-1]
    chronological = list(reversed(steps))

    assigned = [s for s in steps if s.outcome == ASSIGNED]
    return BacktestSummary(
        weeks=len(steps),
        first_week=oldest.week_date,
        last_week=latest.week_date,
        initial_capital=capital,
        final_value=latest.total_value,
        strategy_return_pct=(latest.total_value - capital) / capital * 100,
        strategy_max_drawdown_pct=max_drawdown_pct([capital] + [s.total_value for s in chronological]),
        buy_and_hold_value=latest.buy_and_hold_value,
        buy_and_hold_return_pct=(latest.buy_and_hold_value - capital) / capital * 100,
        buy_and_hold_max_drawdown_pct=max_drawdown_pct([s.buy_and_hold_value for s in chronological]),
        current_state=latest.position_state,
        calls_assigned=sum(1 for s in assigned if s.action.side == "call"),
        puts_assigned=sum(1 for s in assigned if s.action.side == "put"),
        total_premium=float(sum(s.premium_received for s in steps)),
    )


# ---------------------------------------------------------
# DataFrame views / export
# ---------------------------------------------------------

def steps_frame(steps: Sequence[BacktestStep]) -> pd.DataFrame:
    """Tabular view of backtest steps (row order preserved, action rendered as text)."""
    cols = [f for f in BacktestStep.__dataclass_fields__]
    if not steps:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame([s.to_dict() for s in steps], columns=cols)


def export_backtest_csv(steps: Sequence[BacktestStep], path: Union[str, Path]) -> str:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    steps_frame(steps).to_csv(out, index=False)
    logger.info(f"Wrote {len(steps)} backtest rows to {out}")
    return str(out)


# ---------------------------------------------------------
# Formatting
# ---------------------------------------------------------

def fmt_pct(val: Optional[float], *, color: bool = True) -> str:
    """'+1.23%' / '-1.23%' / '0.00%'; '-' when there is no value."""
    if val is None:
        return "-"
    text = f"{val:+.2f}%" if val != 0 else f"{val:.2f}%"
    if not color:
        return text
    if val > 0:
        return f"{GREEN}{text}{RESET}"
    if val < 0:
        return f"{RED}{text}{RESET}"
    return f"{DIM}{text}{RESET}"


def fmt_price(val: Optional[float]) -> str:
    return "-" if val is None else f"{val:.2f}"


def _fmt_money(val: float) -> str:
    return f"${val:,.0f}"


def _step_to_line(s: BacktestStep, *, color: bool = True) -> str:
    if s.outcome == ASSIGNED:
        verb = "Sold" if s.action.side == "call" else "Buy"
        tx = f"{verb} @ {s.strike_price:.2f}"
        tint = GREEN if s.action.side == "call" else ORANGE
    else:
        tx = "-"
        tint = ""
    outcome = s.outcome_description or s.outcome
    if color and tint:
        outcome = f"{tint}{outcome}{RESET}"
    return (
        f"{s.week_date}  {fmt_price(s.close_price):>10}  {fmt_pct(s.stock_return_pct, color=color):>8}  "
        f"{s.action.describe():<26}  {fmt_price(s.premium_received):>10}  "
        f"{fmt_price(s.next_close_price):>10}  {outcome:<28}  {tx:<16}  "
        f"{s.total_value:>12,.2f}  {fmt_pct(s.weekly_return_pct, color=color):>8}"
    )


# ---------------------------------------------------------
# Printing
# ---------------------------------------------------------

def print_daily_table(daily: Sequence[DailyObservation], *, limit: Optional[int] = None, color: bool = True) -> None:
    """Newest-first daily closes with day-over-day change."""
    n = get_settings().daily_display_rows if limit is None else limit
    rows = list(reversed(daily))[:n]
    if daily:
        print(f"{BOLD}Daily closes{RESET}  {len(daily)} trading days, {daily[0].date} to {daily[-1].date}")
    else:
        print(f"{BOLD}Daily closes{RESET}  no data")
    for d in rows:
        print(f"{d.date}  {fmt_price(d.price):>10}  {fmt_pct(d.change_pct, color=color):>8}")


def print_weekly_table(weekly: Sequence[WeeklyObservation], *, limit: Optional[int] = None, color: bool = True) -> None:
    """Newest-first weekly closes with the three look-back comparisons."""
    rows = recent_weeks(weekly, get_settings().recent_weeks if limit is None else limit)
    if rows:
        print(f"{BOLD}Weekly closes{RESET}  {len(rows)} weeks, {rows[-1].week_end_date} to {rows[0].week_end_date}")
    else:
        print(f"{BOLD}Weekly closes{RESET}  no data")
    print(f"{DIM}{'week end':<10}  {'close':>10}  {'vs 1d':>8}  {'vs 2d':>8}  {'vs 1w':>8}{RESET}")
    for w in rows:
        print(
            f"{w.week_end_date}  {fmt_price(w.week_end_price):>10}  "
            f"{fmt_pct(w.change_vs_prev_trading_day, color=color):>8}  "
            f"{fmt_pct(w.change_vs_prev_2_trading_days, color=color):>8}  "
            f"{fmt_pct(w.change_vs_prev_week, color=color):>8}"
        )


def print_backtest_report(
    steps: Sequence[BacktestStep],
    summary: Optional[BacktestSummary] = None,
    *,
    show_all: bool = False,
    limit: Optional[int] = None,
    color: bool = True,
) -> None:
    """Summary cards for strategy vs buy-and-hold, then the newest-first ledger."""
    if not steps:
        print(f"{YELLOW}No weeks to backtest.{RESET}")
        return
    summary = summary or summarize_backtest(steps)

    state = "Holding Stock" if summary.current_state == HOLDING_STOCK else "Holding Cash"
    winner = f"{GREEN}wheel ahead{RESET}" if summary.outperformed else f"{RED}buy-and-hold ahead{RESET}"
    print(f"{BOLD}{CYAN}Wheel Strategy{RESET}  {summary.first_week} to {summary.last_week} ({summary.weeks} weeks)  [{winner}]")
    print(
        f"  value {_fmt_money(summary.final_value)}  return {fmt_pct(summary.strategy_return_pct, color=color)}"
        f"  max dd {summary.strategy_max_drawdown_pct:.2f}%  state: {state}"
    )
    print(
        f"  premium {_fmt_money(summary.total_premium)}  calls assigned {summary.calls_assigned}"
        f"  puts assigned {summary.puts_assigned}"
    )
    print(f"{BOLD}Buy & Hold{RESET}")
    print(
        f"  value {_fmt_money(summary.buy_and_hold_value)}  return {fmt_pct(summary.buy_and_hold_return_pct, color=color)}"
        f"  max dd {summary.buy_and_hold_max_drawdown_pct:.2f}%"
    )

    n = len(steps) if show_all else (get_settings().backtest_display_rows if limit is None else limit)
    print()
    for s in steps[:n]:
        print(_step_to_line(s, color=color))
    if n < len(steps):
        print(f"{DIM}... {len(steps) - n} older weeks hidden (use --show-all){RESET}")
