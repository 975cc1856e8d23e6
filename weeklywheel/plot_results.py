# weeklywheel/plot_results.py
from __future__ import annotations
from typing import Optional, Sequence
import logging

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.dates as mdates
from matplotlib.figure import Figure

from .backtest_core import BacktestStep
from .errors import ValidationError
from .paths import PLOT_DIR, backtest_plot_file
from .strategies import ASSIGNED

logger = logging.getLogger(__name__)


def _chronological_frame(steps: Sequence[BacktestStep]) -> pd.DataFrame:
    rows = [
        {
            "date": s.week_date,
            "close": s.close_price,
            "strategy": s.total_value,
            "buy_and_hold": s.buy_and_hold_value,
            "strike": s.strike_price,
            "call_away": s.outcome == ASSIGNED and s.action.side == "call",
            "put_in": s.outcome == ASSIGNED and s.action.side == "put",
        }
        for s in reversed(steps)
    ]
    df = pd.DataFrame(rows)
    df["date"] = pd.to_datetime(df["date"])
    return df.set_index("date")


def _marker_series(df: pd.DataFrame, flag: str) -> pd.Series:
    return df["close"].where(df[flag], np.nan)


def plot_backtest_results(
    steps: Sequence[BacktestStep],
    *,
    ticker: str = "series",
    show: bool = False,
    save_path: Optional[str] = None,
    plot_dir: Optional[str] = None,
) -> Figure:
    """Plot wheel value vs buy-and-hold and mark assignment weeks on the close series.

    The figure is written to *save_path* if given, otherwise to a timestamped
    PNG under :data:`PLOT_DIR` (or *plot_dir*). The :class:`~matplotlib.figure.Figure`
    is returned for further use.
    """
    if not steps:
        raise ValidationError("No backtest steps to plot")

    df = _chronological_frame(steps)

    fig, (ax_val, ax_px) = plt.subplots(2, 1, figsize=(12, 8), sharex=True, gridspec_kw={"height_ratios": [3, 2]})

    ax_val.plot(df.index, df["strategy"], label="Wheel strategy", color="tab:blue", linewidth=1.8)
    ax_val.plot(df.index, df["buy_and_hold"], label="Buy & hold", color="tab:gray", linewidth=1.4, linestyle="--")
    ax_val.set_ylabel("Portfolio value")
    ax_val.set_title(f"{ticker} wheel backtest ({df.index[0]:%Y-%m-%d} to {df.index[-1]:%Y-%m-%d})")
    ax_val.grid(alpha=0.3)
    ax_val.legend(loc="upper left")

    ax_px.plot(df.index, df["close"], label="Weekly close", color="black", linewidth=1.2)
    ax_px.step(df.index, df["strike"], where="post", label="Strike sold", color="tab:purple", alpha=0.5, linewidth=1.0)
    ax_px.scatter(df.index, _marker_series(df, "call_away"), marker="^", color="tab:green", label="Called away", zorder=3)
    ax_px.scatter(df.index, _marker_series(df, "put_in"), marker="v", color="tab:orange", label="Put assigned", zorder=3)
    ax_px.set_ylabel("Close")
    ax_px.grid(alpha=0.3)
    ax_px.legend(loc="upper left")

    ax_px.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m"))
    fig.autofmt_xdate()
    fig.tight_layout()

    filename = save_path or backtest_plot_file(
        ticker,
        f"{df.index[0]:%Y-%m-%d}",
        f"{df.index[-1]:%Y-%m-%d}",
        plot_dir=plot_dir if plot_dir is not None else PLOT_DIR,
    )
    fig.savefig(filename)
    logger.info(f"Saved backtest plot to {filename}")

    if show:
        plt.show()
    return fig
