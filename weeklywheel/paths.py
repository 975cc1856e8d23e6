# weeklywheel/paths.py
from __future__ import annotations

from datetime import datetime
from pathlib import Path

from .config import get_settings

# Root project directory (two parents up from this file: weeklywheel/)
ROOT_DIR = Path(__file__).resolve().parents[1]

# Data, log and output directories
DATA_ROOT = Path(get_settings().data_root or (ROOT_DIR / "wheel_data")).resolve()
PLOT_DIR = DATA_ROOT / "plots"
EXPORT_DIR = DATA_ROOT / "exports"


def ensure_dir(p: str | Path) -> None:
    """Ensure directory exists."""
    Path(p).mkdir(parents=True, exist_ok=True)


# -----------------------------
# Backtest outputs
# -----------------------------

def _slug(label: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in label.strip()) or "series"


def backtest_export_file(ticker: str, time_range: str, export_dir: str | Path | None = None) -> str:
    """
    Unique CSV path for a backtest ledger export.
    Example: wheel_data/exports/wheel_SPY_1Y_20240105_101500.csv
    """
    out_dir = Path(export_dir) if export_dir is not None else EXPORT_DIR
    ensure_dir(out_dir)
    timestamp_str = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(out_dir / f"wheel_{_slug(ticker).upper()}_{time_range}_{timestamp_str}.csv")


def backtest_plot_file(ticker: str, first_week: str, last_week: str, plot_dir: str | Path | None = None) -> str:
    """
    Unique PNG path for a backtest chart.
    Example: wheel_data/plots/wheel_SPY_2023-01-06_to_2024-01-05_20240105_101500.png
    """
    out_dir = Path(plot_dir) if plot_dir is not None else PLOT_DIR
    ensure_dir(out_dir)
    timestamp_str = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(out_dir / f"wheel_{_slug(ticker).upper()}_{first_week}_to_{last_week}_{timestamp_str}.png")
