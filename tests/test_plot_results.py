import os
import sys
from datetime import date, timedelta

import matplotlib
matplotlib.use("Agg")
import matplotlib.figure
import pytest
from pathlib import Path

# Ensure the repository root is on sys.path so `weeklywheel` can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from weeklywheel import plot_results
from weeklywheel.backtest_core import run_wheel_backtest
from weeklywheel.errors import ValidationError
from weeklywheel.plot_results import plot_backtest_results
from weeklywheel.prices import normalize_prices
from weeklywheel.weekly import aggregate_weekly


def _steps():
    closes = [100.0, 106.0, 100.0, 97.0, 104.0, 111.0, 108.0]
    start = date(2023, 3, 3)
    rows = [((start + timedelta(weeks=i)).isoformat(), px) for i, px in enumerate(closes)]
    return run_wheel_backtest(aggregate_weekly(normalize_prices(rows)))


def test_plot_backtest_results_creates_png(tmp_path, monkeypatch):
    monkeypatch.setattr(plot_results, "PLOT_DIR", tmp_path)

    fig = plot_backtest_results(_steps(), ticker="TST")

    assert isinstance(fig, matplotlib.figure.Figure)
    assert len(fig.axes) == 2
    files = list(Path(tmp_path).glob("wheel_TST_2023-03-03_to_2023-04-14_*.png"))
    assert files, "PNG file was not created"


def test_plot_backtest_results_explicit_path(tmp_path):
    target = tmp_path / "chart.png"

    plot_backtest_results(_steps(), ticker="TST", save_path=str(target))

    assert target.exists()
    assert target.stat().st_size > 0


def test_plot_backtest_results_marks_assignments(tmp_path):
    fig = plot_backtest_results(_steps(), ticker="TST", save_path=str(tmp_path / "c.png"))

    labels = [t.get_text() for t in fig.axes[1].get_legend().get_texts()]
    assert "Called away" in labels
    assert "Put assigned" in labels


def test_plot_backtest_results_requires_steps():
    with pytest.raises(ValidationError):
        plot_backtest_results([], ticker="TST")
