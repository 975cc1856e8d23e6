from __future__ import annotations
"""
Daily -> weekly reduction.

Each week is labelled by its Friday anchor and represented by the last
trading day that falls in it. Three look-back comparisons are attached:

- vs previous trading day and vs two trading days prior, both looked up in
  the *global* daily sequence (they may reach into the prior week)
- vs previous week, looked up in the ascending weekly sequence

Results are returned newest week first.
"""
import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Sequence

import pandas as pd

from .market_calendar import group_by_week_anchor
from .prices import DailyObservation

logger = logging.getLogger(__name__)


# -------------------------
# Data structures
# -------------------------

@dataclass(frozen=True)
class WeeklyObservation:
    week_key: str                                   # Friday anchor, YYYY-MM-DD
    week_end_date: str                              # last trading day in the week
    week_end_price: float

    change_vs_prev_trading_day: Optional[float]
    change_vs_prev_2_trading_days: Optional[float]
    change_vs_prev_week: Optional[float]

    prev_trading_day_price: Optional[float]
    prev_2_trading_days_price: Optional[float]
    prev_week_price: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


# -------------------------
# Helpers (pure)
# -------------------------

def calc_pct(current: float, past: Optional[float]) -> Optional[float]:
    """Percent change from *past* to *current*; None when there is no past value."""
    if past is None:
        return None
    return (current - past) / past * 100


def _price_at(daily: Sequence[DailyObservation], idx: int) -> Optional[float]:
    return daily[idx].price if idx >= 0 else None


# -------------------------
# Aggregator
# -------------------------

def aggregate_weekly(daily: Sequence[DailyObservation]) -> List[WeeklyObservation]:
    """Reduce an ascending daily series to one observation per Friday-anchored week.

    Weeks with a single trading day are kept; nothing is merged or dropped.
    """
    groups = group_by_week_anchor(daily)

    ascending: List[WeeklyObservation] = []
    for week_key in sorted(groups):
        last_day = groups[week_key][-1]
        idx = last_day.sequence_index

        prev_day_price = _price_at(daily, idx - 1)
        prev_2_day_price = _price_at(daily, idx - 2)
        prev_week_price = ascending[-1].week_end_price if ascending else None

        ascending.append(
            WeeklyObservation(
                week_key=week_key,
                week_end_date=last_day.date,
                week_end_price=last_day.price,
                change_vs_prev_trading_day=calc_pct(last_day.price, prev_day_price),
                change_vs_prev_2_trading_days=calc_pct(last_day.price, prev_2_day_price),
                change_vs_prev_week=calc_pct(last_day.price, prev_week_price),
                prev_trading_day_price=prev_day_price,
                prev_2_trading_days_price=prev_2_day_price,
                prev_week_price=prev_week_price,
            )
        )

    logger.debug(f"Aggregated {len(daily)} trading days into {len(ascending)} weeks")
    ascending.reverse()
    return ascending


def recent_weeks(weekly: Sequence[WeeklyObservation], n: int) -> List[WeeklyObservation]:
    """Newest *n* weeks of a newest-first weekly series."""
    return list(weekly[: max(n, 0)])


def weekly_frame(weekly: Sequence[WeeklyObservation]) -> pd.DataFrame:
    """Tabular view of a weekly series (row order preserved)."""
    cols = list(WeeklyObservation.__dataclass_fields__)
    if not weekly:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame([w.to_dict() for w in weekly], columns=cols)
