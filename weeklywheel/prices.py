# weeklywheel/prices.py
from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, IO, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .errors import ValidationError

logger = logging.getLogger(__name__)

PriceRow = Tuple[str, float]

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# -------------------------
# Data structures
# -------------------------

@dataclass(frozen=True)
class DailyObservation:
    date: str                      # YYYY-MM-DD
    price: float
    sequence_index: int            # 0-based rank in ascending-date order
    change_pct: Optional[float]    # None for the first observation

    def to_dict(self) -> dict:
        return asdict(self)


# -------------------------
# Row validation
# -------------------------

def _validate_date(raw: Any, row: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(f"Missing date in price row {row!r}")
    ds = raw.strip()
    # Ordering relies on fixed-width ISO strings, so the shape is checked before the calendar.
    if not _ISO_DATE.match(ds):
        raise ValidationError(f"Date must be YYYY-MM-DD, got {ds!r} in row {row!r}")
    try:
        datetime.strptime(ds, "%Y-%m-%d")
    except ValueError:
        raise ValidationError(f"Not a calendar date: {ds!r} in row {row!r}")
    return ds


def _validate_price(raw: Any, row: Any) -> float:
    if raw is None or isinstance(raw, bool):
        raise ValidationError(f"Missing price in row {row!r}")
    try:
        px = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Non-numeric price {raw!r} in row {row!r}")
    if not math.isfinite(px) or px <= 0:
        raise ValidationError(f"Price must be a positive number, got {raw!r} in row {row!r}")
    return px


def _coerce_row(row: Union[Tuple[Any, Any], Mapping[str, Any]]) -> PriceRow:
    """Accept ``(date, price)`` pairs or ``{"date": ..., "price": ...}`` mappings."""
    if isinstance(row, Mapping):
        raw_date, raw_price = row.get("date"), row.get("price")
    else:
        try:
            raw_date, raw_price = row
        except (TypeError, ValueError):
            raise ValidationError(f"Expected a (date, price) pair, got {row!r}")
    return _validate_date(raw_date, row), _validate_price(raw_price, row)


# -------------------------
# Normalizer (pure)
# -------------------------

def normalize_prices(rows: Iterable[Union[Tuple[Any, Any], Mapping[str, Any]]]) -> List[DailyObservation]:
    """Order raw ``(date, price)`` rows by date and attach day-over-day change.

    Sorting compares the ISO date strings directly (stable, so repeated dates
    keep their input order). ``change_pct`` is ``(price - prev) / prev * 100``
    and ``None`` for the first observation.

    Raises
    ------
    ValidationError
        If any row has a missing/malformed date or a missing, non-numeric,
        non-finite or non-positive price.
    """
    clean = [_coerce_row(r) for r in rows]
    ordered = sorted(clean, key=lambda r: r[0])

    out: List[DailyObservation] = []
    for i, (ds, px) in enumerate(ordered):
        change = None
        if i > 0:
            prev_px = ordered[i - 1][1]
            change = (px - prev_px) / prev_px * 100
        out.append(DailyObservation(date=ds, price=px, sequence_index=i, change_pct=change))
    return out


# -------------------------
# CSV ingest (upstream parser)
# -------------------------

def read_price_csv(source: Union[str, IO[str]]) -> List[PriceRow]:
    """
    Parse a headered ``date,price`` CSV into well-formed rows.

    Only the first two columns are used, whatever their header names. Rows
    with a blank date or a missing, non-numeric, non-finite or non-positive
    price are skipped. When a date repeats, the last row for it wins.

    Returns
    -------
    list[tuple[str, float]]
        Rows in file order (after de-duplication); not yet sorted.
    """
    try:
        # Extra fields on a row are dropped; short rows are padded and then filtered below
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=lambda fields: fields[:2],
        )
    except pd.errors.EmptyDataError:
        logger.warning("Price CSV is empty; no rows read")
        return []
    if df.shape[1] < 2:
        logger.warning("Price CSV has fewer than two columns; no rows read")
        return []

    dates = df.iloc[:, 0].astype(str).str.strip()
    prices = pd.to_numeric(df.iloc[:, 1].astype(str).str.strip(), errors="coerce")

    keep = (dates != "") & prices.notna() & np.isfinite(prices) & (prices > 0)
    skipped = int((~keep).sum())
    if skipped:
        logger.warning(f"Skipped {skipped} malformed price row(s)")

    frame = (
        pd.DataFrame({"date": dates[keep], "price": prices[keep].astype(float)})
        .drop_duplicates(subset=["date"], keep="last")
        .reset_index(drop=True)
    )
    return [(str(d), float(p)) for d, p in zip(frame["date"], frame["price"])]


def load_daily_series(source: Union[str, IO[str]]) -> List[DailyObservation]:
    """Read a price CSV and normalize it into an ascending daily series."""
    rows = read_price_csv(source)
    daily = normalize_prices(rows)
    if daily:
        logger.info(f"Loaded {len(daily)} trading days ({daily[0].date} to {daily[-1].date})")
    else:
        logger.info("Loaded empty price series")
    return daily


def daily_frame(daily: Iterable[DailyObservation]) -> pd.DataFrame:
    """
    Tabular view of a daily series.

    Returns columns:
      ['date', 'price', 'sequence_index', 'change_pct']
    """
    cols = ["date", "price", "sequence_index", "change_pct"]
    rows = [d.to_dict() for d in daily]
    if not rows:
        return pd.DataFrame(columns=cols)
    return pd.DataFrame(rows, columns=cols)
