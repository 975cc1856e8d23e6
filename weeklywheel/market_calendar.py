from __future__ import annotations
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, TypeVar

# ---------------------------------------------------------
# Week anchoring (Friday expiry weeks)
# ---------------------------------------------------------

FRIDAY = 5  # Sun=0 ... Sat=6 numbering, as used for the anchor shift

T = TypeVar("T")


def _sunday_based_weekday(dt: datetime) -> int:
    # Python counts Mon=0 ... Sun=6; shift so Sun=0 ... Sat=6
    return (dt.weekday() + 1) % 7


def week_anchor(date_str: str) -> str:
    """Return the Friday (YYYY-MM-DD) that labels the week containing *date_str*.

    Notes
    -----
    The shift is ``FRIDAY - weekday`` with Sunday counted as 0:
    - Mon..Fri move forward to that week's Friday
    - Saturday moves back one day to the Friday just before it
    - Sunday moves forward five days to the following Friday
    """
    dt = datetime.strptime(date_str, "%Y-%m-%d")
    shift = FRIDAY - _sunday_based_weekday(dt)
    return (dt + timedelta(days=shift)).strftime("%Y-%m-%d")


def group_by_week_anchor(items: Iterable[T], *, date_of=lambda x: x.date) -> Dict[str, List[T]]:
    """Bucket *items* by their week anchor, preserving input order inside each bucket.

    Keys come back in first-seen order; callers sort them when they need
    chronological weeks.
    """
    groups: Dict[str, List[T]] = {}
    for item in items:
        groups.setdefault(week_anchor(date_of(item)), []).append(item)
    return groups
