import os
import sys

import pytest

# Ensure the repository root is on sys.path so `weeklywheel` can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from weeklywheel.market_calendar import group_by_week_anchor, week_anchor
from weeklywheel.prices import normalize_prices
from weeklywheel.weekly import aggregate_weekly, calc_pct, recent_weeks, weekly_frame


@pytest.mark.parametrize(
    "day, anchor",
    [
        ("2024-01-01", "2024-01-05"),  # Monday
        ("2024-01-03", "2024-01-05"),  # Wednesday
        ("2024-01-05", "2024-01-05"),  # Friday
        ("2024-01-06", "2024-01-05"),  # Saturday -> preceding Friday
        ("2024-01-07", "2024-01-12"),  # Sunday -> following Friday
        ("2024-02-28", "2024-03-01"),  # crosses a leap-year month end
        ("2023-12-31", "2024-01-05"),  # Sunday crossing the year
    ],
)
def test_week_anchor(day, anchor):
    assert week_anchor(day) == anchor


def test_group_by_week_anchor_keeps_member_order():
    daily = normalize_prices([("2024-01-04", 1.0), ("2024-01-06", 2.0), ("2024-01-08", 3.0)])

    groups = group_by_week_anchor(daily)

    assert list(groups) == ["2024-01-05", "2024-01-12"]
    assert [d.date for d in groups["2024-01-05"]] == ["2024-01-04", "2024-01-06"]


def test_calc_pct():
    assert calc_pct(110.0, 100.0) == pytest.approx(10.0)
    assert calc_pct(110.0, None) is None


THREE_WEEKS = [
    ("2024-01-02", 100.0),
    ("2024-01-03", 102.0),
    ("2024-01-05", 104.0),
    ("2024-01-08", 106.0),
    ("2024-01-10", 103.0),
    ("2024-01-16", 110.0),
]


def test_aggregate_weekly_newest_first_with_lookbacks():
    weekly = aggregate_weekly(normalize_prices(THREE_WEEKS))

    assert [w.week_key for w in weekly] == ["2024-01-19", "2024-01-12", "2024-01-05"]
    assert [w.week_end_date for w in weekly] == ["2024-01-16", "2024-01-10", "2024-01-05"]
    assert [w.week_end_price for w in weekly] == [110.0, 103.0, 104.0]

    first = weekly[-1]
    assert first.prev_trading_day_price == 102.0
    assert first.prev_2_trading_days_price == 100.0
    assert first.prev_week_price is None
    assert first.change_vs_prev_week is None
    assert first.change_vs_prev_trading_day == pytest.approx((104 - 102) / 102 * 100)

    middle = weekly[1]
    assert middle.prev_trading_day_price == 106.0
    assert middle.prev_2_trading_days_price == 104.0
    assert middle.prev_week_price == 104.0
    assert middle.change_vs_prev_week == pytest.approx((103 - 104) / 104 * 100)

    # A one-day week still reaches back across the week boundary for daily lookbacks
    last = weekly[0]
    assert last.prev_trading_day_price == 103.0
    assert last.prev_2_trading_days_price == 106.0
    assert last.prev_week_price == 103.0
    assert last.change_vs_prev_2_trading_days == pytest.approx((110 - 106) / 106 * 100)


def test_single_observation_yields_one_week_without_comparisons():
    weekly = aggregate_weekly(normalize_prices([("2024-01-05", 50.0)]))

    assert len(weekly) == 1
    w = weekly[0]
    assert (w.week_key, w.week_end_date, w.week_end_price) == ("2024-01-05", "2024-01-05", 50.0)
    assert w.change_vs_prev_trading_day is None
    assert w.change_vs_prev_2_trading_days is None
    assert w.change_vs_prev_week is None


def test_second_day_has_only_one_day_lookback():
    weekly = aggregate_weekly(normalize_prices([("2024-01-04", 10.0), ("2024-01-08", 11.0)]))

    newest = weekly[0]
    assert newest.prev_trading_day_price == 10.0
    assert newest.prev_2_trading_days_price is None
    assert newest.change_vs_prev_2_trading_days is None


def test_saturday_trade_closes_the_friday_week():
    weekly = aggregate_weekly(normalize_prices([("2024-01-04", 10.0), ("2024-01-06", 12.0)]))

    assert len(weekly) == 1
    assert weekly[0].week_key == "2024-01-05"
    assert weekly[0].week_end_date == "2024-01-06"
    assert weekly[0].week_end_price == 12.0


MULTI_DAY_WEEKS = [
    ("2024-01-01", 50.0),
    ("2024-01-02", 51.0),
    ("2024-01-03", 52.0),
    ("2024-01-04", 53.0),
    ("2024-01-05", 54.0),
    ("2024-01-08", 55.0),
    ("2024-01-09", 56.0),
    ("2024-01-12", 57.0),
    ("2024-01-15", 58.0),
    ("2024-01-17", 59.0),
    ("2024-01-19", 60.0),
]


def _with_price(rows, date, price):
    return [(d, price if d == date else p) for d, p in rows]


def test_prev_week_change_ignores_edits_two_weeks_back():
    base = aggregate_weekly(normalize_prices(MULTI_DAY_WEEKS))
    # Monday of the oldest week: neither the previous week's close nor within 2 days of week 3's close
    edited = aggregate_weekly(normalize_prices(_with_price(MULTI_DAY_WEEKS, "2024-01-01", 10.0)))

    assert edited[0] == base[0]
    assert edited[0].change_vs_prev_week == base[0].change_vs_prev_week


def test_daily_lookbacks_follow_edits_within_two_trading_days():
    base = aggregate_weekly(normalize_prices(MULTI_DAY_WEEKS))
    # 2024-01-15 is two trading days before 2024-01-19
    edited = aggregate_weekly(normalize_prices(_with_price(MULTI_DAY_WEEKS, "2024-01-15", 30.0)))

    assert edited[0].change_vs_prev_2_trading_days != base[0].change_vs_prev_2_trading_days
    assert edited[0].change_vs_prev_trading_day == base[0].change_vs_prev_trading_day
    assert edited[0].change_vs_prev_week == base[0].change_vs_prev_week


def test_prev_week_change_follows_previous_week_close():
    base = aggregate_weekly(normalize_prices(MULTI_DAY_WEEKS))
    edited = aggregate_weekly(normalize_prices(_with_price(MULTI_DAY_WEEKS, "2024-01-12", 40.0)))

    assert edited[0].prev_week_price == 40.0
    assert edited[0].change_vs_prev_week != base[0].change_vs_prev_week


def test_aggregate_is_idempotent():
    daily = normalize_prices(MULTI_DAY_WEEKS)

    assert aggregate_weekly(daily) == aggregate_weekly(daily)


def test_empty_series():
    assert aggregate_weekly([]) == []


def test_recent_weeks_and_frame():
    weekly = aggregate_weekly(normalize_prices(MULTI_DAY_WEEKS))

    assert [w.week_key for w in recent_weeks(weekly, 2)] == ["2024-01-19", "2024-01-12"]
    assert recent_weeks(weekly, 0) == []

    df = weekly_frame(weekly)
    assert df["week_key"].tolist() == ["2024-01-19", "2024-01-12", "2024-01-05"]
    assert "change_vs_prev_week" in df.columns
