from __future__ import annotations
"""
Wheel backtest engine.

Walks a weekly close series in chronological order, selling one option leg
per week and settling it against the following week's close. The ledger
(cash, shares, position state) is an explicit accumulator threaded through
``step_week``; nothing is shared between runs, so parameter sweeps over the
same weekly series can run side by side.

Design goals
------------
- Pure: no I/O, no rounding, no module-level mutable state
- Fail fast on prices that would divide by zero or yield NaN/Infinity
- Steps are immutable and returned newest first, like the weekly series
"""
import logging
import math
from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import get_settings
from .errors import DomainError
from .strategies import HOLDING_STOCK, ASSIGNED, Leg, Outcome, PositionState, strategy_for
from .weekly import WeeklyObservation

logger = logging.getLogger(__name__)


# ----------------------------
# Configuration surface
# ----------------------------

@dataclass(frozen=True)
class BacktestConfig:
    initial_capital: float = 10_000.0
    call_premium_pct: float = 0.01      # decimal fraction of the close, per share
    put_premium_pct: float = 0.05
    call_strike_factor: float = 1.05    # 5% OTM covered call
    put_strike_factor: float = 1.00     # ATM cash-secured put

    @staticmethod
    def from_settings(**overrides: Any) -> "BacktestConfig":
        s = get_settings()
        cfg = BacktestConfig(
            initial_capital=s.initial_capital,
            call_premium_pct=s.call_premium_pct,
            put_premium_pct=s.put_premium_pct,
            call_strike_factor=s.call_strike_factor,
            put_strike_factor=s.put_strike_factor,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(cfg, **overrides) if overrides else cfg


# ----------------------------
# Ledger + step records
# ----------------------------

@dataclass(frozen=True)
class WheelLedger:
    cash: float
    shares: float
    state: PositionState
    total_value: float     # value at the end of the last simulated week


@dataclass(frozen=True)
class BacktestStep:
    week_date: str
    close_price: float
    next_close_price: Optional[float]

    entry_state: PositionState       # state entering the week
    position_state: PositionState    # state after this week's outcome

    action: Leg
    strike_price: float
    premium_received: float

    outcome: Outcome
    outcome_description: str

    cash_balance: float
    shares_held: float
    total_value: float               # cash_balance + shares_held * close_price

    buy_and_hold_value: float
    stock_return_pct: Optional[float]
    weekly_return_pct: float

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["action"] = self.action.describe()
        return d


# ----------------------------
# Helpers
# ----------------------------

def _checked_price(week: WeeklyObservation) -> float:
    px = week.week_end_price
    if px is None or not math.isfinite(px) or px <= 0:
        raise DomainError(f"Invalid close price {px!r} for week ending {week.week_end_date}")
    return px


def seed_ledger(first_week: WeeklyObservation, config: BacktestConfig) -> Tuple[WheelLedger, float]:
    """Buy the stock with all starting capital at the first week's close.

    Returns the opening ledger and the fixed buy-and-hold share count.
    """
    px = _checked_price(first_week)
    shares = config.initial_capital / px
    ledger = WheelLedger(cash=0.0, shares=shares, state=HOLDING_STOCK, total_value=config.initial_capital)
    return ledger, shares


# ----------------------------
# Transition
# ----------------------------

def step_week(
    ledger: WheelLedger,
    week: WeeklyObservation,
    next_week: Optional[WeeklyObservation],
    config: BacktestConfig,
    benchmark_shares: float,
) -> Tuple[WheelLedger, BacktestStep]:
    """Simulate one week: sell the leg for the current state, settle it, mark to close."""
    close = _checked_price(week)
    next_close = _checked_price(next_week) if next_week is not None else None

    strategy = strategy_for(ledger.state)
    leg = strategy.open_leg(close_price=close, cash=ledger.cash, shares=ledger.shares, config=config)

    # Premium is kept whatever happens next week
    cash_after_premium = ledger.cash + leg.premium
    settled = strategy.settle(leg, next_close=next_close, cash=cash_after_premium, shares=ledger.shares)

    total_value = settled.cash + settled.shares * close
    prev_total = ledger.total_value
    if prev_total == 0 or not math.isfinite(prev_total):
        raise DomainError(f"Cannot compute weekly return from previous total value {prev_total!r}")
    weekly_return = (total_value - prev_total) / prev_total * 100

    if settled.outcome == ASSIGNED:
        logger.debug(
            f"{week.week_end_date}: {leg.describe()} assigned at next close {next_close:.4f} "
            f"-> {settled.state}"
        )

    step = BacktestStep(
        week_date=week.week_end_date,
        close_price=close,
        next_close_price=next_close,
        entry_state=ledger.state,
        position_state=settled.state,
        action=leg,
        strike_price=leg.strike,
        premium_received=leg.premium,
        outcome=settled.outcome,
        outcome_description=settled.description,
        cash_balance=settled.cash,
        shares_held=settled.shares,
        total_value=total_value,
        buy_and_hold_value=benchmark_shares * close,
        stock_return_pct=week.change_vs_prev_week,
        weekly_return_pct=weekly_return,
    )
    new_ledger = WheelLedger(
        cash=settled.cash,
        shares=settled.shares,
        state=settled.state,
        total_value=total_value,
    )
    return new_ledger, step


# ----------------------------
# Runner
# ----------------------------

def run_wheel_backtest(
    weekly: Sequence[WeeklyObservation],
    config: Optional[BacktestConfig] = None,
) -> List[BacktestStep]:
    """Run the wheel over a newest-first weekly series.

    Parameters
    ----------
    weekly : sequence of WeeklyObservation
        Newest week first (as returned by ``aggregate_weekly``).
    config : BacktestConfig, optional
        Defaults to ``BacktestConfig.from_settings()``.

    Returns
    -------
    list[BacktestStep]
        One step per week, newest first. Empty input gives an empty list.

    Raises
    ------
    DomainError
        If a weekly close is non-positive or non-finite.
    """
    cfg = config or BacktestConfig.from_settings()
    chronological = list(reversed(weekly))
    if not chronological:
        return []

    ledger, benchmark_shares = seed_ledger(chronological[0], cfg)

    steps: List[BacktestStep] = []
    for i, week in enumerate(chronological):
        next_week = chronological[i + 1] if i + 1 < len(chronological) else None
        ledger, step = step_week(ledger, week, next_week, cfg, benchmark_shares)
        steps.append(step)

    last = steps[-1]
    logger.info(
        f"Wheel backtest over {len(steps)} weeks ({steps[0].week_date} to {last.week_date}): "
        f"strategy {last.total_value:.2f} vs buy-and-hold {last.buy_and_hold_value:.2f}"
    )

    steps.reverse()
    return steps
