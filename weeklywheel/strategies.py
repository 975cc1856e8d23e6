from __future__ import annotations
"""
Strategy layer
==============

The wheel alternates between two short option legs depending on what the
ledger holds:

- holding shares  -> sell a covered call
- holding cash    -> sell a cash-secured put

Each strategy builds the leg for the current week (strike + total premium)
and settles it against the *next* week's close. Strategies are stateless;
the ledger values are passed in and the new values are returned.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Literal, Optional

from .config import OUTCOME_DESCRIPTIONS
from .errors import DomainError

if TYPE_CHECKING:
    from .backtest_core import BacktestConfig

Side = Literal["call", "put"]
PositionState = Literal["HOLDING_STOCK", "HOLDING_CASH"]
Outcome = Literal["EXPIRED", "ASSIGNED", "PENDING"]

HOLDING_STOCK: PositionState = "HOLDING_STOCK"
HOLDING_CASH: PositionState = "HOLDING_CASH"

EXPIRED: Outcome = "EXPIRED"
ASSIGNED: Outcome = "ASSIGNED"
PENDING: Outcome = "PENDING"


# -------------------------
# Data structures
# -------------------------

@dataclass(frozen=True)
class Leg:
    side: Side                # "call" | "put"
    action: Literal["sell", "buy"]
    strike: float
    premium: float            # total cash received for the leg, not per share

    def describe(self) -> str:
        return f"{self.action.title()} {self.side.title()} (Strike: {self.strike:.2f})"


@dataclass(frozen=True)
class Settlement:
    outcome: Outcome
    description: str
    cash: float
    shares: float
    state: PositionState


# -------------------------
# Strategy interfaces
# -------------------------

class Strategy:
    side: Side
    holds: PositionState

    def open_leg(self, *, close_price: float, cash: float, shares: float, config: "BacktestConfig") -> Leg:
        raise NotImplementedError

    def settle(self, leg: Leg, *, next_close: Optional[float], cash: float, shares: float) -> Settlement:
        """Resolve *leg* against the next close. *cash* already includes the leg's premium."""
        raise NotImplementedError

    def _pending(self, cash: float, shares: float) -> Settlement:
        return Settlement(PENDING, OUTCOME_DESCRIPTIONS[(self.side, PENDING)], cash, shares, self.holds)


# -------------------------
# Concrete strategies
# -------------------------

class CoveredCallStrategy(Strategy):
    side = "call"
    holds = HOLDING_STOCK

    def open_leg(self, *, close_price: float, cash: float, shares: float, config: "BacktestConfig") -> Leg:
        strike = close_price * config.call_strike_factor
        premium = close_price * config.call_premium_pct * shares
        return Leg(side="call", action="sell", strike=strike, premium=premium)

    def settle(self, leg: Leg, *, next_close: Optional[float], cash: float, shares: float) -> Settlement:
        if next_close is None:
            return self._pending(cash, shares)
        if next_close > leg.strike:
            # Called away: shares leave at the strike
            return Settlement(
                ASSIGNED,
                OUTCOME_DESCRIPTIONS[("call", ASSIGNED)],
                cash + leg.strike * shares,
                0.0,
                HOLDING_CASH,
            )
        return Settlement(EXPIRED, OUTCOME_DESCRIPTIONS[("call", EXPIRED)], cash, shares, HOLDING_STOCK)


class CashSecuredPutStrategy(Strategy):
    side = "put"
    holds = HOLDING_CASH

    def open_leg(self, *, close_price: float, cash: float, shares: float, config: "BacktestConfig") -> Leg:
        strike = close_price * config.put_strike_factor
        if not strike > 0:
            raise DomainError(f"Put strike must be positive to size the position, got {strike!r}")
        # All available cash secures the put
        notional_shares = cash / strike
        premium = close_price * config.put_premium_pct * notional_shares
        return Leg(side="put", action="sell", strike=strike, premium=premium)

    def settle(self, leg: Leg, *, next_close: Optional[float], cash: float, shares: float) -> Settlement:
        if next_close is None:
            return self._pending(cash, shares)
        if next_close < leg.strike:
            # Share count is taken from cash *after* the premium landed, so the
            # premium buys extra shares on assignment.
            return Settlement(
                ASSIGNED,
                OUTCOME_DESCRIPTIONS[("put", ASSIGNED)],
                0.0,
                cash / leg.strike,
                HOLDING_STOCK,
            )
        return Settlement(EXPIRED, OUTCOME_DESCRIPTIONS[("put", EXPIRED)], cash, shares, HOLDING_CASH)


_STRATEGIES: Dict[str, Strategy] = {
    HOLDING_STOCK: CoveredCallStrategy(),
    HOLDING_CASH: CashSecuredPutStrategy(),
}


def strategy_for(state: PositionState) -> Strategy:
    """Return the leg builder for the given position state."""
    try:
        return _STRATEGIES[state]
    except KeyError:
        raise ValueError(f"Unknown position state: {state!r}")
