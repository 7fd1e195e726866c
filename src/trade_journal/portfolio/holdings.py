from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from dataclasses import dataclass
from datetime import date

from trade_journal.portfolio.fifo import Replay
from trade_journal.portfolio.models import Cycle, Lot


@dataclass(frozen=True)
class Holding:
    symbol: str
    lots: tuple[Lot, ...]
    cycle: Cycle
    reference_price: float

    @property
    def qty(self) -> float:
        return sum(lot.qty for lot in self.lots)

    @property
    def invested_capital(self) -> float:
        return sum(lot.qty * (lot.price + lot.brokerage_per_unit) for lot in self.lots)

    @property
    def average_cost(self) -> float:
        qty = self.qty
        return self.invested_capital / qty if qty > 0 else 0.0

    @property
    def market_value(self) -> float:
        return self.qty * self.reference_price

    @property
    def unrealized(self) -> float:
        return self.market_value - self.invested_capital

    def days_held(self, as_of: date) -> int:
        if self.cycle.first_buy_date is None:
            return 0
        return max(0, (as_of - self.cycle.first_buy_date).days)

    def horizon(self, as_of: date) -> str:
        days = self.days_held(as_of)
        if days > 90:
            return "Long term hold"
        if days >= 30:
            return "Short term hold"
        return "Just now"


def project(replayed: Replay) -> dict[str, Holding]:
    """Active positions left in the lot queues after the replay.

    Lots and cycle are copied so callers cannot mutate the replay state.
    """
    holdings: dict[str, Holding] = {}
    for symbol, queue in replayed.queues.items():
        if not any(lot.qty > 0 for lot in queue.lots):
            continue
        holdings[symbol] = Holding(
            symbol=symbol,
            lots=tuple(deepcopy(lot) for lot in queue.lots),
            cycle=deepcopy(queue.cycle),
            reference_price=queue.reference_price or 0.0,
        )
    return holdings


def total_invested(holdings: Mapping[str, Holding]) -> float:
    return sum(h.invested_capital for h in holdings.values())
