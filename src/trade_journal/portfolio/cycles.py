from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date

from trade_journal.portfolio.fifo import BuyEvent, Replay


@dataclass
class TradeCycle:
    first_buy_date: date
    end_date: date | None = None
    realized_net: float = 0.0
    total_buy_qty: float = 0.0
    total_buy_value: float = 0.0

    @property
    def avg_buy_price(self) -> float:
        """Average cost per share including buy brokerage."""
        return self.total_buy_value / self.total_buy_qty if self.total_buy_qty > 0 else 0.0

    @property
    def days_held(self) -> int | None:
        if self.end_date is None:
            return None
        return (self.end_date - self.first_buy_date).days


@dataclass
class StockCycles:
    symbol: str
    cycles: list[TradeCycle] = field(default_factory=list)
    invested_current: float = 0.0
    reference_price: float = 0.0
    trim_amount: float = 0.0
    trim_qty: int = 0

    @property
    def wins(self) -> int:
        return sum(1 for c in self.cycles if c.realized_net >= 0)

    @property
    def losses(self) -> int:
        return len(self.cycles) - self.wins

    @property
    def avg_pl(self) -> float:
        return sum(c.realized_net for c in self.cycles) / len(self.cycles) if self.cycles else 0.0

    @property
    def avg_hold(self) -> float:
        return sum(c.days_held or 0 for c in self.cycles) / len(self.cycles) if self.cycles else 0.0

    @property
    def highest_loss(self) -> float:
        losses = [c.realized_net for c in self.cycles if c.realized_net < 0]
        return min(losses) if losses else 0.0

    @property
    def suggestion(self) -> str:
        if not self.cycles:
            return "No cycles yet"
        if self.wins > self.losses:
            return "Consider re-invest"
        return "Avoid new buys"


def cycle_report(replayed: Replay) -> list[StockCycles]:
    """Closed buy-to-full-exit cycles per stock, sorted by symbol."""
    settings = replayed.settings
    open_cycles: dict[str, TradeCycle] = {}
    report: dict[str, StockCycles] = {}

    for event in replayed.events:
        symbol = event.tx.symbol
        stock = report.setdefault(symbol, StockCycles(symbol))

        if isinstance(event, BuyEvent):
            if event.opened_cycle or symbol not in open_cycles:
                open_cycles[symbol] = TradeCycle(first_buy_date=event.tx.trade_date)
            cycle = open_cycles[symbol]
            cycle.total_buy_qty += event.tx.qty
            cycle.total_buy_value += event.tx.trade_value + event.brokerage
            continue

        cycle = open_cycles.get(symbol)
        if cycle is None:
            # nothing held, so nothing for this sell to close
            continue
        cycle.realized_net += event.trade.net
        if event.closed_cycle:
            cycle.end_date = event.tx.trade_date
            stock.cycles.append(cycle)
            del open_cycles[symbol]

    budget = settings.max_stock_budget
    for symbol, stock in report.items():
        queue = replayed.queues[symbol]
        stock.invested_current = queue.invested
        stock.reference_price = queue.reference_price or 0.0
        if budget > 0 and stock.invested_current > budget:
            stock.trim_amount = stock.invested_current - budget
            if stock.reference_price > 0:
                stock.trim_qty = math.ceil(stock.trim_amount / stock.reference_price)
    return [report[s] for s in sorted(report)]
