from __future__ import annotations

from dataclasses import dataclass, field

from trade_journal.portfolio.fifo import Replay, SellEvent
from trade_journal.portfolio.models import LotSlice, RealizedTrade


@dataclass(frozen=True)
class LossSell:
    trade: RealizedTrade
    used_lots: tuple[LotSlice, ...]

    @property
    def avg_buy_price(self) -> float:
        """Average cost of the consumed lots including buy brokerage."""
        qty = sum(s.qty for s in self.used_lots)
        return sum(s.invested for s in self.used_lots) / qty if qty > 0 else 0.0


@dataclass
class StockLosses:
    symbol: str
    total_loss: float = 0.0
    sells: list[LossSell] = field(default_factory=list)

    @property
    def loss_sells(self) -> int:
        return len(self.sells)

    @property
    def avg_hold_days(self) -> float:
        if not self.sells:
            return 0.0
        return sum(s.trade.hold_days for s in self.sells) / len(self.sells)


@dataclass
class LossReport:
    stocks: list[StockLosses] = field(default_factory=list)

    @property
    def total_loss(self) -> float:
        return sum(s.total_loss for s in self.stocks)


def loss_report(replayed: Replay) -> LossReport:
    """Every loss-making sell, grouped by stock, biggest loss first."""
    by_stock: dict[str, StockLosses] = {}
    for event in replayed.events:
        if not isinstance(event, SellEvent) or event.trade.net >= 0:
            continue
        stock = by_stock.setdefault(event.tx.symbol, StockLosses(event.tx.symbol))
        stock.total_loss += event.trade.net
        stock.sells.append(LossSell(event.trade, event.slices))

    stocks = sorted(by_stock.values(), key=lambda s: s.total_loss)
    return LossReport(stocks)
