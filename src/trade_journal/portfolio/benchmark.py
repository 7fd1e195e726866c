from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from trade_journal.config import TradingSettings
from trade_journal.portfolio.models import RealizedTrade, normalize_symbol


@dataclass(frozen=True)
class BenchmarkRow:
    trade: RealizedTrade
    fd_return: float
    inflation_loss: float

    @property
    def beats_fd(self) -> bool:
        return self.trade.net > self.fd_return

    @property
    def beats_inflation(self) -> bool:
        return self.trade.net > self.inflation_loss


def _accrual(principal: float, rate_pct: float, days: float) -> float:
    return principal * rate_pct / 100 * days / 365


def benchmark_trades(
    trades: Iterable[RealizedTrade],
    settings: TradingSettings,
    start: date | None = None,
    end: date | None = None,
    stock: str = "",
) -> list[BenchmarkRow]:
    """Compare each realized trade with a fixed deposit and with inflation.

    Both accrue simple interest on the invested amount over the hold days.
    """
    needle = normalize_symbol(stock)
    rows = []
    for trade in trades:
        if start and trade.trade_date < start:
            continue
        if end and trade.trade_date > end:
            continue
        if needle and needle not in trade.symbol:
            continue
        rows.append(BenchmarkRow(
            trade=trade,
            fd_return=_accrual(trade.invested_amount, settings.fd_rate_pct, trade.hold_days),
            inflation_loss=_accrual(trade.invested_amount, settings.inflation_rate_pct, trade.hold_days),
        ))
    return rows
