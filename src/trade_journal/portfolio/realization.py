from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from dateutil.relativedelta import relativedelta

from trade_journal.config import TradingSettings
from trade_journal.portfolio.fifo import Replay, replay
from trade_journal.portfolio.models import (
    OversellWarning,
    RealizedTrade,
    Transaction,
    month_key,
)


@dataclass
class StockSummary:
    symbol: str
    pnl: float = 0.0
    trades: int = 0
    wins: int = 0
    losses: int = 0
    invested: float = 0.0
    # sum of hold_days * invested_amount, divided out by avg_hold_days
    hold_days_weighted: float = 0.0

    def add(self, trade: RealizedTrade) -> None:
        self.pnl += trade.net
        self.trades += 1
        if trade.is_win:
            self.wins += 1
        else:
            self.losses += 1
        self.invested += trade.invested_amount
        self.hold_days_weighted += trade.hold_days * trade.invested_amount

    @property
    def avg_hold_days(self) -> float:
        return self.hold_days_weighted / self.invested if self.invested > 0 else 0.0

    @property
    def return_pct(self) -> float:
        return self.pnl / self.invested * 100 if self.invested > 0 else 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.trades * 100 if self.trades else 0.0


@dataclass(frozen=True)
class TradeTotals:
    trades: int
    wins: int
    losses: int
    net: float
    invested: float

    @property
    def win_rate(self) -> float:
        return self.wins / self.trades * 100 if self.trades else 0.0


@dataclass
class Realization:
    trades: list[RealizedTrade] = field(default_factory=list)
    by_stock: dict[str, StockSummary] = field(default_factory=dict)
    monthly_net: dict[str, float] = field(default_factory=dict)
    warnings: list[OversellWarning] = field(default_factory=list)

    @property
    def totals(self) -> TradeTotals:
        wins = sum(1 for t in self.trades if t.is_win)
        return TradeTotals(
            trades=len(self.trades),
            wins=wins,
            losses=len(self.trades) - wins,
            net=sum(t.net for t in self.trades),
            invested=sum(t.invested_amount for t in self.trades),
        )

    def best_stock(self) -> StockSummary | None:
        if not self.by_stock:
            return None
        return max(self.by_stock.values(), key=lambda s: s.pnl)

    def worst_stock(self) -> StockSummary | None:
        if not self.by_stock:
            return None
        return min(self.by_stock.values(), key=lambda s: s.pnl)


def summarize_trades(
    trades: Iterable[RealizedTrade],
    warnings: list[OversellWarning] | None = None,
) -> Realization:
    result = Realization(warnings=list(warnings or []))
    for trade in trades:
        result.trades.append(trade)
        summary = result.by_stock.get(trade.symbol)
        if summary is None:
            summary = result.by_stock[trade.symbol] = StockSummary(trade.symbol)
        summary.add(trade)
        key = month_key(trade.trade_date)
        result.monthly_net[key] = result.monthly_net.get(key, 0.0) + trade.net
    return result


def realize(replayed: Replay) -> Realization:
    """Realized trades, per-stock summary and monthly net of a replay."""
    return summarize_trades(replayed.trades, replayed.warnings)


def run(transactions: Iterable[Transaction], settings: TradingSettings) -> Realization:
    return realize(replay(transactions, settings))


def filter_realization(
    realization: Realization,
    months: int | None,
    as_of: date,
) -> Realization:
    """Keep sells within the last ``months`` months of ``as_of``.

    Lots are matched on the full history first; only the realized output is
    windowed. ``months=None`` keeps everything.
    """
    if months is None:
        return realization
    start = as_of - relativedelta(months=months)
    kept = [t for t in realization.trades if start <= t.trade_date <= as_of]
    warnings = [w for w in realization.warnings if start <= w.trade_date <= as_of]
    return summarize_trades(kept, warnings)
