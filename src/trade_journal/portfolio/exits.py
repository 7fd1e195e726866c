"""What-if analysis for trimming part of an open position and buying back."""
from __future__ import annotations

from dataclasses import dataclass

from trade_journal.config import REENTRY_DISCOUNT_PCT, TradingSettings
from trade_journal.errors import InvalidTransaction
from trade_journal.portfolio.advisor import level_prices
from trade_journal.portfolio.brokerage import estimate_brokerage
from trade_journal.portfolio.holdings import Holding
from trade_journal.portfolio.models import TxType


@dataclass(frozen=True)
class ExitSimulation:
    symbol: str
    sell_qty: float
    sell_price: float
    sell_brokerage: float
    buy_value_of_sold: float
    total_qty: float
    invested: float
    first_buy_price: float | None

    @property
    def sell_value(self) -> float:
        return self.sell_qty * self.sell_price

    @property
    def net_profit(self) -> float:
        return self.sell_value - self.buy_value_of_sold - self.sell_brokerage

    @property
    def profit_pct(self) -> float:
        if self.buy_value_of_sold <= 0:
            return 0.0
        return self.net_profit / self.buy_value_of_sold * 100

    @property
    def remaining_qty(self) -> float:
        return self.total_qty - self.sell_qty

    @property
    def remaining_invested(self) -> float:
        return self.invested - self.buy_value_of_sold

    @property
    def old_avg(self) -> float:
        return self.invested / self.total_qty if self.total_qty > 0 else 0.0

    @property
    def new_avg(self) -> float:
        return self.remaining_invested / self.remaining_qty if self.remaining_qty > 0 else 0.0

    @property
    def avg_improvement(self) -> float:
        return self.old_avg - self.new_avg


def simulate_partial_exit(
    holding: Holding,
    sell_qty: float,
    sell_price: float,
    settings: TradingSettings,
) -> ExitSimulation:
    """Sell ``sell_qty`` out of the most recent lots of ``holding``.

    The newest lots are the averaging buys a trim is meant to unwind, so
    they are consumed last-in first-out here. The ledger itself stays FIFO.
    """
    total_qty = holding.qty
    if sell_qty <= 0 or sell_qty > total_qty:
        raise InvalidTransaction(
            f"Invalid sell quantity {sell_qty} for {holding.symbol} (held {total_qty})"
        )
    if sell_price <= 0:
        raise InvalidTransaction(f"Invalid sell price {sell_price}")

    remaining = sell_qty
    buy_value = 0.0
    for lot in reversed(holding.lots):
        if remaining <= 0:
            break
        used = min(lot.qty, remaining)
        buy_value += used * lot.unit_cost
        remaining -= used

    return ExitSimulation(
        symbol=holding.symbol,
        sell_qty=sell_qty,
        sell_price=sell_price,
        sell_brokerage=estimate_brokerage(TxType.SELL, sell_qty, sell_price, settings),
        buy_value_of_sold=buy_value,
        total_qty=total_qty,
        invested=holding.invested_capital,
        first_buy_price=holding.cycle.first_buy_price,
    )


@dataclass(frozen=True)
class ReentryPlan:
    level1: float
    level2: float
    wait_level: float
    rebuy_price: float
    rebuy_qty: float
    new_avg: float
    avg_improvement: float

    @property
    def action(self) -> str:
        if self.avg_improvement > 0:
            return f"Re-buy at {self.rebuy_price:.2f} to improve avg"
        return f"Wait for pullback into L1 ({self.level1:.2f}) or L2 ({self.level2:.2f})"


def suggest_reentry(simulation: ExitSimulation, settings: TradingSettings) -> ReentryPlan:
    """Re-entry levels after a partial exit.

    If the price rises, wait for L1. If it falls, re-buy the sold quantity
    at a discount to the sell price, kept between L2 and L1.
    """
    base = simulation.first_buy_price or simulation.old_avg
    level1, level2 = level_prices(base, settings)
    discounted = simulation.sell_price * (1 - REENTRY_DISCOUNT_PCT / 100)
    rebuy_price = max(level2, min(level1, discounted))

    new_qty = simulation.remaining_qty + simulation.sell_qty
    new_invested = simulation.remaining_invested + simulation.sell_qty * rebuy_price
    new_avg = new_invested / new_qty if new_qty > 0 else 0.0
    return ReentryPlan(
        level1=level1,
        level2=level2,
        wait_level=level1,
        rebuy_price=rebuy_price,
        rebuy_qty=simulation.sell_qty,
        new_avg=new_avg,
        avg_improvement=simulation.old_avg - new_avg,
    )
