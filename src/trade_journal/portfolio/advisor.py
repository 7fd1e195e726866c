"""Averaging-down targets, allocation health and exit levels for open positions.

Allocation is always measured against the total active invested capital of
all open holdings. The configured portfolio size only sets the per-stock
budget (portfolio_size * max_allocation_pct / 100) that caps new buys.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from trade_journal.config import (
    MODERATE_ALLOCATION_PCT,
    NEAR_LIMIT_FRACTION,
    SLIGHT_CHASE_PCT,
    TradingSettings,
)
from trade_journal.portfolio.holdings import Holding


def allocation_pct(invested: float, total_active_invested: float) -> float:
    if total_active_invested <= 0:
        return 0.0
    return invested / total_active_invested * 100


def allocation_status(pct: float, settings: TradingSettings) -> str:
    if pct > settings.max_allocation_pct:
        return "Warning"
    if pct > MODERATE_ALLOCATION_PCT:
        return "Moderate"
    return "Balanced"


def allocation_risk(pct: float, settings: TradingSettings) -> str:
    if pct > settings.max_allocation_pct:
        return "Over Allocation"
    if pct > settings.max_allocation_pct * NEAR_LIMIT_FRACTION:
        return "Near Allocation Limit"
    return "Allocation Healthy"


def level_prices(first_buy_price: float, settings: TradingSettings) -> tuple[float, float]:
    return (
        first_buy_price * (1 - settings.avg_level1_pct / 100),
        first_buy_price * (1 - settings.avg_level2_pct / 100),
    )


@dataclass(frozen=True)
class LevelSuggestion:
    label: str
    price: float
    qty: int
    projected_avg: float | None


@dataclass(frozen=True)
class AveragingAdvice:
    symbol: str
    invested: float
    allocation_pct: float
    allocation_status: str
    allocation_risk: str
    level1_price: float
    level2_price: float
    level1_hit_buy: int | None
    level2_hit_buy: int | None
    stock_budget: float
    remaining_budget: float
    suggestions: tuple[LevelSuggestion, ...]
    trim_amount: float
    trim_qty: int

    @property
    def level1_hit(self) -> bool:
        return self.level1_hit_buy is not None

    @property
    def level2_hit(self) -> bool:
        return self.level2_hit_buy is not None

    @property
    def at_limit(self) -> bool:
        """Levels are pending but the remaining budget buys nothing."""
        return bool(self.suggestions) and all(s.qty <= 0 for s in self.suggestions)

    @property
    def stage(self) -> str:
        if self.level1_hit and self.level2_hit:
            return "Averaging Stage Completed"
        if self.level1_hit:
            return "Level-1 Averaging Completed"
        return ""

    @property
    def next_decision(self) -> str:
        if not self.level1_hit:
            return (
                f"Wait for L1 zone near {self.level1_price:.2f}. "
                "Avoid chasing above last buy price unless conviction is strong."
            )
        if not self.level2_hit:
            return f"L1 is done. Next disciplined buy zone is L2 near {self.level2_price:.2f}."
        return "L1 and L2 completed. Pause averaging and focus on risk control/allocation discipline."


def _hit_buy_number(holding: Holding, level: float) -> int | None:
    # The opening buy defines the levels, so only later buys can hit them.
    for number, buy in enumerate(holding.cycle.buys[1:], start=2):
        if buy.price <= level:
            return number
    return None


def advise(
    holding: Holding,
    settings: TradingSettings,
    total_active_invested: float,
) -> AveragingAdvice:
    invested = holding.invested_capital
    pct = allocation_pct(invested, total_active_invested)
    level1, level2 = level_prices(holding.cycle.first_buy_price or 0.0, settings)
    l1_hit = _hit_buy_number(holding, level1)
    l2_hit = _hit_buy_number(holding, level2)

    budget = settings.max_stock_budget
    remaining = max(0.0, budget - invested)
    pending = [
        (label, price)
        for label, price, hit in (("L1", level1, l1_hit), ("L2", level2, l2_hit))
        if hit is None
    ]
    per_level = remaining / len(pending) if pending else 0.0

    suggestions = []
    for label, price in pending:
        qty = max(0, math.floor(per_level / price)) if price > 0 else 0
        projected = (invested + qty * price) / (holding.qty + qty) if qty > 0 else None
        suggestions.append(LevelSuggestion(label, price, qty, projected))

    excess = max(0.0, invested - budget)
    trim_qty = (
        math.ceil(excess / holding.reference_price)
        if excess > 0 and holding.reference_price > 0 else 0
    )

    return AveragingAdvice(
        symbol=holding.symbol,
        invested=invested,
        allocation_pct=pct,
        allocation_status=allocation_status(pct, settings),
        allocation_risk=allocation_risk(pct, settings),
        level1_price=level1,
        level2_price=level2,
        level1_hit_buy=l1_hit,
        level2_hit_buy=l2_hit,
        stock_budget=budget,
        remaining_budget=remaining,
        suggestions=tuple(suggestions),
        trim_amount=excess,
        trim_qty=trim_qty,
    )


def advise_all(
    holdings: dict[str, Holding], settings: TradingSettings
) -> dict[str, AveragingAdvice]:
    total = sum(h.invested_capital for h in holdings.values())
    return {symbol: advise(h, settings, total) for symbol, h in holdings.items()}


@dataclass(frozen=True)
class BuyReview:
    number: int
    trade_date: date
    price: float
    qty: float
    delta: float
    delta_pct: float
    tag: str
    zone: str
    extra_per_share: float

    @property
    def extra_paid(self) -> float:
        return self.extra_per_share * self.qty if self.extra_per_share > 0 else 0.0


def classify_cycle_buys(holding: Holding, settings: TradingSettings) -> list[BuyReview]:
    """Tag every buy of the open cycle against the one before it."""
    level1, level2 = level_prices(holding.cycle.first_buy_price or 0.0, settings)
    reviews = []
    prev = None
    for number, buy in enumerate(holding.cycle.buys, start=1):
        delta = buy.price - prev.price if prev else 0.0
        delta_pct = delta / prev.price * 100 if prev and prev.price > 0 else 0.0
        extra = 0.0
        tag = "Base buy"
        if prev:
            extra = buy.price - prev.price * (1 - settings.avg_level1_pct / 100)
            if buy.price <= prev.price:
                tag = "Good follow-up" if -delta_pct >= settings.avg_level1_pct else "Bad buy (weak drop)"
            elif delta_pct <= SLIGHT_CHASE_PCT:
                tag = "Slight chase"
            else:
                tag = "High chase"

        if buy.price <= level2:
            zone = "L2 zone"
        elif buy.price <= level1:
            zone = "L1 zone"
        else:
            zone = "Above zones"

        reviews.append(BuyReview(
            number=number,
            trade_date=buy.trade_date,
            price=buy.price,
            qty=buy.qty,
            delta=delta,
            delta_pct=delta_pct,
            tag=tag,
            zone=zone,
            extra_per_share=extra,
        ))
        prev = buy
    return reviews


@dataclass(frozen=True)
class ExitLevels:
    target_price: float
    stop_price: float
    trim_eligible: bool
    signal: str


def exit_levels(holding: Holding, settings: TradingSettings, as_of: date) -> ExitLevels:
    """Sell target and stop loss around the average cost of the position."""
    avg = holding.average_cost
    target = avg * (1 + settings.sell_target_pct / 100)
    stop = avg * (1 - settings.stop_loss_pct / 100)
    trim_eligible = holding.days_held(as_of) >= settings.min_hold_days_trim

    price = holding.reference_price
    if price >= target:
        signal = "Book Profit" if trim_eligible else "Target Reached (hold period not met)"
    elif price <= stop:
        signal = "Stop Loss Hit"
    else:
        signal = "Hold"
    return ExitLevels(target, stop, trim_eligible, signal)
