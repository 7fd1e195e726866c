from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date

from trade_journal.config import (
    CHASE_BUY_PENALTY,
    OVER_ALLOCATION_BUY_PENALTY,
    PANIC_SELL_MAX_HOLD_DAYS,
    PANIC_SELL_PENALTY,
    WEAK_DROP_BUY_PENALTY,
)
from trade_journal.portfolio.fifo import BuyEvent, Replay, SellEvent
from trade_journal.portfolio.models import TxType, month_key


class Mistake(enum.Enum):
    CHASE_BUY = "Chase Buy"
    WEAK_DROP_BUY = "Weak Drop Buy"
    OVER_ALLOCATION_BUY = "Over Allocation Buy"
    PANIC_SELL = "Panic Sell"


@dataclass
class MistakeCounts:
    buys: int = 0
    sells: int = 0
    chase_buys: int = 0
    weak_drop_buys: int = 0
    over_alloc_buys: int = 0
    panic_sells: int = 0

    @property
    def mistakes(self) -> int:
        return self.chase_buys + self.weak_drop_buys + self.over_alloc_buys + self.panic_sells

    @property
    def score(self) -> int:
        penalty = (
            CHASE_BUY_PENALTY * self.chase_buys
            + WEAK_DROP_BUY_PENALTY * self.weak_drop_buys
            + OVER_ALLOCATION_BUY_PENALTY * self.over_alloc_buys
            + PANIC_SELL_PENALTY * self.panic_sells
        )
        return max(0, 100 - penalty)

    def record(self, mistake: Mistake) -> None:
        if mistake is Mistake.CHASE_BUY:
            self.chase_buys += 1
        elif mistake is Mistake.WEAK_DROP_BUY:
            self.weak_drop_buys += 1
        elif mistake is Mistake.OVER_ALLOCATION_BUY:
            self.over_alloc_buys += 1
        else:
            self.panic_sells += 1


@dataclass(frozen=True)
class MistakeDetail:
    symbol: str
    trade_date: date
    tx_type: TxType
    mistake: Mistake
    info: str


@dataclass
class DecisionQuality:
    by_stock: dict[str, MistakeCounts] = field(default_factory=dict)
    by_month: dict[str, MistakeCounts] = field(default_factory=dict)
    details: list[MistakeDetail] = field(default_factory=list)

    def details_for(self, symbol: str) -> list[MistakeDetail]:
        return [d for d in self.details if d.symbol == symbol]


def _classify_buy(event: BuyEvent, level1_pct: float, max_alloc_pct: float) -> list[tuple[Mistake, str]]:
    found = []
    price = event.tx.price
    prev = event.previous_buy
    if prev is not None:
        if price > prev.price:
            found.append((
                Mistake.CHASE_BUY,
                f"Bought at {price:.2f} above previous buy {prev.price:.2f}.",
            ))
        else:
            drop_pct = (prev.price - price) / prev.price * 100 if prev.price > 0 else 0.0
            if drop_pct < level1_pct:
                found.append((
                    Mistake.WEAK_DROP_BUY,
                    f"Drop {drop_pct:.2f}% from previous buy is below L1 rule {level1_pct:.2f}%.",
                ))

    alloc = event.allocation_pct
    if alloc > max_alloc_pct:
        found.append((
            Mistake.OVER_ALLOCATION_BUY,
            f"Post-buy allocation {alloc:.2f}% exceeded max {max_alloc_pct:.2f}%.",
        ))
    return found


def _classify_sell(event: SellEvent) -> list[tuple[Mistake, str]]:
    trade = event.trade
    if trade.net < 0 and trade.hold_days <= PANIC_SELL_MAX_HOLD_DAYS:
        return [(
            Mistake.PANIC_SELL,
            f"Loss sell {trade.net:.2f} within {trade.hold_days:.0f} hold days.",
        )]
    return []


def score_decisions(replayed: Replay) -> DecisionQuality:
    """Tag buys and sells with mistake categories from in-cycle context.

    Classification happens in replay order; scores are per stock and per
    calendar month of the transaction.
    """
    settings = replayed.settings
    quality = DecisionQuality()

    for event in replayed.events:
        tx = event.tx
        stock = quality.by_stock.setdefault(tx.symbol, MistakeCounts())
        month = quality.by_month.setdefault(month_key(tx.trade_date), MistakeCounts())

        if isinstance(event, BuyEvent):
            stock.buys += 1
            month.buys += 1
            found = _classify_buy(event, settings.avg_level1_pct, settings.max_allocation_pct)
        else:
            stock.sells += 1
            month.sells += 1
            found = _classify_sell(event)

        for mistake, info in found:
            stock.record(mistake)
            month.record(mistake)
            quality.details.append(MistakeDetail(tx.symbol, tx.trade_date, tx.tx_type, mistake, info))
    return quality
