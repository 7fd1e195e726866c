from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Union

from trade_journal.config import TradingSettings
from trade_journal.portfolio.brokerage import resolve_brokerage
from trade_journal.portfolio.models import (
    UNSPECIFIED_REASON,
    Cycle,
    CycleBuy,
    Lot,
    LotSlice,
    OversellWarning,
    RealizedTrade,
    Transaction,
    TxType,
)

logger = logging.getLogger(__name__)

# Lots below this are treated as fully consumed (float residue from partial sells)
_EPSILON = 1e-9


@dataclass(frozen=True)
class SellMatch:
    slices: tuple[LotSlice, ...]
    used_qty: float
    buy_cost: float
    buy_brokerage: float
    hold_days_accum: float


class LotQueue:
    """FIFO queue of open purchase lots for one stock."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        self.lots: deque[Lot] = deque()
        self.cycle = Cycle()
        self.reference_price: float | None = None
        self.bought_qty = 0.0
        self.matched_qty = 0.0

    @property
    def qty(self) -> float:
        return sum(lot.qty for lot in self.lots)

    @property
    def invested(self) -> float:
        return sum(lot.invested for lot in self.lots)

    def is_empty(self) -> bool:
        return not self.lots

    def buy(self, tx: Transaction, brokerage: float) -> tuple[bool, CycleBuy | None]:
        """Push a new lot. Returns (opened_cycle, previous buy in the cycle)."""
        opened = self.is_empty()
        if opened:
            self.cycle.reset()
            self.cycle.first_buy_price = tx.price
            self.cycle.first_buy_date = tx.trade_date

        previous = self.cycle.buys[-1] if self.cycle.buys else None
        self.cycle.buys.append(CycleBuy(tx.trade_date, tx.price, tx.qty))
        self.cycle.last_buy_date = tx.trade_date

        self.lots.append(Lot(
            qty=tx.qty,
            price=tx.price,
            brokerage_per_unit=brokerage / tx.qty,
            acquired_date=tx.trade_date,
            source_tx_id=tx.tx_id,
            reason=tx.reason or UNSPECIFIED_REASON,
        ))
        self.bought_qty += tx.qty
        self.reference_price = tx.price
        return opened, previous

    def sell(self, tx: Transaction) -> SellMatch:
        """Consume lots oldest first until the sell quantity is exhausted."""
        remaining = tx.qty
        slices: list[LotSlice] = []
        used_total = buy_cost = buy_brokerage = hold_days_accum = 0.0

        while remaining > _EPSILON and self.lots:
            lot = self.lots[0]
            used = min(lot.qty, remaining)
            hold_days = max(0, (tx.trade_date - lot.acquired_date).days)

            used_total += used
            buy_cost += used * lot.price
            buy_brokerage += used * lot.brokerage_per_unit
            hold_days_accum += used * hold_days
            slices.append(LotSlice(
                qty=used,
                buy_price=lot.price,
                brokerage_per_unit=lot.brokerage_per_unit,
                buy_date=lot.acquired_date,
                hold_days=hold_days,
                reason=lot.reason,
            ))

            lot.qty -= used
            remaining -= used
            if lot.qty <= _EPSILON:
                self.lots.popleft()

        self.matched_qty += used_total
        self.reference_price = tx.price
        if self.is_empty():
            self.cycle.reset()
        return SellMatch(tuple(slices), used_total, buy_cost, buy_brokerage, hold_days_accum)


def realize_trade(
    tx: Transaction, match: SellMatch, sell_brokerage: float
) -> RealizedTrade:
    net = tx.trade_value - match.buy_cost - match.buy_brokerage - sell_brokerage
    invested = match.buy_cost + match.buy_brokerage
    return RealizedTrade(
        tx_id=tx.tx_id,
        symbol=tx.symbol,
        trade_date=tx.trade_date,
        qty=tx.qty,
        sell_price=tx.price,
        buy_cost=match.buy_cost,
        buy_brokerage=match.buy_brokerage,
        sell_brokerage=sell_brokerage,
        net=net,
        invested_amount=invested,
        hold_days=match.hold_days_accum / match.used_qty if match.used_qty > 0 else 0.0,
        return_pct=net / invested * 100 if invested > 0 else 0.0,
        matched_qty=match.used_qty,
    )


@dataclass(frozen=True)
class BuyEvent:
    tx: Transaction
    brokerage: float
    opened_cycle: bool
    cycle_first_price: float
    previous_buy: CycleBuy | None
    stock_invested: float
    portfolio_invested: float

    @property
    def allocation_pct(self) -> float:
        """Post-buy allocation against the portfolio-wide active invested total."""
        if self.portfolio_invested <= 0:
            return 0.0
        return self.stock_invested / self.portfolio_invested * 100


@dataclass(frozen=True)
class SellEvent:
    tx: Transaction
    brokerage: float
    trade: RealizedTrade
    slices: tuple[LotSlice, ...]
    closed_cycle: bool


ReplayEvent = Union[BuyEvent, SellEvent]


@dataclass
class Replay:
    """Output of one full chronological pass over the ledger."""

    settings: TradingSettings
    events: list[ReplayEvent] = field(default_factory=list)
    queues: dict[str, LotQueue] = field(default_factory=dict)
    warnings: list[OversellWarning] = field(default_factory=list)

    @property
    def trades(self) -> list[RealizedTrade]:
        return [e.trade for e in self.events if isinstance(e, SellEvent)]

    def sells(self) -> Iterator[SellEvent]:
        return (e for e in self.events if isinstance(e, SellEvent))

    def buys(self) -> Iterator[BuyEvent]:
        return (e for e in self.events if isinstance(e, BuyEvent))

    def is_empty(self) -> bool:
        return not self.events


def replay(
    transactions: Iterable[Transaction],
    settings: TradingSettings,
) -> Replay:
    """Replay the complete ledger through per-stock FIFO lot queues.

    The input must be the full history. It is sorted ascending by trade
    date with a stable sort, so same-day transactions keep their ledger
    order. Every analytics view consumes the resulting event stream.
    """
    result = Replay(settings=settings)
    ordered = sorted(transactions, key=lambda t: t.trade_date)

    for tx in ordered:
        queue = result.queues.get(tx.symbol)
        if queue is None:
            queue = result.queues[tx.symbol] = LotQueue(tx.symbol)
        brokerage = resolve_brokerage(tx, settings)

        if tx.tx_type is TxType.BUY:
            opened, previous = queue.buy(tx, brokerage)
            result.events.append(BuyEvent(
                tx=tx,
                brokerage=brokerage,
                opened_cycle=opened,
                cycle_first_price=queue.cycle.first_buy_price,
                previous_buy=previous,
                stock_invested=queue.invested,
                portfolio_invested=sum(q.invested for q in result.queues.values()),
            ))
            continue

        was_open = not queue.is_empty()
        match = queue.sell(tx)
        trade = realize_trade(tx, match, brokerage)
        if trade.unmatched_qty > _EPSILON:
            logger.warning(
                "Insufficient lots for SELL: %s on %s, short %.6f shares",
                tx.symbol, tx.trade_date.isoformat(), trade.unmatched_qty,
            )
            result.warnings.append(OversellWarning(
                tx_id=tx.tx_id,
                symbol=tx.symbol,
                trade_date=tx.trade_date,
                requested_qty=tx.qty,
                matched_qty=match.used_qty,
            ))
        result.events.append(SellEvent(
            tx=tx,
            brokerage=brokerage,
            trade=trade,
            slices=match.slices,
            closed_cycle=was_open and queue.is_empty(),
        ))

    logger.info(
        "Replayed %d transactions across %d stocks (%d over-sell warnings)",
        len(ordered), len(result.queues), len(result.warnings),
    )
    return result
