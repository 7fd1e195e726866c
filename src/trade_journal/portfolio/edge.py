from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from trade_journal.portfolio.fifo import Replay
from trade_journal.portfolio.models import LotSlice

HOLD_BUCKETS: tuple[tuple[str, int | None], ...] = (
    ("0-7d", 7),
    ("8-15d", 15),
    ("16-30d", 30),
    ("31-60d", 60),
    ("61-90d", 90),
    ("90d+", None),
)


def bucket_of_days(days: int) -> str:
    for label, upper in HOLD_BUCKETS:
        if upper is None or days <= upper:
            return label
    raise AssertionError("unreachable")


@dataclass(frozen=True)
class SliceOutcome:
    slice: LotSlice
    invested: float
    net: float


def slice_outcomes(replayed: Replay) -> Iterator[SliceOutcome]:
    """Per consumed lot, with the sell brokerage pro-rated by quantity."""
    for event in replayed.sells():
        sell_qty = event.tx.qty
        for s in event.slices:
            share = s.qty / sell_qty if sell_qty > 0 else 0.0
            invested = s.invested
            net = s.qty * event.tx.price - invested - event.brokerage * share
            yield SliceOutcome(s, invested, net)


@dataclass
class OutcomeStats:
    label: str
    trades: int = 0
    wins: int = 0
    losses: int = 0
    invested: float = 0.0
    net: float = 0.0
    days_total: float = 0.0

    def add(self, outcome: SliceOutcome) -> None:
        self.trades += 1
        self.invested += outcome.invested
        self.net += outcome.net
        self.days_total += outcome.slice.hold_days
        if outcome.net >= 0:
            self.wins += 1
        else:
            self.losses += 1

    @property
    def return_pct(self) -> float:
        return self.net / self.invested * 100 if self.invested > 0 else 0.0

    @property
    def win_rate(self) -> float:
        decided = self.wins + self.losses
        return self.wins / decided * 100 if decided else 0.0

    @property
    def avg_days(self) -> float:
        return self.days_total / self.trades if self.trades else 0.0


def holding_edge(replayed: Replay) -> list[OutcomeStats]:
    """Realized outcome grouped by how long the consumed lot was held.

    Best window first; windows with no realized lots are left out.
    """
    buckets = {label: OutcomeStats(label) for label, _ in HOLD_BUCKETS}
    for outcome in slice_outcomes(replayed):
        buckets[bucket_of_days(outcome.slice.hold_days)].add(outcome)
    rows = [b for b in buckets.values() if b.trades > 0]
    rows.sort(key=lambda b: b.return_pct, reverse=True)
    return rows


@dataclass
class ReasonOutcome(OutcomeStats):
    within_30d: int = 0
    within_60d: int = 0
    within_90d: int = 0
    beyond_90d: int = 0

    def add(self, outcome: SliceOutcome) -> None:
        super().add(outcome)
        days = outcome.slice.hold_days
        if days <= 30:
            self.within_30d += 1
        elif days <= 60:
            self.within_60d += 1
        elif days <= 90:
            self.within_90d += 1
        else:
            self.beyond_90d += 1


def reason_outcome(replayed: Replay) -> list[ReasonOutcome]:
    """Realized outcome grouped by the reason recorded on the original buy."""
    by_reason: dict[str, ReasonOutcome] = {}
    for outcome in slice_outcomes(replayed):
        reason = outcome.slice.reason
        by_reason.setdefault(reason, ReasonOutcome(reason)).add(outcome)
    rows = list(by_reason.values())
    rows.sort(key=lambda r: r.return_pct, reverse=True)
    return rows
