from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from trade_journal.config import TradingSettings
from trade_journal.portfolio.holdings import Holding, total_invested


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


@dataclass(frozen=True)
class EfficiencyRow:
    symbol: str
    invested: float
    qty: float
    days_held: int
    reference_price: float
    unrealized: float
    return_pct: float
    capital_share_pct: float
    score: float
    status: str
    note: str


def rank_capital_efficiency(
    holdings: Mapping[str, Holding],
    settings: TradingSettings,
    as_of: date,
) -> list[EfficiencyRow]:
    """Rank open positions by return, holding time and capital share.

    Unrealized P/L uses the last traded price of each stock as reference.
    """
    total = total_invested(holdings)
    max_alloc = max(1.0, settings.max_allocation_pct)
    rows = []
    for symbol, h in holdings.items():
        invested = h.invested_capital
        days = h.days_held(as_of)
        unrealized = h.unrealized
        return_pct = unrealized / invested * 100 if invested > 0 else 0.0
        share = invested / total * 100 if total > 0 else 0.0

        score = (
            _clamp((return_pct + 10) * 4) * 0.5
            + _clamp(100 - days / 180 * 100) * 0.25
            + _clamp(share / max_alloc * 100) * 0.25
        )
        if score >= 75:
            status = "Efficient"
        elif score >= 55:
            status = "Watch"
        else:
            status = "Inefficient"

        if return_pct < 0:
            note = "Negative return. Avoid new averaging unless zone + allocation rules align."
        elif days > 90 and return_pct < 5:
            note = "Capital tied up with slow return. Reassess conviction and opportunity cost."
        elif share > max_alloc:
            note = "Allocation above configured limit. Prefer trim on strength over fresh buys."
        else:
            note = "Maintain discipline and track next add/trim decision."

        rows.append(EfficiencyRow(
            symbol=symbol,
            invested=invested,
            qty=h.qty,
            days_held=days,
            reference_price=h.reference_price,
            unrealized=unrealized,
            return_pct=return_pct,
            capital_share_pct=share,
            score=score,
            status=status,
            note=note,
        ))
    rows.sort(key=lambda r: r.score, reverse=True)
    return rows
