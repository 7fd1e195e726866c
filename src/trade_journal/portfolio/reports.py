from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

import pandas as pd

from trade_journal.config import TradingSettings
from trade_journal.portfolio.advisor import advise_all
from trade_journal.portfolio.brokerage import resolve_brokerage
from trade_journal.portfolio.holdings import Holding
from trade_journal.portfolio.models import RealizedTrade, Transaction, normalize_symbol
from trade_journal.portfolio.realization import Realization

TRADE_COLUMNS = [
    "date", "stock", "qty", "sell_price", "buy_cost", "buy_brokerage",
    "sell_brokerage", "net", "invested", "hold_days", "return_pct",
]
HOLDING_COLUMNS = [
    "stock", "qty", "avg_cost", "invested", "allocation_pct", "status",
    "first_buy_date", "reference_price", "unrealized",
]
BROKERAGE_COLUMNS = ["date", "stock", "type", "qty", "price", "brokerage"]


def trades_frame(trades: Iterable[RealizedTrade]) -> pd.DataFrame:
    rows = [
        {
            "date": t.trade_date,
            "stock": t.symbol,
            "qty": t.qty,
            "sell_price": t.sell_price,
            "buy_cost": t.buy_cost,
            "buy_brokerage": t.buy_brokerage,
            "sell_brokerage": t.sell_brokerage,
            "net": t.net,
            "invested": t.invested_amount,
            "hold_days": t.hold_days,
            "return_pct": t.return_pct,
        }
        for t in trades
    ]
    if not rows:
        return pd.DataFrame(columns=TRADE_COLUMNS)
    return pd.DataFrame(rows, columns=TRADE_COLUMNS)


def monthly_frame(realization: Realization) -> pd.DataFrame:
    """Realized net per calendar month, oldest first."""
    if not realization.monthly_net:
        return pd.DataFrame(columns=["month", "net"])
    df = pd.DataFrame(
        sorted(realization.monthly_net.items()), columns=["month", "net"]
    )
    df["cumulative"] = df["net"].cumsum()
    return df


def stock_frame(realization: Realization) -> pd.DataFrame:
    columns = ["stock", "pnl", "trades", "wins", "losses", "invested", "avg_hold_days", "return_pct"]
    rows = [
        {
            "stock": s.symbol,
            "pnl": s.pnl,
            "trades": s.trades,
            "wins": s.wins,
            "losses": s.losses,
            "invested": s.invested,
            "avg_hold_days": s.avg_hold_days,
            "return_pct": s.return_pct,
        }
        for s in realization.by_stock.values()
    ]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows, columns=columns).sort_values("pnl", ascending=False, ignore_index=True)


def holdings_frame(
    holdings: Mapping[str, Holding], settings: TradingSettings
) -> pd.DataFrame:
    advice = advise_all(dict(holdings), settings)
    rows = [
        {
            "stock": symbol,
            "qty": h.qty,
            "avg_cost": h.average_cost,
            "invested": h.invested_capital,
            "allocation_pct": advice[symbol].allocation_pct,
            "status": advice[symbol].allocation_status,
            "first_buy_date": h.cycle.first_buy_date,
            "reference_price": h.reference_price,
            "unrealized": h.unrealized,
        }
        for symbol, h in sorted(holdings.items())
    ]
    if not rows:
        return pd.DataFrame(columns=HOLDING_COLUMNS)
    return pd.DataFrame(rows, columns=HOLDING_COLUMNS)


def brokerage_frame(
    transactions: Iterable[Transaction],
    settings: TradingSettings,
    start: date | None = None,
    end: date | None = None,
    stock: str = "",
) -> pd.DataFrame:
    """Every transaction with the brokerage it was charged, newest first."""
    needle = normalize_symbol(stock)
    rows = []
    for tx in transactions:
        if start and tx.trade_date < start:
            continue
        if end and tx.trade_date > end:
            continue
        if needle and needle not in tx.symbol:
            continue
        rows.append({
            "date": tx.trade_date,
            "stock": tx.symbol,
            "type": tx.tx_type.value,
            "qty": tx.qty,
            "price": tx.price,
            "brokerage": resolve_brokerage(tx, settings),
        })
    if not rows:
        return pd.DataFrame(columns=BROKERAGE_COLUMNS)
    df = pd.DataFrame(rows, columns=BROKERAGE_COLUMNS)
    return df.sort_values("date", ascending=False, kind="stable", ignore_index=True)
