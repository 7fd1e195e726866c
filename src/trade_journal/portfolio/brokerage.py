from __future__ import annotations

from trade_journal.config import TradingSettings
from trade_journal.portfolio.models import Transaction, TxType


def estimate_brokerage(
    tx_type: TxType,
    qty: float,
    price: float,
    settings: TradingSettings,
) -> float:
    """Brokerage implied by settings.

    BUY pays a percentage of trade value; SELL pays a percentage plus the
    flat DP charge, once per sell.
    """
    trade_value = qty * price
    if tx_type is TxType.BUY:
        return trade_value * settings.brokerage_buy_pct / 100
    return trade_value * settings.brokerage_sell_pct / 100 + settings.dp_charge


def resolve_brokerage(tx: Transaction, settings: TradingSettings) -> float:
    """Return the cost charged for ``tx``.

    A positive brokerage recorded on the transaction always wins over the
    settings-derived estimate.
    """
    if tx.brokerage is not None and tx.brokerage > 0:
        return float(tx.brokerage)
    return estimate_brokerage(tx.tx_type, tx.qty, tx.price, settings)
