from datetime import date

import pytest

from trade_journal.config import TradingSettings
from trade_journal.ledger.repository import SqliteLedger
from trade_journal.portfolio.models import Transaction, TxType


@pytest.fixture
def settings():
    """Default brokerage: 0.15% each way plus a 50 flat charge per sell."""
    return TradingSettings()


@pytest.fixture
def free_settings():
    """No brokerage at all, so expected P/L is plain arithmetic."""
    return TradingSettings(brokerage_buy_pct=0.0, brokerage_sell_pct=0.0, dp_charge=0.0)


@pytest.fixture
def make_tx():
    counter = iter(range(1, 10_000))

    def _make(tx_type, trade_date, qty, price, symbol="INFY", **kwargs):
        if isinstance(trade_date, str):
            trade_date = date.fromisoformat(trade_date)
        return Transaction(
            tx_id=kwargs.pop("tx_id", next(counter)),
            trade_date=trade_date,
            symbol=symbol,
            tx_type=TxType(tx_type),
            qty=qty,
            price=price,
            **kwargs,
        )

    return _make


@pytest.fixture
def ledger(tmp_path):
    return SqliteLedger(tmp_path / "ledger.db")
