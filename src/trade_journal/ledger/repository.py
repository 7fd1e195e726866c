from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from trade_journal.config import TradingSettings
from trade_journal.ledger import queries
from trade_journal.ledger.connection import ledger_connection
from trade_journal.portfolio.models import Transaction

logger = logging.getLogger(__name__)


class LedgerRepository(Protocol):
    """Source of the complete, ordered ledger and its settings."""

    async def fetch_transactions(self) -> list[Transaction]: ...

    async def fetch_settings(self) -> TradingSettings: ...


def transaction_from_row(row: sqlite3.Row) -> Transaction:
    return Transaction.from_record({
        "id": row["tx_id"],
        "date": row["trade_date"],
        "stock": row["symbol"],
        "type": row["tx_type"],
        "qty": row["qty"],
        "price": row["price"],
        "brokerage": row["brokerage"],
        "reason": row["reason"],
    })


def _columns(tx: Transaction) -> dict:
    return {
        "trade_date": tx.trade_date,
        "symbol": tx.symbol,
        "tx_type": tx.tx_type.value,
        "qty": tx.qty,
        "price": tx.price,
        "brokerage": tx.brokerage,
        "reason": tx.reason,
    }


class SqliteLedger:
    """Ledger stored in a sqlite file.

    Reads run in a worker thread so callers can await a full fetch; each
    call opens its own connection and hands back a consistent snapshot.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    # --- reads ---

    def load_transactions(self) -> list[Transaction]:
        with ledger_connection(self._db_path) as conn:
            rows = queries.get_transactions(conn)
        return [transaction_from_row(row) for row in rows]

    def load_settings(self) -> TradingSettings:
        with ledger_connection(self._db_path) as conn:
            record = queries.get_settings(conn)
        return TradingSettings.from_record(record)

    async def fetch_transactions(self) -> list[Transaction]:
        txs = await asyncio.to_thread(self.load_transactions)
        logger.debug("Fetched %d transactions from %s", len(txs), self._db_path)
        return txs

    async def fetch_settings(self) -> TradingSettings:
        return await asyncio.to_thread(self.load_settings)

    # --- writes ---

    def add_transaction(self, tx: Transaction) -> int:
        with ledger_connection(self._db_path) as conn:
            tx_id = queries.insert_transaction(conn, **_columns(tx))
        logger.info("Recorded %s %s x %g on %s", tx.tx_type.value, tx.symbol, tx.qty, tx.trade_date)
        return tx_id

    def replace_transaction(self, tx_id: int, tx: Transaction) -> None:
        with ledger_connection(self._db_path) as conn:
            queries.update_transaction(conn, tx_id, **_columns(tx))

    def delete_transaction(self, tx_id: int) -> None:
        with ledger_connection(self._db_path) as conn:
            queries.delete_transaction(conn, tx_id)

    def save_settings(self, settings: TradingSettings) -> None:
        with ledger_connection(self._db_path) as conn:
            queries.save_settings(conn, settings.to_record())
