from __future__ import annotations

import sqlite3

LEDGER_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS transactions (
    tx_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    trade_date  TEXT NOT NULL,
    symbol      TEXT NOT NULL,
    tx_type     TEXT NOT NULL,
    qty         REAL NOT NULL,
    price       REAL NOT NULL,
    brokerage   REAL,
    reason      TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS settings (
    key         TEXT PRIMARY KEY,
    value       REAL,
    updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_transactions_date
    ON transactions(trade_date, tx_id);

CREATE INDEX IF NOT EXISTS idx_transactions_symbol
    ON transactions(symbol);
"""


def initialize_ledger_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(LEDGER_SCHEMA_SQL)
