from __future__ import annotations

import sqlite3
from collections.abc import Mapping
from datetime import date


# --- Transactions ---

def insert_transaction(
    conn: sqlite3.Connection,
    trade_date: date,
    symbol: str,
    tx_type: str,
    qty: float,
    price: float,
    brokerage: float | None = None,
    reason: str = "",
) -> int | None:
    """Insert a transaction. Returns tx_id."""
    cur = conn.execute(
        "INSERT INTO transactions "
        "(trade_date, symbol, tx_type, qty, price, brokerage, reason) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (trade_date.isoformat(), symbol, tx_type, qty, price, brokerage, reason),
    )
    return cur.lastrowid


def get_transactions(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    """The whole ledger, ordered by trade date then insertion order."""
    return conn.execute(
        "SELECT * FROM transactions ORDER BY trade_date, tx_id"
    ).fetchall()


def count_transactions(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM transactions").fetchone()[0]


def update_transaction(conn: sqlite3.Connection, tx_id: int, **fields) -> None:
    """Update specific fields on a transaction by tx_id."""
    if not fields:
        return
    allowed = {"trade_date", "symbol", "tx_type", "qty", "price", "brokerage", "reason"}
    to_set = {k: v for k, v in fields.items() if k in allowed}
    if not to_set:
        return
    if isinstance(to_set.get("trade_date"), date):
        to_set["trade_date"] = to_set["trade_date"].isoformat()
    set_clause = ", ".join(f"{col} = ?" for col in to_set)
    params = list(to_set.values()) + [tx_id]
    conn.execute(f"UPDATE transactions SET {set_clause} WHERE tx_id = ?", params)


def delete_transaction(conn: sqlite3.Connection, tx_id: int) -> None:
    """Delete a single transaction by tx_id."""
    conn.execute("DELETE FROM transactions WHERE tx_id = ?", (tx_id,))


# --- Settings ---

def get_settings(conn: sqlite3.Connection) -> dict | None:
    """Stored settings as a record, or None when nothing was ever saved."""
    rows = conn.execute("SELECT key, value FROM settings").fetchall()
    if not rows:
        return None
    return {row["key"]: row["value"] for row in rows}


def save_settings(conn: sqlite3.Connection, record: Mapping[str, float]) -> None:
    conn.executemany(
        "INSERT OR REPLACE INTO settings (key, value, updated_at) "
        "VALUES (?, ?, datetime('now'))",
        list(record.items()),
    )


def seed_settings(conn: sqlite3.Connection, record: Mapping[str, float]) -> bool:
    """Store ``record`` only when no settings were ever saved.

    A partially stored record is left alone. Returns True if seeded.
    """
    if conn.execute("SELECT 1 FROM settings LIMIT 1").fetchone() is not None:
        return False
    conn.executemany(
        "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
        list(record.items()),
    )
    return True
