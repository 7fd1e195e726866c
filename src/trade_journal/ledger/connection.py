from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from trade_journal.config import TradingSettings
from trade_journal.ledger.queries import seed_settings
from trade_journal.ledger.schema import initialize_ledger_schema

logger = logging.getLogger(__name__)


def get_connection(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


@contextmanager
def ledger_connection(db_path: Path) -> Iterator[sqlite3.Connection]:
    """Short-lived connection with the ledger schema in place.

    A ledger that never stored settings gets the default settings record.
    Commits when the block finishes cleanly; a failing block leaves the
    ledger untouched.
    """
    conn = get_connection(db_path)
    try:
        initialize_ledger_schema(conn)
        if seed_settings(conn, TradingSettings().to_record()):
            logger.info("Seeded default settings into %s", db_path)
        yield conn
        conn.commit()
    finally:
        conn.close()
