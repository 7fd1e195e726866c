from __future__ import annotations


class TradeJournalError(Exception):
    """Base class for errors raised by the trade journal."""


class InvalidTransaction(TradeJournalError, ValueError):
    """A ledger record that must never reach the FIFO engine."""


class ConfigurationError(TradeJournalError, ValueError):
    """Settings are missing or carry a non-numeric value."""
