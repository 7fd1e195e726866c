from __future__ import annotations

import enum
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from trade_journal.errors import InvalidTransaction

UNSPECIFIED_REASON = "Unspecified"


class TxType(enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


def normalize_symbol(value: str | None) -> str:
    """Trim, collapse inner whitespace and upper-case a stock name."""
    return re.sub(r"\s+", " ", str(value or "").strip()).upper()


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def _positive(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTransaction(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or value <= 0:
        raise InvalidTransaction(f"{name} must be positive, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class Transaction:
    tx_id: int | None
    trade_date: date
    symbol: str
    tx_type: TxType
    qty: float
    price: float
    brokerage: float | None = None
    reason: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.trade_date, date):
            raise InvalidTransaction(f"Transaction {self.tx_id}: missing trade date")
        if not self.symbol:
            raise InvalidTransaction(f"Transaction {self.tx_id}: missing stock")
        if not isinstance(self.tx_type, TxType):
            raise InvalidTransaction(
                f"Transaction {self.tx_id}: unknown type {self.tx_type!r}"
            )
        _positive("qty", self.qty)
        _positive("price", self.price)
        if self.brokerage is not None and (
            isinstance(self.brokerage, bool)
            or not isinstance(self.brokerage, (int, float))
            or not math.isfinite(self.brokerage)
            or self.brokerage < 0
        ):
            raise InvalidTransaction(
                f"Transaction {self.tx_id}: brokerage must be >= 0, got {self.brokerage!r}"
            )

    @property
    def trade_value(self) -> float:
        return self.qty * self.price

    @classmethod
    def from_record(cls, record: Mapping) -> Transaction:
        """Build a transaction from a ledger record.

        Accepts ``{id, date, stock, type, qty, price, brokerage?, reason?}``.
        """
        raw_date = record.get("date")
        if not raw_date:
            raise InvalidTransaction(f"Transaction {record.get('id')}: missing date")
        try:
            trade_date = (
                raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date).strip())
            )
        except ValueError as exc:
            raise InvalidTransaction(f"Invalid date {raw_date!r}") from exc

        raw_type = str(record.get("type") or "").strip().upper()
        try:
            tx_type = TxType(raw_type)
        except ValueError as exc:
            raise InvalidTransaction(f"Unknown transaction type {raw_type!r}") from exc

        brokerage = record.get("brokerage")
        return cls(
            tx_id=record.get("id"),
            trade_date=trade_date,
            symbol=normalize_symbol(record.get("stock")),
            tx_type=tx_type,
            qty=record.get("qty"),
            price=record.get("price"),
            brokerage=None if brokerage in (None, "") else brokerage,
            reason=str(record.get("reason") or "").strip(),
        )

    def to_record(self) -> dict:
        return {
            "id": self.tx_id,
            "date": self.trade_date.isoformat(),
            "stock": self.symbol,
            "type": self.tx_type.value,
            "qty": self.qty,
            "price": self.price,
            "brokerage": self.brokerage,
            "reason": self.reason,
        }


@dataclass
class Lot:
    qty: float
    price: float
    brokerage_per_unit: float
    acquired_date: date
    source_tx_id: int | None = None
    reason: str = UNSPECIFIED_REASON

    @property
    def unit_cost(self) -> float:
        return self.price + self.brokerage_per_unit

    @property
    def invested(self) -> float:
        return self.qty * self.unit_cost


@dataclass(frozen=True)
class CycleBuy:
    trade_date: date
    price: float
    qty: float


@dataclass
class Cycle:
    """Span from a position opening until it next returns to zero."""

    first_buy_price: float | None = None
    first_buy_date: date | None = None
    last_buy_date: date | None = None
    buys: list[CycleBuy] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.first_buy_price is not None

    def reset(self) -> None:
        self.first_buy_price = None
        self.first_buy_date = None
        self.last_buy_date = None
        self.buys = []


@dataclass(frozen=True)
class LotSlice:
    """The part of one lot consumed by one sell."""

    qty: float
    buy_price: float
    brokerage_per_unit: float
    buy_date: date
    hold_days: int
    reason: str = UNSPECIFIED_REASON

    @property
    def invested(self) -> float:
        return self.qty * (self.buy_price + self.brokerage_per_unit)


@dataclass(frozen=True)
class RealizedTrade:
    tx_id: int | None
    symbol: str
    trade_date: date
    qty: float
    sell_price: float
    buy_cost: float
    buy_brokerage: float
    sell_brokerage: float
    net: float
    invested_amount: float
    hold_days: float
    return_pct: float
    matched_qty: float

    @property
    def unmatched_qty(self) -> float:
        return max(0.0, self.qty - self.matched_qty)

    @property
    def sell_value(self) -> float:
        return self.qty * self.sell_price

    @property
    def is_win(self) -> bool:
        return self.net >= 0


@dataclass(frozen=True)
class OversellWarning:
    tx_id: int | None
    symbol: str
    trade_date: date
    requested_qty: float
    matched_qty: float

    @property
    def shortfall(self) -> float:
        return self.requested_qty - self.matched_qty
