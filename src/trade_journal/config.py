from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

from trade_journal.errors import ConfigurationError

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DEFAULT_DB_PATH = _PROJECT_ROOT / "data" / "trade_journal.db"


# -- Allocation and discipline constants ---------------------------------------

MODERATE_ALLOCATION_PCT = 15.0
NEAR_LIMIT_FRACTION = 0.85
PANIC_SELL_MAX_HOLD_DAYS = 15
SLIGHT_CHASE_PCT = 2.0
REENTRY_DISCOUNT_PCT = 5.0

# Decision-quality penalty per mistake
CHASE_BUY_PENALTY = 8
WEAK_DROP_BUY_PENALTY = 12
OVER_ALLOCATION_BUY_PENALTY = 15
PANIC_SELL_PENALTY = 10

# Settings record key -> TradingSettings attribute
_REQUIRED_KEYS: dict[str, str] = {
    "brokerageBuyPct": "brokerage_buy_pct",
    "brokerageSellPct": "brokerage_sell_pct",
    "dpCharge": "dp_charge",
    "portfolioSize": "portfolio_size",
    "maxAllocationPct": "max_allocation_pct",
    "avgLevel1Pct": "avg_level1_pct",
    "avgLevel2Pct": "avg_level2_pct",
    "sellTargetPct": "sell_target_pct",
    "stopLossPct": "stop_loss_pct",
    "minHoldDaysTrim": "min_hold_days_trim",
}

# Added after the first settings schema; older records fall back to defaults.
_OPTIONAL_KEYS: dict[str, str] = {
    "fdRatePct": "fd_rate_pct",
    "inflationRatePct": "inflation_rate_pct",
}


@dataclass(frozen=True)
class TradingSettings:
    brokerage_buy_pct: float = 0.15
    brokerage_sell_pct: float = 0.15
    dp_charge: float = 50.0
    portfolio_size: float = 100_000.0
    max_allocation_pct: float = 25.0
    avg_level1_pct: float = 7.0
    avg_level2_pct: float = 12.0
    sell_target_pct: float = 15.0
    stop_loss_pct: float = 10.0
    min_hold_days_trim: float = 30.0
    fd_rate_pct: float = 6.5
    inflation_rate_pct: float = 6.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(
                    f"{f.name} must be numeric, got {value!r}"
                )
            if not math.isfinite(value):
                raise ConfigurationError(f"{f.name} must be finite, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{f.name} must not be negative, got {value!r}")

    @classmethod
    def from_record(cls, record: Mapping | None) -> TradingSettings:
        """Build settings from a stored settings record.

        Every key except the FD and inflation rates is required.
        """
        if record is None:
            raise ConfigurationError("No settings record available")

        values: dict[str, float] = {}
        missing = [key for key in _REQUIRED_KEYS if record.get(key) is None]
        if missing:
            raise ConfigurationError(f"Settings missing: {', '.join(missing)}")

        for key, attr in {**_REQUIRED_KEYS, **_OPTIONAL_KEYS}.items():
            raw = record.get(key)
            if raw is None:
                continue
            values[attr] = raw
        return cls(**values)

    def to_record(self) -> dict[str, float]:
        record = {}
        for key, attr in {**_REQUIRED_KEYS, **_OPTIONAL_KEYS}.items():
            record[key] = getattr(self, attr)
        return record

    @property
    def max_stock_budget(self) -> float:
        return self.portfolio_size * self.max_allocation_pct / 100


def _load_env_file() -> dict[str, str]:
    """Read key=value pairs from .env at project root."""
    env_path = _PROJECT_ROOT / ".env"
    if not env_path.exists():
        return {}
    result = {}
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        result[key.strip()] = value.strip()
    return result


def get_db_path() -> Path:
    """Return the ledger database path from environment or .env file."""
    path = os.environ.get("TRADE_JOURNAL_DB_PATH")
    if path:
        return Path(path)
    path = _load_env_file().get("TRADE_JOURNAL_DB_PATH")
    return Path(path) if path else _DEFAULT_DB_PATH


@dataclass(frozen=True)
class AppSettings:
    db_path: Path = field(default_factory=get_db_path)
