from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from trade_journal.config import TradingSettings
from trade_journal.errors import TradeJournalError
from trade_journal.ledger.repository import LedgerRepository
from trade_journal.portfolio.advisor import AveragingAdvice, advise_all
from trade_journal.portfolio.fifo import Replay, replay
from trade_journal.portfolio.holdings import Holding, project
from trade_journal.portfolio.models import Transaction
from trade_journal.portfolio.quality import DecisionQuality, score_decisions
from trade_journal.portfolio.realization import Realization, realize

logger = logging.getLogger(__name__)


class ViewState(enum.Enum):
    EMPTY = "empty"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class AnalyticsSnapshot:
    transactions: tuple[Transaction, ...]
    settings: TradingSettings
    replay: Replay
    realization: Realization
    holdings: dict[str, Holding]
    advice: dict[str, AveragingAdvice]
    quality: DecisionQuality

    @property
    def total_active_invested(self) -> float:
        return sum(h.invested_capital for h in self.holdings.values())


@dataclass(frozen=True)
class ViewResult:
    state: ViewState
    snapshot: AnalyticsSnapshot | None = None
    error: str | None = None


def build_snapshot(
    transactions: list[Transaction], settings: TradingSettings
) -> AnalyticsSnapshot:
    """Run one replay and derive every view from it."""
    replayed = replay(transactions, settings)
    holdings = project(replayed)
    return AnalyticsSnapshot(
        transactions=tuple(transactions),
        settings=settings,
        replay=replayed,
        realization=realize(replayed),
        holdings=holdings,
        advice=advise_all(holdings, settings),
        quality=score_decisions(replayed),
    )


class AnalyticsService:
    def __init__(self, ledger: LedgerRepository) -> None:
        self._ledger = ledger

    async def load(self) -> AnalyticsSnapshot:
        """Fetch the complete ledger, then replay it from scratch."""
        settings = await self._ledger.fetch_settings()
        transactions = await self._ledger.fetch_transactions()
        return build_snapshot(transactions, settings)

    async def view_state(self) -> ViewResult:
        """Load analytics for a view, keeping "no data" and "failed" apart."""
        try:
            snapshot = await self.load()
        except TradeJournalError as exc:
            logger.exception("Analytics computation failed")
            return ViewResult(ViewState.FAILED, error=str(exc))
        if not snapshot.transactions:
            return ViewResult(ViewState.EMPTY, snapshot=snapshot)
        return ViewResult(ViewState.READY, snapshot=snapshot)
