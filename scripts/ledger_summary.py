"""Replay the configured ledger and print realized, holdings and discipline summaries.
REUSABLE: run after any change to the FIFO replay to eyeball totals against the live ledger.
"""
import asyncio
import logging
from datetime import date

from trade_journal.config import AppSettings
from trade_journal.ledger.repository import SqliteLedger
from trade_journal.portfolio.reports import holdings_frame, monthly_frame, stock_frame
from trade_journal.service import AnalyticsService, ViewState

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

settings = AppSettings()
service = AnalyticsService(SqliteLedger(settings.db_path))
result = asyncio.run(service.view_state())

if result.state is ViewState.FAILED:
    print(f"Computation failed: {result.error}")
    raise SystemExit(1)
if result.state is ViewState.EMPTY:
    print("No transactions yet")
    raise SystemExit(0)

snap = result.snapshot
totals = snap.realization.totals
print(f"=== Realized ({settings.db_path}) ===")
print(f"  Trades: {totals.trades}  Wins: {totals.wins}  Losses: {totals.losses}  Win rate: {totals.win_rate:.1f}%")
print(f"  Net: {totals.net:,.2f}")
for w in snap.realization.warnings:
    print(f"  ! {w.symbol} {w.trade_date}: sold {w.requested_qty:g}, matched {w.matched_qty:g}")

print("\n=== By month ===")
print(monthly_frame(snap.realization).to_string(index=False))

print("\n=== By stock ===")
print(stock_frame(snap.realization).to_string(index=False))

print(f"\n=== Holdings (active invested {snap.total_active_invested:,.2f}) ===")
print(holdings_frame(snap.holdings, snap.settings).to_string(index=False))

print(f"\n=== Decision quality as of {date.today()} ===")
for symbol, counts in sorted(snap.quality.by_stock.items()):
    print(f"  {symbol:<20} score={counts.score:>3}  mistakes={counts.mistakes}")
