from dataclasses import replace
from datetime import date

import pytest

from trade_journal.portfolio.advisor import (
    advise,
    advise_all,
    allocation_risk,
    allocation_status,
    classify_cycle_buys,
    exit_levels,
    level_prices,
)
from trade_journal.portfolio.fifo import replay
from trade_journal.portfolio.holdings import project


def _holdings(txs, settings):
    return project(replay(txs, settings))


def test_level_prices(settings):
    l1, l2 = level_prices(200.0, settings)
    assert l1 == pytest.approx(186.0)
    assert l2 == pytest.approx(176.0)


@pytest.mark.parametrize(
    "pct, status, risk",
    [
        (30.0, "Warning", "Over Allocation"),
        (25.0, "Moderate", "Near Allocation Limit"),
        (22.0, "Moderate", "Near Allocation Limit"),
        (20.0, "Moderate", "Allocation Healthy"),
        (10.0, "Balanced", "Allocation Healthy"),
    ],
)
def test_allocation_bands(settings, pct, status, risk):
    assert allocation_status(pct, settings) == status
    assert allocation_risk(pct, settings) == risk


def test_levels_use_current_cycle_only(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("SELL", "2024-02-01", 10, 110.0),
        make_tx("BUY", "2024-03-01", 10, 200.0),
        make_tx("BUY", "2024-04-01", 10, 180.0),
    ]
    holding = _holdings(txs, settings)["INFY"]
    advice = advise(holding, settings, holding.invested_capital)

    assert advice.level1_price == pytest.approx(186.0)
    assert advice.level2_price == pytest.approx(176.0)
    assert advice.level1_hit_buy == 2
    assert advice.level2_hit_buy is None
    assert advice.stage == "Level-1 Averaging Completed"


def test_pending_level_gets_remaining_budget(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("BUY", "2024-01-10", 10, 95.0),
        make_tx("BUY", "2024-01-20", 10, 90.0),
    ]
    holding = _holdings(txs, free_settings)["INFY"]
    advice = advise(holding, free_settings, holding.invested_capital)

    assert advice.level1_hit_buy == 3
    assert not advice.level2_hit
    assert advice.remaining_budget == pytest.approx(22150.0)
    (l2,) = advice.suggestions
    assert l2.label == "L2"
    assert l2.qty == 251
    assert l2.projected_avg == pytest.approx(24938 / 281)
    assert "L2 near 88.00" in advice.next_decision


def test_single_holding_is_fully_allocated(free_settings, make_tx):
    holding = _holdings([make_tx("BUY", "2024-01-01", 10, 100.0)], free_settings)["INFY"]
    advice = advise(holding, free_settings, holding.invested_capital)
    assert advice.allocation_pct == pytest.approx(100.0)
    assert advice.allocation_status == "Warning"
    assert not advice.level1_hit
    assert advice.stage == ""
    assert advice.next_decision.startswith("Wait for L1 zone near 93.00")


def test_allocation_is_against_active_invested_not_portfolio_size(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0, symbol="AAA"),
        make_tx("BUY", "2024-01-01", 30, 100.0, symbol="BBB"),
    ]
    advice = advise_all(_holdings(txs, free_settings), free_settings)
    assert advice["AAA"].allocation_pct == pytest.approx(25.0)
    assert advice["BBB"].allocation_pct == pytest.approx(75.0)


def test_trim_when_invested_exceeds_budget(free_settings, make_tx):
    small = replace(free_settings, portfolio_size=1000.0)
    holding = _holdings([make_tx("BUY", "2024-01-01", 4, 100.0)], small)["INFY"]
    advice = advise(holding, small, holding.invested_capital)

    assert advice.stock_budget == pytest.approx(250.0)
    assert advice.trim_amount == pytest.approx(150.0)
    assert advice.trim_qty == 2
    assert advice.remaining_budget == 0.0
    assert advice.at_limit


def test_both_levels_hit(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 1, 100.0),
        make_tx("BUY", "2024-01-02", 1, 92.0),
        make_tx("BUY", "2024-01-03", 1, 85.0),
    ]
    holding = _holdings(txs, free_settings)["INFY"]
    advice = advise(holding, free_settings, holding.invested_capital)
    assert advice.level1_hit_buy == 2
    assert advice.level2_hit_buy == 3
    assert advice.suggestions == ()
    assert advice.stage == "Averaging Stage Completed"


def test_classify_cycle_buys(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 1, 100.0),
        make_tx("BUY", "2024-01-02", 1, 92.0),
        make_tx("BUY", "2024-01-03", 1, 90.0),
        make_tx("BUY", "2024-01-04", 1, 91.0),
        make_tx("BUY", "2024-01-05", 1, 100.0),
    ]
    holding = _holdings(txs, free_settings)["INFY"]
    reviews = classify_cycle_buys(holding, free_settings)

    assert [r.tag for r in reviews] == [
        "Base buy",
        "Good follow-up",
        "Bad buy (weak drop)",
        "Slight chase",
        "High chase",
    ]
    assert [r.zone for r in reviews] == [
        "Above zones", "L1 zone", "L1 zone", "L1 zone", "Above zones",
    ]
    assert reviews[1].extra_per_share == pytest.approx(-1.0)
    assert reviews[1].extra_paid == 0.0
    assert reviews[4].extra_per_share == pytest.approx(100.0 - 91.0 * 0.93)


def test_exit_levels(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("SELL", "2024-01-05", 1, 120.0),
    ]
    holding = _holdings(txs, free_settings)["INFY"]

    early = exit_levels(holding, free_settings, date(2024, 1, 10))
    assert early.target_price == pytest.approx(115.0)
    assert early.stop_price == pytest.approx(90.0)
    assert not early.trim_eligible
    assert early.signal == "Target Reached (hold period not met)"

    later = exit_levels(holding, free_settings, date(2024, 2, 15))
    assert later.trim_eligible
    assert later.signal == "Book Profit"


def test_stop_loss_signal(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("SELL", "2024-01-05", 1, 85.0),
    ]
    holding = _holdings(txs, free_settings)["INFY"]
    assert exit_levels(holding, free_settings, date(2024, 1, 10)).signal == "Stop Loss Hit"
