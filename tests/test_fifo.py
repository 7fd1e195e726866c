import logging
from datetime import date

import pytest

from trade_journal.portfolio.fifo import BuyEvent, LotQueue, SellEvent, replay
from trade_journal.portfolio.holdings import project


def test_buy_then_full_sell_with_brokerage(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 100, 100.0),
        make_tx("SELL", "2024-02-01", 100, 120.0),
    ]
    trade = replay(txs, settings).trades[0]

    assert trade.buy_cost == pytest.approx(10000.0)
    assert trade.buy_brokerage == pytest.approx(15.0)
    assert trade.sell_brokerage == pytest.approx(68.0)
    assert trade.net == pytest.approx(1917.0)
    assert trade.hold_days == pytest.approx(31.0)
    assert trade.invested_amount == pytest.approx(10015.0)
    assert trade.return_pct == pytest.approx(1917.0 / 10015.0 * 100)


def test_sell_consumes_oldest_lot_first(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 50, 100.0),
        make_tx("BUY", "2024-01-10", 50, 90.0),
        make_tx("SELL", "2024-02-01", 60, 110.0),
    ]
    result = replay(txs, settings)
    trade = result.trades[0]

    assert trade.buy_cost == pytest.approx(50 * 100 + 10 * 90)
    queue = result.queues["INFY"]
    assert len(queue.lots) == 1
    assert queue.lots[0].qty == pytest.approx(40.0)
    assert queue.lots[0].price == 90.0


def test_sell_slices_follow_lot_order(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("BUY", "2024-01-05", 10, 105.0),
        make_tx("BUY", "2024-01-09", 10, 110.0),
        make_tx("SELL", "2024-02-01", 25, 120.0),
    ]
    sell = next(replay(txs, free_settings).sells())

    assert [s.buy_date for s in sell.slices] == [
        date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 9),
    ]
    assert [s.qty for s in sell.slices] == [10, 10, 5]


def test_weighted_hold_days(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("BUY", "2024-01-21", 30, 100.0),
        make_tx("SELL", "2024-01-31", 40, 100.0),
    ]
    trade = replay(txs, free_settings).trades[0]
    # (10 * 30 + 30 * 10) / 40
    assert trade.hold_days == pytest.approx(15.0)


def test_sell_without_buy_does_not_fail(settings, make_tx, caplog):
    txs = [make_tx("SELL", "2024-03-01", 10, 50.0)]
    with caplog.at_level(logging.WARNING):
        result = replay(txs, settings)

    trade = result.trades[0]
    assert trade.buy_cost == 0.0
    assert trade.buy_brokerage == 0.0
    assert trade.net == pytest.approx(500.0 - (0.75 + 50.0))
    assert trade.hold_days == 0.0
    assert trade.return_pct == 0.0
    assert "Insufficient lots for SELL" in caplog.text


def test_oversell_matches_available_lots_and_warns(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 5, 100.0),
        make_tx("SELL", "2024-02-01", 8, 120.0),
    ]
    result = replay(txs, free_settings)
    trade = result.trades[0]

    assert trade.matched_qty == pytest.approx(5.0)
    assert trade.unmatched_qty == pytest.approx(3.0)
    assert trade.buy_cost == pytest.approx(500.0)
    assert trade.net == pytest.approx(8 * 120.0 - 500.0)
    assert len(result.warnings) == 1
    assert result.warnings[0].shortfall == pytest.approx(3.0)
    assert result.queues["INFY"].is_empty()


def test_cycle_resets_between_full_exits(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("SELL", "2024-02-01", 10, 110.0),
        make_tx("BUY", "2024-03-01", 10, 200.0),
        make_tx("BUY", "2024-04-01", 10, 180.0),
    ]
    result = replay(txs, settings)
    cycle = result.queues["INFY"].cycle

    assert cycle.first_buy_price == 200.0
    assert cycle.first_buy_date == date(2024, 3, 1)
    assert [b.price for b in cycle.buys] == [200.0, 180.0]

    buys = list(result.buys())
    assert [b.opened_cycle for b in buys] == [True, True, False]
    assert buys[2].previous_buy.price == 200.0
    sell = next(result.sells())
    assert sell.closed_cycle


def test_cycle_unset_after_full_exit(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("SELL", "2024-02-01", 10, 110.0),
    ]
    cycle = replay(txs, settings).queues["INFY"].cycle
    assert not cycle.is_open
    assert cycle.buys == []


def test_lot_quantity_is_conserved_at_every_step(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("BUY", "2024-01-02", 7, 101.0, symbol="TCS"),
        make_tx("SELL", "2024-01-03", 4, 99.0),
        make_tx("BUY", "2024-01-04", 3.5, 98.0),
        make_tx("SELL", "2024-01-05", 7, 102.0, symbol="TCS"),
        make_tx("SELL", "2024-01-06", 12, 97.0),
        make_tx("SELL", "2024-01-07", 2, 97.0),
    ]
    for n in range(1, len(txs) + 1):
        result = replay(txs[:n], settings)
        for queue in result.queues.values():
            assert queue.qty >= 0
            assert queue.qty == pytest.approx(queue.bought_qty - queue.matched_qty)


def test_same_day_keeps_ledger_order(free_settings, make_tx):
    buy_first = [
        make_tx("BUY", "2024-01-01", 10, 100.0),
        make_tx("SELL", "2024-01-01", 10, 101.0),
    ]
    sell_first = list(reversed(buy_first))

    matched = replay(buy_first, free_settings)
    assert matched.trades[0].buy_cost == pytest.approx(1000.0)
    assert matched.warnings == []

    unmatched = replay(sell_first, free_settings)
    assert unmatched.trades[0].buy_cost == 0.0
    assert len(unmatched.warnings) == 1


def test_unsorted_input_is_replayed_chronologically(free_settings, make_tx):
    txs = [
        make_tx("SELL", "2024-02-01", 10, 120.0),
        make_tx("BUY", "2024-01-01", 10, 100.0),
    ]
    result = replay(txs, free_settings)
    assert result.warnings == []
    assert result.trades[0].net == pytest.approx(200.0)


def test_replay_is_idempotent(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0, reason="Breakout"),
        make_tx("BUY", "2024-01-15", 10, 92.0),
        make_tx("SELL", "2024-02-01", 15, 110.0),
        make_tx("BUY", "2024-02-03", 4, 50.0, symbol="TCS"),
    ]
    first = replay(txs, settings)
    second = replay(txs, settings)

    assert repr(first.trades) == repr(second.trades)
    assert repr(project(first)) == repr(project(second))


def test_buy_event_records_portfolio_allocation(free_settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0, symbol="AAA"),
        make_tx("BUY", "2024-01-02", 30, 100.0, symbol="BBB"),
    ]
    events = replay(txs, free_settings).events
    assert all(isinstance(e, BuyEvent) for e in events)
    assert events[0].allocation_pct == pytest.approx(100.0)
    assert events[1].stock_invested == pytest.approx(3000.0)
    assert events[1].portfolio_invested == pytest.approx(4000.0)
    assert events[1].allocation_pct == pytest.approx(75.0)


def test_explicit_brokerage_flows_into_lot(settings, make_tx):
    txs = [
        make_tx("BUY", "2024-01-01", 10, 100.0, brokerage=20.0),
        make_tx("SELL", "2024-01-02", 4, 100.0, brokerage=5.0),
    ]
    result = replay(txs, settings)
    sell = next(result.sells())
    assert isinstance(sell, SellEvent)
    assert sell.brokerage == 5.0
    assert sell.trade.buy_brokerage == pytest.approx(8.0)
    assert result.queues["INFY"].lots[0].brokerage_per_unit == pytest.approx(2.0)


def test_lot_queue_tracks_reference_price(make_tx):
    queue = LotQueue("INFY")
    queue.buy(make_tx("BUY", "2024-01-01", 10, 100.0), brokerage=0.0)
    assert queue.reference_price == 100.0
    queue.sell(make_tx("SELL", "2024-01-02", 3, 104.0))
    assert queue.reference_price == 104.0
    assert queue.qty == pytest.approx(7.0)


def test_empty_ledger(settings):
    result = replay([], settings)
    assert result.is_empty()
    assert result.trades == []
    assert result.queues == {}
