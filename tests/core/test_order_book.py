from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from ob_core.book import OrderBook
from ob_core.events import OfferRetract
from ob_core.market import ASKS, BIDS
from ob_core.snapshot import BookOptions
from fakes import MARKET, FakeEventSource, FakeReader, raw_offer


def _reader(**kw):
    asks = [raw_offer(1, 0, 2, gives=1, wants=105), raw_offer(2, 1, 0, gives=1, wants=110)]
    bids = [raw_offer(7, 0, 8, gives=100, wants=1), raw_offer(8, 7, 0, gives=95, wants=1)]
    return FakeReader({ASKS: asks, BIDS: bids}, **kw)


def test_connect_both_sides_and_quote_top_of_book():
    events = FakeEventSource()
    book = asyncio.run(OrderBook.connect(MARKET, _reader(), events, BookOptions(max_offers=5)))

    assert book.best_ask().price == Decimal(105)
    assert book.best_bid().price == Decimal(100)
    assert book.spread() == Decimal(5)
    snap = book.snapshot()
    assert [o.id for o in snap[ASKS]] == [1, 2]
    assert [o.id for o in snap[BIDS]] == [7, 8]
    assert len(events.subs) == 2


def test_events_are_routed_per_side():
    events = FakeEventSource()
    changes = []
    book = asyncio.run(OrderBook.connect(MARKET, _reader(), events, on_change=changes.append))

    events.emit(OfferRetract(101, 7), ba=BIDS)

    assert [o.id for o in book.bids.to_list()] == [8]
    assert [o.id for o in book.asks.to_list()] == [1, 2]
    assert [(c.ba, c.offer.id) for c in changes] == [(BIDS, 7)]


def test_spread_is_none_when_a_side_is_empty():
    reader = FakeReader({ASKS: [raw_offer(1, gives=1, wants=5)]})
    book = asyncio.run(OrderBook.connect(MARKET, reader, FakeEventSource()))
    assert book.best_bid() is None
    assert book.spread() is None


def test_failure_on_one_side_disconnects_everything():
    reader = _reader()
    reader.fail_with = TimeoutError("reader timed out")
    events = FakeEventSource()

    with pytest.raises(TimeoutError):
        asyncio.run(OrderBook.connect(MARKET, reader, events))
    assert events.subs == []


def test_disconnect_unsubscribes_both_sides():
    events = FakeEventSource()
    book = asyncio.run(OrderBook.connect(MARKET, _reader(), events))
    book.disconnect()
    assert events.subs == []
    assert len(events.unsubscribed) == 2
